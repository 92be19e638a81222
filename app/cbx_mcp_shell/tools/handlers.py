"""
Tool handlers.

Each handler validates input, applies the security policy, runs the
command and records it in the history ledger. Mechanism failures raise
an ExecutorError; a command that exits non-zero returns a ToolResponse
with is_error set.
"""

import json
import os

from cbx_mcp_shell.executor.runner import execute_shell_command
from cbx_mcp_shell.executor.types import (
    CommandResult,
    ExecutorError,
    FeatureDisabledError,
    PolicyViolationError,
    UnknownConnectionError,
)
from cbx_mcp_shell.history import HistoryEntry
from cbx_mcp_shell.session.pool import SessionPool
from cbx_mcp_shell.tools.context import (
    ExecuteCommandArgs,
    GetHistoryArgs,
    HandlerContext,
    SshDisconnectArgs,
    SshExecuteArgs,
    ToolResponse,
)
from cbx_mcp_shell.utils.logging import format_fields

NO_OUTPUT_MESSAGE = "Command completed successfully (no output)"
HISTORY_DISABLED_MESSAGE = "Command history is disabled in configuration"
SSH_DISABLED_MESSAGE = "SSH support is disabled in configuration"


def format_result_message(result: CommandResult) -> str:
    """Text returned to the client and stored in history."""
    if result.exit_code == 0:
        return result.stdout or NO_OUTPUT_MESSAGE

    message = f"Command failed with exit code {result.reported_exit_code}\n"
    if result.stderr:
        message += f"Error output:\n{result.stderr}\n"
    if result.stdout:
        message += f"Standard output:\n{result.stdout}"
    return message


def _record_failure(context: HandlerContext, error: ExecutorError, what: str) -> None:
    context.metrics.record_error(error.kind)
    if isinstance(error, PolicyViolationError):
        context.logger.warning(f"{what} blocked: {error}")
    else:
        context.logger.error(f"{what} failed: {error}")


async def execute_command(args: ExecuteCommandArgs, context: HandlerContext) -> ToolResponse:
    """
    Run a command in a local shell.

    Raises:
        FeatureDisabledError: Unknown or disabled shell
        PolicyViolationError: Blocked operator, command, argument or directory
        ProcessError: Shell could not be spawned
        CommandTimeoutError: Command exceeded the timeout
    """
    config, logger = context.config, context.logger

    logger.info("Executing command: " + format_fields(
        shell=args.shell,
        command=args.command,
        working_dir=args.working_dir or os.getcwd(),
    ))

    shell = config.shells.get(args.shell)
    if shell is None or not shell.enabled:
        available = ", ".join(config.enabled_shells) or "none"
        raise FeatureDisabledError(
            f"Shell '{args.shell}' is not enabled (available: {available})"
        )

    try:
        context.validator.check(args.command, shell)
        working_dir = context.validator.resolve_working_directory(args.working_dir)
        result = await execute_shell_command(
            shell.command,
            shell.args,
            args.command,
            working_dir,
            config.security.command_timeout,
        )
    except ExecutorError as e:
        _record_failure(context, e, "Command execution")
        raise

    message = format_result_message(result)
    context.metrics.record_exit(result.exit_code)

    logger.info("Command completed: " + format_fields(
        exit_code=result.exit_code,
        command=args.command,
        shell=args.shell,
    ))
    logger.debug(f"Command output: {message}")

    context.history.append(
        HistoryEntry.create(
            command=args.command,
            output=message,
            exit_code=result.reported_exit_code,
        )
    )

    return ToolResponse(
        text=message,
        is_error=not result.success,
        metadata={
            "exitCode": result.reported_exit_code,
            "shell": args.shell,
            "workingDirectory": working_dir,
        },
    )


async def get_history(args: GetHistoryArgs, context: HandlerContext) -> ToolResponse:
    """Return recent history entries as JSON, oldest first."""
    if not context.history.enabled:
        return ToolResponse(text=HISTORY_DISABLED_MESSAGE)

    entries = context.history.query(args.limit)
    return ToolResponse(
        text=json.dumps([entry.to_dict() for entry in entries], indent=2),
        metadata={"count": len(entries)},
    )


async def ssh_execute(
    args: SshExecuteArgs,
    context: HandlerContext,
    pool: SessionPool,
) -> ToolResponse:
    """
    Run a command over the pooled SSH session for a connection id.

    Raises:
        FeatureDisabledError: SSH is disabled
        UnknownConnectionError: Connection id is not configured
        PolicyViolationError: Command rejected by the policy
        SSHConnectionError: Session could not be established
        ProcessError: Command could not be run
        CommandTimeoutError: Command exceeded the timeout
    """
    config, logger = context.config, context.logger
    ssh = config.ssh

    if not ssh.enabled:
        raise FeatureDisabledError(SSH_DISABLED_MESSAGE)

    settings = ssh.connections.get(args.connection_id)
    if settings is None:
        raise UnknownConnectionError(args.connection_id)

    logger.info("Executing SSH command: " + format_fields(
        connection_id=args.connection_id,
        command=args.command,
    ))

    try:
        context.validator.check(args.command, config.shells[ssh.policy_shell])
        session = await pool.get_session(args.connection_id, settings)
        result = await session.run(args.command, config.security.command_timeout)
    except ExecutorError as e:
        _record_failure(context, e, "SSH command execution")
        raise

    message = format_result_message(result)
    context.metrics.record_exit(result.exit_code)

    logger.info("SSH command completed: " + format_fields(
        exit_code=result.exit_code,
        connection_id=args.connection_id,
    ))

    context.history.append(
        HistoryEntry.create(
            command=args.command,
            output=message,
            exit_code=result.reported_exit_code,
            connection_id=args.connection_id,
        )
    )

    return ToolResponse(
        text=message,
        is_error=not result.success,
        metadata={
            "exitCode": result.reported_exit_code,
            "connectionId": args.connection_id,
        },
    )


async def ssh_disconnect(
    args: SshDisconnectArgs,
    context: HandlerContext,
    pool: SessionPool,
) -> ToolResponse:
    """Close the pooled session for a connection id (no-op if none is open)."""
    if not context.config.ssh.enabled:
        raise FeatureDisabledError(SSH_DISABLED_MESSAGE)

    await pool.close_session(args.connection_id)
    context.logger.info(f"Disconnected SSH session '{args.connection_id}'")

    return ToolResponse(text=f"Disconnected from {args.connection_id}")
