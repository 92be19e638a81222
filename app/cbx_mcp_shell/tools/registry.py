"""
Tool Registry.

Registers the command execution tools with FastMCP and converts handler
responses and executor errors into MCP tool results.
"""

from typing import Annotated, Awaitable, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import ToolResult
from pydantic import Field

from cbx_mcp_shell.executor.types import ExecutorError
from cbx_mcp_shell.session.pool import SessionPool
from cbx_mcp_shell.tools import handlers
from cbx_mcp_shell.tools.context import (
    ExecuteCommandArgs,
    GetHistoryArgs,
    HandlerContext,
    SshDisconnectArgs,
    SshExecuteArgs,
    ToolResponse,
)

TOOL_NAMES = ("execute_command", "get_command_history", "ssh_execute", "ssh_disconnect")


async def _dispatch(call: Awaitable[ToolResponse]) -> ToolResult:
    """
    Await a handler and build the MCP result.

    Executor errors and non-zero exits are raised as ToolError so the
    client receives an error result carrying the message.
    """
    try:
        response = await call
    except ExecutorError as e:
        raise ToolError(f"{e.kind}: {e}") from e

    if response.is_error:
        raise ToolError(response.text)

    return ToolResult(
        content=response.text,
        structured_content=response.metadata or None,
    )


def _enum(values: list[str]) -> Optional[dict]:
    """Schema enum for a parameter, omitted when there are no values."""
    return {"enum": values} if values else None


def _execute_command_description(context: HandlerContext) -> str:
    shells = context.config.enabled_shells
    lines = [
        "Execute a command in the specified shell.",
        "",
        f"Available shells: {', '.join(shells) or 'none'}",
        "",
        "Commands are checked against the security policy before they run:",
        "blocked commands, blocked arguments and shell operators are rejected,",
        "and the working directory must lie under an allowed path.",
        f"Commands are stopped after {context.config.security.command_timeout:g} seconds.",
        "",
        "Examples:",
    ]
    if "powershell" in shells:
        lines.append('- PowerShell: {"shell": "powershell", "command": "Get-Process"}')
    if "cmd" in shells:
        lines.append('- CMD: {"shell": "cmd", "command": "dir"}')
    if "gitbash" in shells:
        lines.append('- Git Bash: {"shell": "gitbash", "command": "ls -la"}')
    if "bash" in shells:
        lines.append('- Bash: {"shell": "bash", "command": "ls -la", "working_dir": "/tmp"}')
    return "\n".join(lines)


def register_tools(mcp: FastMCP, context: HandlerContext, pool: SessionPool) -> list[str]:
    """
    Register all command execution tools.

    The SSH tools are always listed; when SSH is disabled they answer
    with a feature_disabled error.

    Args:
        mcp: FastMCP server instance
        context: Shared handler context
        pool: Session pool used by the SSH tools

    Returns:
        Names of the registered tools
    """
    config = context.config
    metrics = context.metrics
    connection_ids = list(config.ssh.connections)

    @mcp.tool(
        name="execute_command",
        description=_execute_command_description(context),
        output_schema=None,
        annotations={
            "title": "Execute Command",
            "readOnlyHint": False,
            "destructiveHint": True,
            "openWorldHint": True,
        },
    )
    async def execute_command_tool(
        shell: Annotated[str, Field(
            description="Shell to use for command execution",
            json_schema_extra=_enum(config.enabled_shells),
        )],
        command: Annotated[str, Field(description="Command to execute")],
        working_dir: Annotated[Optional[str], Field(
            description="Working directory for command execution (optional)",
        )] = None,
    ) -> ToolResult:
        metrics.inc_tool_call("execute_command")
        return await _dispatch(handlers.execute_command(
            ExecuteCommandArgs(shell=shell, command=command, working_dir=working_dir),
            context,
        ))

    @mcp.tool(
        name="get_command_history",
        description=(
            "Get the history of executed commands, oldest first.\n\n"
            "Each entry has the command, its output (truncated), a UTC timestamp "
            "and the exit code. Remote commands also carry their connection id."
        ),
        output_schema=None,
        annotations={
            "title": "Get Command History",
            "readOnlyHint": True,
            "destructiveHint": False,
        },
    )
    async def get_command_history_tool(
        limit: Annotated[Optional[int], Field(
            description="Maximum number of history entries to return (default 10)",
        )] = None,
    ) -> ToolResult:
        metrics.inc_tool_call("get_command_history")
        return await _dispatch(handlers.get_history(GetHistoryArgs(limit=limit), context))

    @mcp.tool(
        name="ssh_execute",
        description=(
            "Execute a command on a remote host over SSH.\n\n"
            f"Configured connections: {', '.join(connection_ids) or 'none'}\n\n"
            "The session for a connection is opened on first use and reused "
            "until ssh_disconnect is called."
        ),
        output_schema=None,
        annotations={
            "title": "Execute SSH Command",
            "readOnlyHint": False,
            "destructiveHint": True,
            "openWorldHint": True,
        },
    )
    async def ssh_execute_tool(
        connection_id: Annotated[str, Field(
            description="ID of the SSH connection to use",
            json_schema_extra=_enum(connection_ids),
        )],
        command: Annotated[str, Field(description="Command to execute")],
    ) -> ToolResult:
        metrics.inc_tool_call("ssh_execute")
        return await _dispatch(handlers.ssh_execute(
            SshExecuteArgs(connection_id=connection_id, command=command),
            context,
            pool,
        ))

    @mcp.tool(
        name="ssh_disconnect",
        description="Disconnect from an SSH server and drop its pooled session.",
        output_schema=None,
        annotations={
            "title": "Disconnect SSH Session",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
        },
    )
    async def ssh_disconnect_tool(
        connection_id: Annotated[str, Field(
            description="ID of the SSH connection to disconnect",
            json_schema_extra=_enum(connection_ids),
        )],
    ) -> ToolResult:
        metrics.inc_tool_call("ssh_disconnect")
        return await _dispatch(handlers.ssh_disconnect(
            SshDisconnectArgs(connection_id=connection_id),
            context,
            pool,
        ))

    return list(TOOL_NAMES)
