"""
Handler context and argument/response types.

One HandlerContext is built per process and passed to every handler. It
owns the history ledger; the session pool is passed separately to the
SSH handlers.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from cbx_mcp_shell.config.models import CLIServerConfig
from cbx_mcp_shell.executor.validator import CommandValidator, create_validator
from cbx_mcp_shell.history import CommandHistory
from cbx_mcp_shell.http.metrics import MetricsCollector


@dataclass
class HandlerContext:
    """Everything a handler needs besides its arguments."""

    config: CLIServerConfig
    logger: logging.Logger
    history: CommandHistory
    validator: CommandValidator
    metrics: MetricsCollector = field(default_factory=MetricsCollector)

    @classmethod
    def from_config(
        cls,
        config: CLIServerConfig,
        logger: Optional[logging.Logger] = None,
    ) -> "HandlerContext":
        """Build the context, creating an empty history ledger."""
        security = config.security
        return cls(
            config=config,
            logger=logger or logging.getLogger("cbx_mcp_shell.tools"),
            history=CommandHistory(
                enabled=security.log_commands,
                max_size=security.max_history_size,
                output_limit=security.history_output_limit,
            ),
            validator=create_validator(security),
        )


@dataclass(frozen=True)
class ExecuteCommandArgs:
    shell: str
    command: str
    working_dir: Optional[str] = None


@dataclass(frozen=True)
class GetHistoryArgs:
    limit: Optional[int] = None


@dataclass(frozen=True)
class SshExecuteArgs:
    connection_id: str
    command: str


@dataclass(frozen=True)
class SshDisconnectArgs:
    connection_id: str


@dataclass
class ToolResponse:
    """
    Handler output before conversion to an MCP tool result.

    Attributes:
        text: Text content returned to the client
        is_error: True when the command ran but exited non-zero
        metadata: Structured details (exit code, shell, directory, ...)
    """

    text: str
    is_error: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
