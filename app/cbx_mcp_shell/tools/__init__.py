"""
MCP tools for command execution.

- execute_command: run a command in a local shell
- get_command_history: recent executions from the history ledger
- ssh_execute / ssh_disconnect: remote execution over pooled SSH sessions
"""

from cbx_mcp_shell.tools.context import (
    ExecuteCommandArgs,
    GetHistoryArgs,
    HandlerContext,
    SshDisconnectArgs,
    SshExecuteArgs,
    ToolResponse,
)
from cbx_mcp_shell.tools.registry import TOOL_NAMES, register_tools

__all__ = [
    # Context
    "HandlerContext",
    "ToolResponse",
    "ExecuteCommandArgs",
    "GetHistoryArgs",
    "SshExecuteArgs",
    "SshDisconnectArgs",
    # Registry
    "TOOL_NAMES",
    "register_tools",
]
