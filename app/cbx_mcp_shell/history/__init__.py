"""
Command history ledger.

Bounded, in-memory record of executed commands (local and remote).
Reset on restart.
"""

from cbx_mcp_shell.history.ledger import (
    DEFAULT_QUERY_LIMIT,
    CommandHistory,
    HistoryEntry,
)

__all__ = [
    "DEFAULT_QUERY_LIMIT",
    "CommandHistory",
    "HistoryEntry",
]
