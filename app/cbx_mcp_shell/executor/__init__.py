"""
Command execution engine with security validation.

This module handles:
- Command text parsing for policy checks
- Security policy enforcement
- Async local shell execution with timeouts
"""

from cbx_mcp_shell.executor.types import (
    NO_EXIT_CODE,
    CommandResult,
    ValidationResult,
    ExecutorError,
    PolicyViolationError,
    ProcessError,
    CommandTimeoutError,
    SSHConnectionError,
    SessionClosedError,
    FeatureDisabledError,
    UnknownConnectionError,
)
from cbx_mcp_shell.executor.parser import (
    extract_command_name,
    find_blocked_operator,
    split_command_segments,
    tokenize,
)
from cbx_mcp_shell.executor.validator import (
    CommandValidator,
    create_validator,
)
from cbx_mcp_shell.executor.runner import execute_shell_command

__all__ = [
    # Types
    "NO_EXIT_CODE",
    "CommandResult",
    "ValidationResult",
    # Exceptions
    "ExecutorError",
    "PolicyViolationError",
    "ProcessError",
    "CommandTimeoutError",
    "SSHConnectionError",
    "SessionClosedError",
    "FeatureDisabledError",
    "UnknownConnectionError",
    # Parser
    "extract_command_name",
    "find_blocked_operator",
    "split_command_segments",
    "tokenize",
    # Validator
    "CommandValidator",
    "create_validator",
    # Runner
    "execute_shell_command",
]
