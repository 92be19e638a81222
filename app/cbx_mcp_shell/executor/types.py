"""
Type definitions for command execution.

This module defines the data structures and the exception hierarchy
shared by the validator, the local runner and the remote session pool.
"""

from dataclasses import dataclass
from typing import Optional


# Reported in metadata and history when a process has no exit status
NO_EXIT_CODE = -1


@dataclass
class CommandResult:
    """
    Result of a command that ran to completion.

    A non-zero exit code is a normal result, not an error.

    Attributes:
        stdout: Standard output
        stderr: Standard error output
        exit_code: Process exit code (None if killed by a signal or unknown)
    """

    stdout: str
    stderr: str
    exit_code: Optional[int]

    @property
    def success(self) -> bool:
        """Check if command exited with status 0."""
        return self.exit_code == 0

    @property
    def reported_exit_code(self) -> int:
        """Exit code with the no-exit-code sentinel substituted."""
        return NO_EXIT_CODE if self.exit_code is None else self.exit_code


@dataclass
class ValidationResult:
    """
    Result of security validation.

    Attributes:
        allowed: Whether the command is allowed
        reason: Explanation of why command was blocked (if not allowed)
        rule: The specific rule that blocked the command
    """

    allowed: bool
    reason: Optional[str] = None
    rule: Optional[str] = None

    @classmethod
    def allow(cls) -> "ValidationResult":
        """Create an allowing result."""
        return cls(allowed=True)

    @classmethod
    def block(cls, reason: str, rule: Optional[str] = None) -> "ValidationResult":
        """Create a blocking result."""
        return cls(allowed=False, reason=reason, rule=rule)


class ExecutorError(Exception):
    """Base exception for execution errors."""

    kind = "executor_error"


class PolicyViolationError(ExecutorError):
    """Raised before any process or session work when a policy check fails."""

    kind = "policy_violation"

    def __init__(self, message: str, rule: Optional[str] = None):
        super().__init__(message)
        self.rule = rule


class ProcessError(ExecutorError):
    """Raised when a process cannot be spawned or fails abnormally."""

    kind = "process_error"


class CommandTimeoutError(ExecutorError):
    """Raised when a command exceeds its timeout; the process is terminated."""

    kind = "timeout"

    def __init__(self, command: str, timeout: float):
        super().__init__(f"Command execution timed out after {timeout:g} seconds")
        self.command = command
        self.timeout = timeout


class SSHConnectionError(ExecutorError):
    """Raised when a remote session cannot be established."""

    kind = "connection_error"

    def __init__(self, connection_id: str, message: str):
        super().__init__(f"SSH connection '{connection_id}' failed: {message}")
        self.connection_id = connection_id


class SessionClosedError(ProcessError):
    """Raised when a command is sent to a session that is closing."""

    def __init__(self, connection_id: str):
        super().__init__(f"SSH session '{connection_id}' is closed")
        self.connection_id = connection_id


class FeatureDisabledError(ExecutorError):
    """Raised when a disabled feature or shell is requested."""

    kind = "feature_disabled"


class UnknownConnectionError(ExecutorError):
    """Raised for a connection id missing from configuration."""

    kind = "unknown_connection"

    def __init__(self, connection_id: str):
        super().__init__(f"Unknown SSH connection ID: {connection_id}")
        self.connection_id = connection_id
