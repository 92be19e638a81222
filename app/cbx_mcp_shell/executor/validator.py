"""
Security validation for shell commands.

Checks run in this order and the first failure wins:
1. Empty command / maximum length
2. Blocked shell operators (per shell profile, minus the policy allow-list)
3. Blocked command names (leading token of every chained segment)
4. Blocked arguments

Working directory containment is a separate check performed by the
caller through `resolve_working_directory`.
"""

import os
from typing import Optional

from cbx_mcp_shell.config.models import SecuritySettings, ShellProfile
from cbx_mcp_shell.executor.parser import (
    extract_command_name,
    find_blocked_operator,
    split_command_segments,
    tokenize,
)
from cbx_mcp_shell.executor.types import PolicyViolationError, ValidationResult


class CommandValidator:
    """
    Validates commands against the security policy.

    Validation is pure: no state is kept between calls and nothing is
    executed.
    """

    def __init__(self, security: SecuritySettings):
        """
        Initialize validator with the security policy.

        Args:
            security: Loaded SecuritySettings
        """
        self.security = security
        self.blocked_commands = {c.lower() for c in security.blocked_commands}
        self.blocked_arguments = {a.lower() for a in security.blocked_arguments}
        self.allowed_operators = set(security.allowed_operators)

    def validate(self, command: str, shell: ShellProfile) -> ValidationResult:
        """
        Validate a command for the given shell.

        Args:
            command: The raw command text
            shell: Profile of the shell that will run it

        Returns:
            ValidationResult indicating if command is allowed
        """
        if not command.strip():
            return ValidationResult.block("Command is empty", rule="empty_command")

        if len(command) > self.security.max_command_length:
            return ValidationResult.block(
                f"Command exceeds maximum length of {self.security.max_command_length} characters",
                rule="max_command_length",
            )

        operators = [
            op for op in shell.blocked_operators if op not in self.allowed_operators
        ]
        operator = find_blocked_operator(command, operators)
        if operator is not None:
            return ValidationResult.block(
                f"Command contains blocked operator for this shell: {operator}",
                rule="blocked_operators",
            )

        for segment in split_command_segments(command):
            name = extract_command_name(segment)
            if name in self.blocked_commands:
                return ValidationResult.block(
                    f"Command is blocked: {name}",
                    rule="blocked_commands",
                )

            for token in tokenize(segment)[1:]:
                if token.lower() in self.blocked_arguments:
                    return ValidationResult.block(
                        f"Argument is blocked: {token}",
                        rule="blocked_arguments",
                    )

        return ValidationResult.allow()

    def check(self, command: str, shell: ShellProfile) -> None:
        """
        Validate and raise on failure.

        Raises:
            PolicyViolationError: If the command is not allowed
        """
        result = self.validate(command, shell)
        if not result.allowed:
            raise PolicyViolationError(result.reason, rule=result.rule)

    def resolve_working_directory(self, requested: Optional[str] = None) -> str:
        """
        Resolve a working directory and enforce the allowed path prefixes.

        Args:
            requested: Requested directory; the server's cwd if omitted

        Returns:
            The absolute working directory

        Raises:
            PolicyViolationError: If the directory is outside allowed_paths
        """
        working_dir = os.path.abspath(requested) if requested else os.getcwd()

        if self.security.restrict_working_directory:
            normalized = os.path.normcase(working_dir)
            if not any(
                normalized.startswith(os.path.normcase(prefix))
                for prefix in self.security.allowed_paths
            ):
                raise PolicyViolationError(
                    f"Working directory ({working_dir}) outside allowed paths",
                    rule="allowed_paths",
                )

        return working_dir


def create_validator(security: SecuritySettings) -> CommandValidator:
    """
    Factory function to create a CommandValidator.

    Args:
        security: Security policy

    Returns:
        Configured CommandValidator instance
    """
    return CommandValidator(security)
