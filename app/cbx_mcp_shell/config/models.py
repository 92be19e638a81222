"""
Pydantic models for server configuration.

Shell profiles, the security policy and SSH connection entries are frozen
and reject unknown keys, so a malformed configuration fails at load time
instead of at first use.
"""

import os
import sys
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_BLOCKED_OPERATORS = ("&", "|", ";", "`")


class ShellProfile(BaseModel):
    """How to invoke one local command interpreter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = Field(
        default=True,
        description="Whether this shell may be used",
    )
    command: str = Field(
        description="Path or name of the shell executable",
    )
    args: tuple[str, ...] = Field(
        default=(),
        description="Fixed arguments placed before the command text",
    )
    blocked_operators: tuple[str, ...] = Field(
        default=DEFAULT_BLOCKED_OPERATORS,
        description="Shell operators rejected in command text",
    )

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        """Shell executable must be set."""
        if not v.strip():
            raise ValueError("shell command must not be empty")
        return v

    @field_validator("blocked_operators")
    @classmethod
    def validate_operators(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Empty operators would match every command."""
        if any(not op for op in v):
            raise ValueError("blocked operators must be non-empty strings")
        return v


def default_shell_profiles() -> dict[str, ShellProfile]:
    """
    Built-in shell profiles.

    Windows shells are enabled on Windows hosts, bash everywhere else.
    """
    on_windows = sys.platform == "win32"
    return {
        "powershell": ShellProfile(
            enabled=on_windows,
            command="powershell.exe",
            args=("-NoProfile", "-NonInteractive", "-Command"),
        ),
        "cmd": ShellProfile(
            enabled=on_windows,
            command="cmd.exe",
            args=("/c",),
        ),
        "gitbash": ShellProfile(
            enabled=on_windows,
            command=r"C:\Program Files\Git\bin\bash.exe",
            args=("-c",),
        ),
        "bash": ShellProfile(
            enabled=not on_windows,
            command="/bin/bash",
            args=("-c",),
        ),
    }


class SecuritySettings(BaseModel):
    """Security policy applied to every execution request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_command_length: int = Field(
        default=2000,
        ge=1,
        description="Longest command text accepted",
    )
    blocked_commands: tuple[str, ...] = Field(
        default=(
            "format", "shutdown", "restart", "reg", "regedit", "net",
            "netsh", "takeown", "icacls", "rm", "del", "rmdir",
        ),
        description="Executable names that may never be run",
    )
    blocked_arguments: tuple[str, ...] = Field(
        default=("-enc", "-encodedcommand", "--exec"),
        description="Arguments rejected anywhere in a command",
    )
    allowed_operators: tuple[str, ...] = Field(
        default=(),
        description="Operators permitted even if a shell profile blocks them",
    )
    allowed_paths: tuple[str, ...] = Field(
        default_factory=lambda: (os.path.expanduser("~"), os.getcwd()),
        description="Working directory prefixes commands may run under",
    )
    restrict_working_directory: bool = Field(
        default=True,
        description="Enforce allowed_paths for working directories",
    )
    log_commands: bool = Field(
        default=True,
        description="Record executed commands in the history ledger",
    )
    max_history_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of history entries kept",
    )
    history_output_limit: int = Field(
        default=1000,
        ge=1,
        description="Characters of output returned per history entry",
    )
    command_timeout: float = Field(
        default=30,
        gt=0,
        le=3600,
        description="Command timeout in seconds (local and remote)",
    )

    @field_validator("allowed_paths")
    @classmethod
    def normalize_paths(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Resolve allowed paths to absolute form once, at load."""
        return tuple(os.path.abspath(os.path.expanduser(p)) for p in v)


class SshConnectionSettings(BaseModel):
    """One remote target, keyed by connection id in SshSettings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    port: int = Field(default=22, ge=1, le=65535)
    username: str
    password: Optional[str] = Field(default=None, repr=False)
    private_key_path: Optional[str] = None
    passphrase: Optional[str] = Field(default=None, repr=False)

    @model_validator(mode="after")
    def validate_credentials(self) -> "SshConnectionSettings":
        """A password or a private key is required."""
        if not self.password and not self.private_key_path:
            raise ValueError(
                f"connection to {self.host} needs a password or private_key_path"
            )
        return self


class SshSettings(BaseModel):
    """Remote execution settings."""

    enabled: bool = Field(
        default=False,
        description="Enable the ssh_execute and ssh_disconnect tools",
    )
    policy_shell: str = Field(
        default="cmd",
        description="Shell profile whose blocked operators apply to remote commands",
    )
    connect_timeout: float = Field(default=10, gt=0)
    keepalive_interval: int = Field(default=10, ge=0)
    max_channels_per_session: int = Field(
        default=4,
        ge=1,
        description="Concurrent commands per session before calls queue",
    )
    verify_host_key: bool = Field(
        default=False,
        description="Reject hosts missing from known_hosts",
    )
    connections: dict[str, SshConnectionSettings] = Field(default_factory=dict)


class ServerSettings(BaseModel):
    """Server configuration settings."""

    host: str = Field(
        default="127.0.0.1",
        description="Host to bind the server to",
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port to listen on",
    )
    transport: Literal["streamable-http", "stdio"] = Field(
        default="stdio",
        description="Transport protocol to use",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file, rotated at startup",
    )


class CLIServerConfig(BaseModel):
    """
    Main configuration container for the CBX MCP Shell Server.

    Loaded from YAML files and environment variables, then passed to
    server components explicitly.
    """

    server: ServerSettings = Field(default_factory=ServerSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    shells: dict[str, ShellProfile] = Field(default_factory=default_shell_profiles)
    ssh: SshSettings = Field(default_factory=SshSettings)

    @model_validator(mode="after")
    def validate_policy_shell(self) -> "CLIServerConfig":
        """Remote validation must reference a known shell profile."""
        if self.ssh.policy_shell not in self.shells:
            raise ValueError(
                f"ssh.policy_shell '{self.ssh.policy_shell}' is not a configured shell"
            )
        return self

    @property
    def enabled_shells(self) -> list[str]:
        """Names of shells that may be used."""
        return [name for name, profile in self.shells.items() if profile.enabled]

    model_config = ConfigDict(extra="ignore")
