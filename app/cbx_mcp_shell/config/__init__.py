"""
Configuration system for CBX MCP Shell Server.

Exports:
    CLIServerConfig: Main configuration container
    load_config: Load configuration from YAML/env
    create_default_config: Write the defaults to a YAML file
"""

from cbx_mcp_shell.config.models import (
    CLIServerConfig,
    SecuritySettings,
    ServerSettings,
    ShellProfile,
    SshConnectionSettings,
    SshSettings,
    default_shell_profiles,
)
from cbx_mcp_shell.config.loader import create_default_config, load_config

__all__ = [
    "CLIServerConfig",
    "SecuritySettings",
    "ServerSettings",
    "ShellProfile",
    "SshConnectionSettings",
    "SshSettings",
    "default_shell_profiles",
    "load_config",
    "create_default_config",
]
