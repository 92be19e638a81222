"""
Configuration loader with YAML and environment variable support.

Priority (highest to lowest):
1. Environment variables: CBX_SHELL_SECURITY__COMMAND_TIMEOUT=60
2. Explicit config file: --config path/to/config.yaml
3. User config: --config-dir path / ~/.cbx-shell/{config,security}.yaml
4. Built-in defaults: cbx_mcp_shell/config/defaults/
5. Built-in shell profiles
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from cbx_mcp_shell.config.models import CLIServerConfig, default_shell_profiles

logger = logging.getLogger(__name__)

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".cbx-shell"
PACKAGE_DEFAULTS_DIR = Path(__file__).parent / "defaults"

# Environment variable prefix
ENV_PREFIX = "CBX_SHELL_"
ENV_DELIMITER = "__"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Values from 'override' take precedence over 'base'.
    Nested dicts are merged recursively; lists are replaced.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path, required: bool = False) -> dict[str, Any]:
    """Load a YAML mapping, returning empty dict if an optional file is missing."""
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with open(path) as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path}: {e}") from e
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return content


def _get_env_overrides() -> dict[str, Any]:
    """
    Extract configuration overrides from environment variables.

    CBX_SHELL_SERVER__PORT=9000 -> {"server": {"port": 9000}}
    CBX_SHELL_SSH__ENABLED=true -> {"ssh": {"enabled": True}}
    """
    overrides: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split(ENV_DELIMITER)
        if not all(key_path):
            logger.warning(f"Ignoring malformed config variable {key}")
            continue

        current = overrides
        for part in key_path[:-1]:
            current = current.setdefault(part, {})

        current[key_path[-1]] = _parse_env_value(value)

    return overrides


def _parse_env_value(value: str) -> Any:
    """Parse an environment value as a YAML scalar or flow collection."""
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        return value
    return value if parsed is None else parsed


def _builtin_defaults() -> dict[str, Any]:
    """Shell profiles serialized so user YAML can merge over single fields."""
    return {
        "shells": {
            name: profile.model_dump(mode="json")
            for name, profile in default_shell_profiles().items()
        }
    }


def _load_defaults() -> dict[str, Any]:
    """Built-in shell profiles merged with the packaged default files."""
    config_data = _builtin_defaults()
    config_data = _deep_merge(
        config_data, _load_yaml_file(PACKAGE_DEFAULTS_DIR / "settings.yaml")
    )
    return _deep_merge(
        config_data, _load_yaml_file(PACKAGE_DEFAULTS_DIR / "security.yaml")
    )


def load_config(
    config_dir: Optional[str | Path] = None,
    config_file: Optional[str | Path] = None,
) -> CLIServerConfig:
    """
    Load configuration from multiple sources.

    Args:
        config_dir: Optional configuration directory. Defaults to ~/.cbx-shell/
        config_file: Optional single YAML file applied over the directory

    Returns:
        CLIServerConfig: Validated configuration object

    Raises:
        FileNotFoundError: If config_file is given but missing
        ValueError: If a file cannot be parsed
        pydantic.ValidationError: If the merged configuration is invalid
    """
    config_data = _load_defaults()

    # User directory
    user_config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
    config_data = _deep_merge(config_data, _load_yaml_file(user_config_dir / "config.yaml"))
    config_data = _deep_merge(config_data, _load_yaml_file(user_config_dir / "security.yaml"))

    # Explicit file
    if config_file:
        config_data = _deep_merge(
            config_data, _load_yaml_file(Path(config_file), required=True)
        )

    # Environment variable overrides (highest priority)
    config_data = _deep_merge(config_data, _get_env_overrides())

    return CLIServerConfig.model_validate(config_data)


def create_default_config(path: str | Path) -> Path:
    """
    Write the default configuration to a YAML file.

    Args:
        path: Destination file; parent directories are created

    Returns:
        The path written

    Raises:
        FileExistsError: If the file already exists
    """
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"Refusing to overwrite existing config: {path}")

    data = CLIServerConfig.model_validate(_load_defaults()).model_dump(mode="json")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)

    logger.info(f"Wrote default configuration to {path}")
    return path
