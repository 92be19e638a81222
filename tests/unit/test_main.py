# tests/unit/test_main.py
"""
Unit tests for the command line entry point.
"""

import pytest
import yaml

from main import main, parse_args


def test_parse_args_overrides():
    args = parse_args(["--transport", "streamable-http", "--port", "9001", "--config", "c.yaml"])

    assert args.transport == "streamable-http"
    assert args.port == 9001
    assert args.config == "c.yaml"
    assert args.init_config is None


def test_init_config_writes_defaults(tmp_path):
    path = tmp_path / "config.yaml"

    assert main(["--init-config", str(path)]) == 0

    data = yaml.safe_load(path.read_text())
    assert data["server"]["transport"] == "stdio"


def test_init_config_refuses_existing_file(tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("keep: me\n")

    assert main(["--init-config", str(path)]) == 1

    assert path.read_text() == "keep: me\n"
    assert "Refusing to overwrite" in capsys.readouterr().err


def test_bad_config_file_exits_with_error(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "--config-dir", str(tmp_path)]) == 1

    assert "Error loading configuration" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["--version"])

    assert exc_info.value.code == 0
    assert "cbx-mcp-shell" in capsys.readouterr().out
