# utils/logging.py

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure logging for MCP server.

    CRITICAL: Uses stderr for console output to avoid conflicts with MCP JSON-RPC
    protocol which requires exclusive use of stdout.

    An existing log_file is renamed with a timestamp suffix so every run
    starts a fresh file.
    """

    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    # Console handler - MUST use stderr for MCP compatibility
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        rotated = rotate_log_file(path)

        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        if rotated:
            logging.info(f"Previous log moved to {rotated}")

    logging.info(f"Logging configured with level: {level}")


def rotate_log_file(path: Path) -> Optional[Path]:
    """Rename an existing log file to <stem>-<timestamp><suffix>."""
    if not path.exists():
        return None
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    target = path.with_name(f"{path.stem}-{stamp}{path.suffix}")
    path.rename(target)
    return target


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified name."""
    return logging.getLogger(name)


def format_fields(**fields) -> str:
    """Render structured log data as key=value pairs."""
    return " ".join(f"{key}={value!r}" for key, value in fields.items())
