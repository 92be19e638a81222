"""
Pytest configuration and shared fixtures.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

# Add app directory to path
APP_DIR = Path(__file__).parent.parent / "app"
sys.path.insert(0, str(APP_DIR))

from cbx_mcp_shell.config import CLIServerConfig, SshConnectionSettings
from cbx_mcp_shell.executor.types import CommandResult
from cbx_mcp_shell.session.base import RemoteSession
from cbx_mcp_shell.session.pool import SessionPool


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )


class FakeSession(RemoteSession):
    """In-memory RemoteSession that returns a canned result."""

    def __init__(
        self,
        connection_id: str,
        result: CommandResult,
        delay: float = 0.0,
        max_channels: int = 2,
    ):
        super().__init__(connection_id, max_channels)
        self.result = result
        self.delay = delay
        self.alive = True
        self.disconnected = False
        self.commands: list[str] = []
        self.active = 0
        self.peak = 0

    @property
    def is_alive(self) -> bool:
        return self.alive and not self.disconnected

    async def _execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.result
        finally:
            self.active -= 1

    async def _disconnect(self) -> None:
        self.disconnected = True


class FakeSessionFactory:
    """Session factory recording every connection attempt."""

    def __init__(self):
        self.calls = 0
        self.sessions: list[FakeSession] = []
        self.fail_with: Optional[Exception] = None
        self.connect_delay = 0.0
        self.run_delay = 0.0
        self.result = CommandResult(stdout="ok\n", stderr="", exit_code=0)

    async def __call__(self, connection_id: str, settings: SshConnectionSettings) -> FakeSession:
        self.calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.fail_with is not None:
            raise self.fail_with
        session = FakeSession(connection_id, self.result, delay=self.run_delay)
        self.sessions.append(session)
        return session


SSH_CONNECTIONS = {
    "box": {"host": "10.0.0.5", "username": "ops", "password": "secret"},
    "db": {"host": "10.0.0.6", "port": 2222, "username": "ops", "private_key_path": "~/.ssh/id_ed25519"},
}


@pytest.fixture
def config_factory(tmp_path: Path) -> Callable[..., CLIServerConfig]:
    """
    Build a config with a POSIX sh profile and tmp_path as the only allowed path.

    Keyword arguments are merged into the matching top-level section.
    """

    def _build(**sections: dict[str, Any]) -> CLIServerConfig:
        data: dict[str, Any] = {
            "security": {"allowed_paths": [str(tmp_path)], "command_timeout": 5},
            "shells": {"sh": {"command": "/bin/sh", "args": ["-c"]}},
            "ssh": {"enabled": True, "policy_shell": "sh", "connections": SSH_CONNECTIONS},
        }
        for name, values in sections.items():
            data[name] = {**data.get(name, {}), **values}
        return CLIServerConfig.model_validate(data)

    return _build


@pytest.fixture
def config(config_factory) -> CLIServerConfig:
    """Default test configuration."""
    return config_factory()


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    """Factory opening FakeSession instances."""
    return FakeSessionFactory()


@pytest.fixture
def session_pool(session_factory: FakeSessionFactory) -> SessionPool:
    """Session pool backed by fake sessions."""
    return SessionPool(session_factory)


@pytest.fixture
def box_settings(config: CLIServerConfig) -> SshConnectionSettings:
    """Connection settings for the 'box' connection id."""
    return config.ssh.connections["box"]
