"""
SSH sessions on paramiko.

paramiko is blocking, so connection setup and channel I/O run in worker
threads via asyncio.to_thread. Each command gets its own channel on the
shared transport; output from different commands never interleaves.
"""

import asyncio
import logging
import os
import time

import paramiko

from cbx_mcp_shell.config.models import SshConnectionSettings, SshSettings
from cbx_mcp_shell.executor.types import CommandResult, ProcessError, SSHConnectionError
from cbx_mcp_shell.session.base import RemoteSession

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 32768
POLL_INTERVAL = 0.01


class SSHSession(RemoteSession):
    """Remote session over one authenticated paramiko SSHClient."""

    def __init__(self, connection_id: str, client: paramiko.SSHClient, max_channels: int = 4):
        super().__init__(connection_id, max_channels)
        self._client = client

    @classmethod
    async def connect(
        cls,
        connection_id: str,
        settings: SshConnectionSettings,
        connect_timeout: float = 10,
        keepalive_interval: int = 10,
        verify_host_key: bool = False,
        max_channels: int = 4,
    ) -> "SSHSession":
        """
        Establish an authenticated session.

        Args:
            connection_id: Logical connection id
            settings: Host, port and credentials
            connect_timeout: TCP, banner and auth timeout in seconds
            keepalive_interval: Seconds between keepalives (0 disables)
            verify_host_key: Reject hosts missing from known_hosts
            max_channels: Concurrent commands before calls queue

        Raises:
            SSHConnectionError: On auth failure, unreachable host or
                protocol negotiation failure
        """
        client = paramiko.SSHClient()
        if verify_host_key:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs = {
            "hostname": settings.host,
            "port": settings.port,
            "username": settings.username,
            "timeout": connect_timeout,
            "banner_timeout": connect_timeout,
            "auth_timeout": connect_timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if settings.password:
            connect_kwargs["password"] = settings.password
        if settings.private_key_path:
            connect_kwargs["key_filename"] = os.path.expanduser(settings.private_key_path)
            if settings.passphrase:
                connect_kwargs["passphrase"] = settings.passphrase

        try:
            await asyncio.to_thread(client.connect, **connect_kwargs)
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SSHConnectionError(connection_id, str(e) or type(e).__name__) from e

        transport = client.get_transport()
        if transport is not None and keepalive_interval:
            transport.set_keepalive(keepalive_interval)

        logger.info(
            f"SSH session '{connection_id}' connected to "
            f"{settings.username}@{settings.host}:{settings.port}"
        )
        return cls(connection_id, client, max_channels)

    @property
    def is_alive(self) -> bool:
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    async def _execute(self, command: str) -> CommandResult:
        channel = await asyncio.to_thread(self._open_channel)
        try:
            return await asyncio.to_thread(_collect_output, channel, command)
        finally:
            # Also unblocks the reader thread when the run is cancelled
            channel.close()

    def _open_channel(self) -> paramiko.Channel:
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise ProcessError(f"SSH session '{self.connection_id}' is not connected")
        try:
            return transport.open_session()
        except paramiko.SSHException as e:
            raise ProcessError(f"Could not open SSH channel: {e}") from e

    async def _disconnect(self) -> None:
        await asyncio.to_thread(self._client.close)
        logger.info(f"SSH session '{self.connection_id}' disconnected")


def _drain(channel: paramiko.Channel, stdout: list[bytes], stderr: list[bytes]) -> bool:
    """Read everything buffered on both streams. Returns True if anything was read."""
    read = False
    while channel.recv_ready():
        stdout.append(channel.recv(READ_CHUNK_SIZE))
        read = True
    while channel.recv_stderr_ready():
        stderr.append(channel.recv_stderr(READ_CHUNK_SIZE))
        read = True
    return read


def _collect_output(channel: paramiko.Channel, command: str) -> CommandResult:
    """Run a command on a fresh channel and read both streams to the end."""
    stdout: list[bytes] = []
    stderr: list[bytes] = []

    try:
        channel.exec_command(command)
        while True:
            # Sampled before draining: data sent ahead of the exit status is
            # already buffered once the status is seen.
            finished = channel.exit_status_ready() or channel.closed
            read = _drain(channel, stdout, stderr)
            if finished and not read:
                break
            if not read:
                time.sleep(POLL_INTERVAL)
    except (paramiko.SSHException, OSError) as e:
        raise ProcessError(f"SSH command failed: {e}") from e

    # paramiko reports -1 when the server sent no exit status
    exit_code = channel.exit_status if channel.exit_status_ready() else -1

    return CommandResult(
        stdout=b"".join(stdout).decode("utf-8", errors="replace"),
        stderr=b"".join(stderr).decode("utf-8", errors="replace"),
        exit_code=None if exit_code < 0 else exit_code,
    )


def ssh_session_factory(ssh: SshSettings):
    """
    Build the pool's session factory from SSH settings.

    Args:
        ssh: SshSettings with timeouts and channel limits

    Returns:
        Async callable (connection_id, connection settings) -> SSHSession
    """

    async def factory(connection_id: str, settings: SshConnectionSettings) -> SSHSession:
        return await SSHSession.connect(
            connection_id,
            settings,
            connect_timeout=ssh.connect_timeout,
            keepalive_interval=ssh.keepalive_interval,
            verify_host_key=ssh.verify_host_key,
            max_channels=ssh.max_channels_per_session,
        )

    return factory
