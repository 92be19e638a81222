"""
Remote Session Base Interface.

A RemoteSession is one live, authenticated connection to a remote host,
reused for many commands until the pool closes it.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from cbx_mcp_shell.executor.types import (
    CommandResult,
    CommandTimeoutError,
    SessionClosedError,
)


class RemoteSession(ABC):
    """
    Abstract remote session.

    The base class owns command bookkeeping shared by all transports:
    - at most `max_channels` commands run at once, the rest queue
    - every run is limited by the timeout passed to `run`
    - `close` refuses new runs, waits for in-flight runs, then disconnects

    Implementations:
    - SSHSession: paramiko transport, one channel per command
    """

    def __init__(self, connection_id: str, max_channels: int = 4):
        """
        Initialize session bookkeeping.

        Args:
            connection_id: Logical connection id this session serves
            max_channels: Concurrent commands before further calls queue
        """
        self.connection_id = connection_id
        self.created_at = datetime.now()
        self.last_used: Optional[datetime] = None
        self._channels = asyncio.Semaphore(max_channels)
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closing = False
        self._closed = False

    @property
    @abstractmethod
    def is_alive(self) -> bool:
        """Whether the underlying transport is still usable."""
        pass

    @abstractmethod
    async def _execute(self, command: str) -> CommandResult:
        """
        Run one command on its own channel.

        Cancellation must release the channel.

        Raises:
            ProcessError: If the command cannot be run
        """
        pass

    @abstractmethod
    async def _disconnect(self) -> None:
        """Tear down the transport."""
        pass

    @property
    def closed(self) -> bool:
        """True once close has been requested."""
        return self._closing

    @property
    def in_flight(self) -> int:
        """Number of running or queued commands."""
        return self._in_flight

    async def run(self, command: str, timeout: float) -> CommandResult:
        """
        Execute a command on the remote shell.

        Args:
            command: Command text, interpreted by the remote shell
            timeout: Seconds before the channel is closed

        Returns:
            CommandResult with captured output and exit status

        Raises:
            SessionClosedError: If the session is closing
            CommandTimeoutError: If the command exceeds the timeout
            ProcessError: If the command cannot be run
        """
        if self._closing:
            raise SessionClosedError(self.connection_id)

        self._in_flight += 1
        self._idle.clear()
        try:
            async with self._channels:
                if self._closing:
                    raise SessionClosedError(self.connection_id)
                self.last_used = datetime.now()
                try:
                    return await asyncio.wait_for(self._execute(command), timeout)
                except asyncio.TimeoutError:
                    raise CommandTimeoutError(command, timeout) from None
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def close(self) -> None:
        """
        Close the session once in-flight commands have finished.

        Idempotent. New commands are refused as soon as close is called.
        """
        self._closing = True
        await self._idle.wait()
        if not self._closed:
            self._closed = True
            await self._disconnect()
