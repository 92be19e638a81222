"""
Remote Session Pool.

Holds at most one live session per connection id. Get-or-create runs
under a per-id asyncio.Lock, so concurrent first use of an id opens a
single session.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from cbx_mcp_shell.config.models import SshConnectionSettings
from cbx_mcp_shell.executor.types import ExecutorError, SSHConnectionError
from cbx_mcp_shell.session.base import RemoteSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, SshConnectionSettings], Awaitable[RemoteSession]]


class SessionPool:
    """
    Owns every remote session of the process.

    Sessions are created lazily by `get_session` and destroyed only by the
    pool (`close_session`, `close_all`), never by callers.
    """

    def __init__(self, factory: SessionFactory):
        """
        Initialize an empty pool.

        Args:
            factory: Async callable establishing a new session
        """
        self._factory = factory
        self._sessions: dict[str, RemoteSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._closed = False

    def _lock_for(self, connection_id: str) -> asyncio.Lock:
        return self._locks.setdefault(connection_id, asyncio.Lock())

    @property
    def active_count(self) -> int:
        """Number of sessions currently held."""
        return len(self._sessions)

    @property
    def connection_ids(self) -> list[str]:
        """Ids of sessions currently held."""
        return list(self._sessions)

    async def get_session(
        self, connection_id: str, settings: SshConnectionSettings
    ) -> RemoteSession:
        """
        Return the live session for an id, establishing one if needed.

        Args:
            connection_id: Logical connection id
            settings: Host and credentials used if a session must be opened

        Returns:
            The pooled RemoteSession

        Raises:
            SSHConnectionError: If establishing fails (nothing is retained)
                or the pool has been closed
        """
        async with self._lock_for(connection_id):
            if self._closed:
                raise SSHConnectionError(connection_id, "session pool is closed")

            session = self._sessions.get(connection_id)
            if session is not None:
                if session.is_alive and not session.closed:
                    return session
                logger.warning(f"SSH session '{connection_id}' is no longer alive, reconnecting")
                del self._sessions[connection_id]
                await session.close()

            logger.info(f"Opening SSH session '{connection_id}' to {settings.host}:{settings.port}")
            try:
                session = await self._factory(connection_id, settings)
            except ExecutorError:
                raise
            except Exception as e:
                raise SSHConnectionError(connection_id, str(e)) from e

            self._sessions[connection_id] = session
            return session

    async def close_session(self, connection_id: str) -> None:
        """
        Close and forget the session for an id.

        Waits for commands in flight on the session. Closing an id with no
        session is a no-op.
        """
        if connection_id not in self._sessions and connection_id not in self._locks:
            return

        async with self._lock_for(connection_id):
            session = self._sessions.pop(connection_id, None)
            if session is None:
                return
            await session.close()
            logger.info(f"Closed SSH session '{connection_id}'")

    async def close_all(self) -> None:
        """
        Close every session and refuse new ones.

        Called at process shutdown. Idempotent; failures to close one
        session are logged and do not stop the others.
        """
        self._closed = True
        connection_ids = list(self._sessions)
        if not connection_ids:
            return

        logger.info(f"Closing {len(connection_ids)} SSH session(s)")
        results = await asyncio.gather(
            *(self.close_session(cid) for cid in connection_ids),
            return_exceptions=True,
        )
        for cid, result in zip(connection_ids, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to close SSH session '{cid}': {result}")
