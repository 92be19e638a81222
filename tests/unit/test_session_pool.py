# tests/unit/test_session_pool.py
"""
Unit tests for the remote session pool and session close semantics.

Uses in-memory sessions from conftest, no network access.
"""

import asyncio

import pytest

from cbx_mcp_shell.executor.types import (
    CommandTimeoutError,
    SessionClosedError,
    SSHConnectionError,
)


class TestSessionPool:

    @pytest.mark.asyncio
    async def test_reuses_live_session(self, session_pool, session_factory, box_settings):
        first = await session_pool.get_session("box", box_settings)
        second = await session_pool.get_session("box", box_settings)

        assert first is second
        assert session_factory.calls == 1
        assert session_pool.active_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_use_opens_one_session(
        self, session_pool, session_factory, box_settings
    ):
        session_factory.connect_delay = 0.05

        sessions = await asyncio.gather(
            *(session_pool.get_session("box", box_settings) for _ in range(5))
        )

        assert session_factory.calls == 1
        assert all(s is sessions[0] for s in sessions)

    @pytest.mark.asyncio
    async def test_ids_are_independent(self, session_pool, session_factory, config):
        box = await session_pool.get_session("box", config.ssh.connections["box"])
        db = await session_pool.get_session("db", config.ssh.connections["db"])

        assert box is not db
        assert sorted(session_pool.connection_ids) == ["box", "db"]

    @pytest.mark.asyncio
    async def test_failed_connect_retains_nothing(self, session_pool, session_factory, box_settings):
        session_factory.fail_with = OSError("connection refused")

        with pytest.raises(SSHConnectionError, match="connection refused"):
            await session_pool.get_session("box", box_settings)
        assert session_pool.active_count == 0

        session_factory.fail_with = None
        session = await session_pool.get_session("box", box_settings)

        assert session.is_alive
        assert session_factory.calls == 2

    @pytest.mark.asyncio
    async def test_connection_error_passes_through(self, session_pool, session_factory, box_settings):
        error = SSHConnectionError("box", "Authentication failed.")
        session_factory.fail_with = error

        with pytest.raises(SSHConnectionError) as exc_info:
            await session_pool.get_session("box", box_settings)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_dead_session_is_replaced(self, session_pool, session_factory, box_settings):
        old = await session_pool.get_session("box", box_settings)
        old.alive = False

        new = await session_pool.get_session("box", box_settings)

        assert new is not old
        assert old.disconnected
        assert session_factory.calls == 2

    @pytest.mark.asyncio
    async def test_close_session_is_idempotent(self, session_pool, box_settings):
        session = await session_pool.get_session("box", box_settings)

        await session_pool.close_session("box")
        await session_pool.close_session("box")

        assert session.disconnected
        assert session_pool.active_count == 0

    @pytest.mark.asyncio
    async def test_close_unknown_id_is_noop(self, session_pool):
        await session_pool.close_session("never-opened")

        assert session_pool.active_count == 0

    @pytest.mark.asyncio
    async def test_close_unknown_ids_keep_no_locks(self, session_pool):
        for n in range(100):
            await session_pool.close_session(f"random-{n}")

        assert session_pool._locks == {}

    @pytest.mark.asyncio
    async def test_new_session_after_close(self, session_pool, session_factory, box_settings):
        first = await session_pool.get_session("box", box_settings)
        await session_pool.close_session("box")

        second = await session_pool.get_session("box", box_settings)

        assert second is not first
        assert session_factory.calls == 2

    @pytest.mark.asyncio
    async def test_close_all(self, session_pool, session_factory, config):
        await session_pool.get_session("box", config.ssh.connections["box"])
        await session_pool.get_session("db", config.ssh.connections["db"])

        await session_pool.close_all()
        await session_pool.close_all()

        assert session_pool.active_count == 0
        assert all(s.disconnected for s in session_factory.sessions)

        with pytest.raises(SSHConnectionError, match="closed"):
            await session_pool.get_session("box", config.ssh.connections["box"])


class TestRemoteSession:

    @pytest.mark.asyncio
    async def test_run_returns_result(self, session_pool, box_settings):
        session = await session_pool.get_session("box", box_settings)

        result = await session.run("uptime", timeout=5)

        assert result.stdout == "ok\n"
        assert session.commands == ["uptime"]
        assert session.last_used is not None

    @pytest.mark.asyncio
    async def test_close_waits_for_in_flight(self, session_pool, session_factory, box_settings):
        session_factory.run_delay = 0.1
        session = await session_pool.get_session("box", box_settings)

        running = asyncio.create_task(session.run("long", timeout=5))
        await asyncio.sleep(0.01)
        closing = asyncio.create_task(session_pool.close_session("box"))
        await asyncio.sleep(0.01)

        assert session.closed
        assert not session.disconnected

        with pytest.raises(SessionClosedError):
            await session.run("late", timeout=5)

        result = await running
        await closing

        assert result.stdout == "ok\n"
        assert session.disconnected
        assert session.commands == ["long"]

    @pytest.mark.asyncio
    async def test_timeout_leaves_session_usable(self, session_pool, session_factory, box_settings):
        session_factory.run_delay = 1.0
        session = await session_pool.get_session("box", box_settings)

        with pytest.raises(CommandTimeoutError, match="timed out after 0.05 seconds"):
            await session.run("sleep 10", timeout=0.05)

        session.delay = 0
        result = await session.run("echo", timeout=5)

        assert result.exit_code == 0
        assert session.in_flight == 0

    @pytest.mark.asyncio
    async def test_channel_limit(self, session_pool, session_factory, box_settings):
        session_factory.run_delay = 0.02
        session = await session_pool.get_session("box", box_settings)

        results = await asyncio.gather(*(session.run(f"cmd {n}", timeout=5) for n in range(6)))

        assert len(results) == 6
        assert session.peak == 2
