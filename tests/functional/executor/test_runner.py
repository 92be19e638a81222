#!/usr/bin/env python3
"""
Functional tests for the local shell runner.

These tests spawn real /bin/sh processes and verify:
1. Output capture and exit codes
2. Timeout handling, including cleanup of child processes
3. Spawn errors
"""

import asyncio
import os
import sys
import time
from pathlib import Path

import pytest

from cbx_mcp_shell.executor import (
    CommandTimeoutError,
    ProcessError,
    execute_shell_command,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires /bin/sh")

SH = "/bin/sh"
SH_ARGS = ("-c",)


async def run(command: str, cwd: Path, timeout: float = 5):
    return await execute_shell_command(SH, SH_ARGS, command, str(cwd), timeout)


def _is_running(pid: int) -> bool:
    """True if pid exists and is not a zombie."""
    stat = Path(f"/proc/{pid}/stat")
    if stat.parent.parent.exists():
        try:
            state = stat.read_text().rsplit(")", 1)[1].split()[0]
        except FileNotFoundError:
            return False
        return state != "Z"
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


class TestRunner:
    """Test command execution with real subprocesses."""

    @pytest.mark.asyncio
    async def test_successful_execution(self, tmp_path):
        result = await run("echo hello", tmp_path)

        assert result.stdout == "hello\n"
        assert result.stderr == ""
        assert result.exit_code == 0
        assert result.success

    @pytest.mark.asyncio
    async def test_exit_code_and_stderr_preserved(self, tmp_path):
        result = await run("echo out; echo oops >&2; exit 42", tmp_path)

        assert result.exit_code == 42
        assert result.stdout == "out\n"
        assert result.stderr == "oops\n"
        assert not result.success

    @pytest.mark.asyncio
    async def test_runs_in_working_directory(self, tmp_path):
        result = await run("pwd", tmp_path)

        assert os.path.realpath(result.stdout.strip()) == os.path.realpath(tmp_path)

    @pytest.mark.asyncio
    async def test_killed_by_signal_has_no_exit_code(self, tmp_path):
        result = await run("kill -9 $$", tmp_path)

        assert result.exit_code is None
        assert result.reported_exit_code == -1

    @pytest.mark.asyncio
    async def test_large_output(self, tmp_path):
        result = await run("head -c 200000 /dev/zero | tr '\\0' x", tmp_path)

        assert len(result.stdout) == 200000
        assert set(result.stdout) == {"x"}

    @pytest.mark.asyncio
    async def test_stdin_is_closed(self, tmp_path):
        result = await run("cat", tmp_path, timeout=2)

        assert result.exit_code == 0
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_mix(self, tmp_path):
        results = await asyncio.gather(*(run(f"echo {n}", tmp_path) for n in range(5)))

        assert [r.stdout for r in results] == [f"{n}\n" for n in range(5)]


class TestTimeout:
    """Test timeout enforcement."""

    @pytest.mark.asyncio
    async def test_timeout_raises(self, tmp_path):
        start = time.monotonic()

        with pytest.raises(CommandTimeoutError) as exc_info:
            await run("sleep 30", tmp_path, timeout=0.3)

        assert time.monotonic() - start < 5
        assert str(exc_info.value) == "Command execution timed out after 0.3 seconds"
        assert exc_info.value.kind == "timeout"

    @pytest.mark.asyncio
    async def test_timeout_kills_process_tree(self, tmp_path):
        command = "echo $$ > shell.pid; sleep 30 & echo $! > child.pid; wait"

        with pytest.raises(CommandTimeoutError):
            await run(command, tmp_path, timeout=0.5)

        shell_pid = int((tmp_path / "shell.pid").read_text())
        child_pid = int((tmp_path / "child.pid").read_text())

        deadline = time.monotonic() + 3
        while time.monotonic() < deadline and (_is_running(shell_pid) or _is_running(child_pid)):
            await asyncio.sleep(0.05)

        assert not _is_running(shell_pid)
        assert not _is_running(child_pid)

    @pytest.mark.asyncio
    async def test_fast_command_beats_timeout(self, tmp_path):
        result = await run("echo quick", tmp_path, timeout=2)

        assert result.stdout == "quick\n"


class TestSpawnErrors:
    """Test failures to start the shell."""

    @pytest.mark.asyncio
    async def test_missing_shell(self, tmp_path):
        with pytest.raises(ProcessError, match="Shell process error"):
            await execute_shell_command("/nonexistent/shell", SH_ARGS, "echo", str(tmp_path), 5)

    @pytest.mark.asyncio
    async def test_missing_working_directory(self, tmp_path):
        with pytest.raises(ProcessError):
            await run("echo", tmp_path / "does-not-exist")
