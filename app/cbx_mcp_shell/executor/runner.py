"""
Async local shell execution.

One call spawns one shell process and settles exactly once, on whichever
signal arrives first:
- both output streams ended and the process exited -> CommandResult
- a spawn or runtime error                          -> ProcessError
- the timeout elapsed                               -> CommandTimeoutError

Settlement is a single RUNNING -> SETTLED transition. All signals are
delivered on the event loop thread, so the transition cannot interleave
and every signal after the first is a no-op.
"""

import asyncio
import logging
import os
import signal
import sys
from enum import Enum
from typing import Optional, Sequence

from cbx_mcp_shell.executor.types import (
    CommandResult,
    CommandTimeoutError,
    ExecutorError,
    ProcessError,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536


class _State(str, Enum):
    RUNNING = "running"
    SETTLED = "settled"


class _Settlement:
    """First-wins, exactly-once outcome of one execution."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.state = _State.RUNNING
        self.future: asyncio.Future = loop.create_future()

    @property
    def settled(self) -> bool:
        return self.state is _State.SETTLED

    def resolve(self, result: CommandResult) -> bool:
        """Settle with a result. Returns False if already settled."""
        if self.settled:
            return False
        self.state = _State.SETTLED
        self.future.set_result(result)
        return True

    def reject(self, error: ExecutorError) -> bool:
        """Settle with an error. Returns False if already settled."""
        if self.settled:
            return False
        self.state = _State.SETTLED
        self.future.set_exception(error)
        return True


def _exit_code(returncode: Optional[int]) -> Optional[int]:
    """Negative return codes mean the process was killed by a signal."""
    if returncode is None or returncode < 0:
        return None
    return returncode


def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and, on POSIX, everything in its process group."""
    if process.returncode is not None:
        return
    try:
        if sys.platform != "win32":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def execute_shell_command(
    shell_command: str,
    shell_args: Sequence[str],
    command: str,
    working_dir: str,
    timeout_seconds: float,
) -> CommandResult:
    """
    Run command text through a shell.

    Args:
        shell_command: Shell executable
        shell_args: Fixed shell arguments, placed before the command text
        command: Command text, passed as the final argument
        working_dir: Current directory of the process
        timeout_seconds: Wall-clock limit measured from spawn

    Returns:
        CommandResult; a non-zero exit code is still a result

    Raises:
        ProcessError: If the shell cannot be spawned or its streams fail
        CommandTimeoutError: If the timeout elapses; the process is killed
            and partial output discarded
    """
    loop = asyncio.get_running_loop()
    settlement = _Settlement(loop)

    logger.debug(f"Spawning {shell_command} {list(shell_args)} in {working_dir}")
    try:
        process = await asyncio.create_subprocess_exec(
            shell_command,
            *shell_args,
            command,
            cwd=working_dir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=sys.platform != "win32",
        )
    except OSError as e:
        settlement.reject(ProcessError(f"Shell process error: {e}"))
        return await settlement.future

    done = {"stdout": False, "stderr": False, "exit": False}
    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []

    def try_resolve() -> None:
        if all(done.values()):
            settlement.resolve(
                CommandResult(
                    stdout=b"".join(stdout_chunks).decode("utf-8", errors="replace"),
                    stderr=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
                    exit_code=_exit_code(process.returncode),
                )
            )

    async def drain(stream: asyncio.StreamReader, chunks: list[bytes], name: str) -> None:
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
        done[name] = True
        try_resolve()

    async def wait_exit() -> None:
        await process.wait()
        done["exit"] = True
        try_resolve()

    def on_task_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            settlement.reject(ProcessError(f"Shell process error: {error}"))

    def on_timeout() -> None:
        if settlement.reject(CommandTimeoutError(command, timeout_seconds)):
            logger.warning(f"Command timed out after {timeout_seconds}s, killing pid {process.pid}")
            _terminate(process)

    tasks = [
        asyncio.create_task(drain(process.stdout, stdout_chunks, "stdout")),
        asyncio.create_task(drain(process.stderr, stderr_chunks, "stderr")),
        asyncio.create_task(wait_exit()),
    ]
    for task in tasks:
        task.add_done_callback(on_task_done)

    timer = loop.call_later(timeout_seconds, on_timeout)
    try:
        return await settlement.future
    finally:
        timer.cancel()
        if not all(done.values()):
            # Failed, timed out or cancelled: make sure nothing keeps running
            _terminate(process)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await process.wait()
