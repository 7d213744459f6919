"""Child process handles for the recorder and uploader.

This module owns the asyncio subprocess lifecycle. It separates process I/O
from the session state machine, which only sees the ProcessHandle protocol.
"""

import asyncio
import logging
import os
import shutil
import signal
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessExit:
    """Exit status and captured output of a finished process."""

    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()


class ProcessHandle(Protocol):
    """Protocol for a spawned child process."""

    @property
    def pid(self) -> int:
        ...

    @property
    def is_running(self) -> bool:
        ...

    def interrupt(self) -> None:
        """Ask the process to stop cleanly (SIGINT)."""
        ...

    def kill(self) -> None:
        """Force the process to terminate (SIGKILL)."""
        ...

    async def wait(self) -> ProcessExit:
        """Wait for exit and return status plus captured output."""
        ...


class ProcessSpawner(Protocol):
    """Protocol for starting child processes."""

    def which(self, executable: str) -> Optional[str]:
        """Resolve an executable, or None if it cannot be found."""
        ...

    async def spawn(
        self, argv: Sequence[str], stdin_data: Optional[bytes] = None
    ) -> ProcessHandle:
        """Start a process from an argument vector.

        stdin_data, if given, is written to the child's stdin, which is then
        closed; otherwise stdin is /dev/null.
        """
        ...


class SubprocessHandle:
    """ProcessHandle backed by asyncio.subprocess.

    The child runs in its own session, so signals go to its whole process
    group and a terminal Ctrl-C does not reach it.
    """

    def __init__(self, process: asyncio.subprocess.Process, argv: Sequence[str]):
        self._process = process
        self.argv = list(argv)
        self._exit: Optional[ProcessExit] = None
        self._wait_lock = asyncio.Lock()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def is_running(self) -> bool:
        return self._process.returncode is None

    def _signal(self, sig: signal.Signals) -> None:
        if not self.is_running:
            return
        try:
            os.killpg(self._process.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            self._process.send_signal(sig)

    def interrupt(self) -> None:
        logger.debug("Interrupting process", extra={"pid": self.pid})
        self._signal(signal.SIGINT)

    def kill(self) -> None:
        logger.debug("Killing process", extra={"pid": self.pid})
        self._signal(signal.SIGKILL)

    async def wait(self) -> ProcessExit:
        async with self._wait_lock:
            if self._exit is None:
                stdout, stderr = await self._process.communicate()
                self._exit = ProcessExit(
                    returncode=self._process.returncode,
                    stdout=stdout or b"",
                    stderr=stderr or b"",
                )
        return self._exit


class AsyncioProcessSpawner:
    """Spawns real child processes on the running event loop."""

    def which(self, executable: str) -> Optional[str]:
        return shutil.which(executable)

    async def spawn(
        self, argv: Sequence[str], stdin_data: Optional[bytes] = None
    ) -> SubprocessHandle:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        logger.info(
            f"Started {os.path.basename(argv[0])}",
            extra={"pid": process.pid, "argv0": argv[0]},
        )
        if stdin_data is not None:
            process.stdin.write(stdin_data)
            try:
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.warning(f"Could not write to stdin: {e}", extra={"pid": process.pid})
            process.stdin.close()
        return SubprocessHandle(process, argv)
