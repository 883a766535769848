"""Asynchronous subprocess execution with PTY support for color preservation.

Compilers and packaging tools check isatty() to decide whether to emit
ANSI colors, so on POSIX hosts with a real terminal commands run through
a pseudo-terminal. Every invocation returns the exit code together with
the captured output, and may be bounded by a timeout.
"""

import asyncio
import contextlib
import os
import shlex
import signal
import subprocess
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from opkit.errors import ExternalProcessTimeout

if sys.platform != "win32":
    import fcntl
    import pty
    import struct
    import termios

Command = list[str] | str


@dataclass(frozen=True)
class ProcessResult:
    """Exit code and combined stdout/stderr of a finished process."""

    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def describe(cmd: Command) -> str:
    """Render a command for log output."""
    if isinstance(cmd, str):
        return cmd
    return shlex.join(cmd)


class ProcessRunner:
    """Async subprocess runner with optional PTY for color preservation.

    A command given as a list is executed directly; a command given as a
    string is handed to the system shell (user build commands and the
    compile line rely on shell expansion).
    """

    def __init__(self, use_pty: bool = True, timeout: float | None = None) -> None:
        """Initialize the process runner.

        Args:
            use_pty: Whether to use PTY (only effective on a POSIX TTY)
            timeout: Default timeout in seconds applied to every command
        """
        self.use_pty = use_pty and sys.platform != "win32" and sys.stdout.isatty()
        self.timeout = timeout

    async def run(
        self,
        cmd: Command,
        cwd: Path,
        env: dict[str, str] | None = None,
        on_output: Callable[[str], Awaitable[None]] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run command asynchronously, streaming output via async callback.

        Args:
            cmd: Argument list, or a shell command string
            cwd: Working directory for the command
            env: Extra environment variables merged over the current env
            on_output: Async callback for output chunks
            timeout: Seconds before the process is killed (overrides default)

        Returns:
            Exit code and captured output

        Raises:
            ExternalProcessTimeout: If the command outlives the timeout
        """
        limit = timeout if timeout is not None else self.timeout
        chunks: list[str] = []

        async def collect(text: str) -> None:
            chunks.append(text)
            if on_output:
                await on_output(text)

        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        if self.use_pty:
            coro = self._run_with_pty(cmd, cwd, full_env, collect)
        else:
            coro = self._run_simple(cmd, cwd, full_env, collect)

        try:
            exit_code = await asyncio.wait_for(coro, timeout=limit)
        except asyncio.TimeoutError:
            raise ExternalProcessTimeout(describe(cmd), limit) from None

        return ProcessResult(exit_code=exit_code, output="".join(chunks))

    def spawn(self, cmd: list[str], cwd: Path) -> None:
        """Start a process and return immediately without waiting for it."""
        subprocess.Popen(cmd, cwd=cwd, start_new_session=sys.platform != "win32")

    async def _create(self, cmd: Command, cwd: Path, env: dict[str, str], **kwargs):
        # Own process group, so a timeout can take down the shell's children too
        if sys.platform != "win32":
            kwargs["start_new_session"] = True
        if isinstance(cmd, str):
            return await asyncio.create_subprocess_shell(cmd, cwd=cwd, env=env, **kwargs)
        return await asyncio.create_subprocess_exec(*cmd, cwd=cwd, env=env, **kwargs)

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill the process and everything it started."""
        if sys.platform == "win32":
            if process.returncode is None:
                process.kill()
            return
        # The group outlives its leader when a grandchild is still running
        with contextlib.suppress(ProcessLookupError):
            os.killpg(process.pid, signal.SIGKILL)

    async def _run_with_pty(
        self,
        cmd: Command,
        cwd: Path,
        env: dict[str, str],
        on_output: Callable[[str], Awaitable[None]],
    ) -> int:
        """Run with PTY for color preservation."""
        master_fd, slave_fd = pty.openpty()

        # rows, cols, xpixel, ypixel
        size = struct.pack("HHHH", 24, 120, 0, 0)
        fcntl.ioctl(master_fd, termios.TIOCSWINSZ, size)

        try:
            process = await self._create(
                cmd, cwd, env, stdin=slave_fd, stdout=slave_fd, stderr=slave_fd
            )
        finally:
            os.close(slave_fd)

        try:
            await self._read_fd_async(master_fd, on_output)
            await process.wait()
        except asyncio.CancelledError:
            self._kill(process)
            raise
        finally:
            os.close(master_fd)
        return process.returncode or 0

    async def _run_simple(
        self,
        cmd: Command,
        cwd: Path,
        env: dict[str, str],
        on_output: Callable[[str], Awaitable[None]],
    ) -> int:
        """Non-PTY execution using native asyncio streams."""
        process = await self._create(
            cmd,
            cwd,
            env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )

        try:
            if process.stdout:
                async for line in process.stdout:
                    await on_output(line.decode("utf-8", errors="replace"))
            await process.wait()
        except asyncio.CancelledError:
            self._kill(process)
            raise
        return process.returncode or 0

    async def _read_fd_async(
        self,
        fd: int,
        on_output: Callable[[str], Awaitable[None]],
    ) -> None:
        """Read from the PTY master until the child closes it."""
        loop = asyncio.get_running_loop()
        chunks: asyncio.Queue[bytes] = asyncio.Queue()

        def on_readable() -> None:
            try:
                data = os.read(fd, 4096)
            except OSError:
                # EIO once the child side is closed
                data = b""
            if not data:
                loop.remove_reader(fd)
            chunks.put_nowait(data)

        loop.add_reader(fd, on_readable)
        try:
            while True:
                data = await chunks.get()
                if not data:
                    break
                await on_output(data.decode("utf-8", errors="replace"))
        finally:
            loop.remove_reader(fd)
