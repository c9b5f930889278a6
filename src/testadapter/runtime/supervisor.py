# src/testadapter/runtime/supervisor.py

"""
Launches the interpreter process for one group of tests and streams its output.
"""

import asyncio
import subprocess
import sys
import threading
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

import psutil
import structlog

from testadapter.exceptions import ProcessLaunchError
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.supervisor")

# Runner events carry captured test output, so lines can be long. Longer
# lines are dropped.
STREAM_LIMIT = 16 * 1024 * 1024

LineCallback = Callable[[str], None]
AfterLaunchHook = Callable[[asyncio.subprocess.Process], Awaitable[None]]


def kill_process_tree(pid: int, include_children: bool = True) -> None:
    """Force-kills a process and, optionally, everything it spawned."""
    try:
        parent = psutil.Process(pid)
        victims = parent.children(recursive=True) if include_children else []
    except psutil.NoSuchProcess:
        return
    victims.append(parent)

    for proc in victims:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            log.warning("Access denied killing process", pid=proc.pid, emoji_key="kill")


class ProcessSupervisor:
    """
    Owns a single interpreter process from launch to teardown.

    `kill` may be called from any thread. It shares a lock with teardown so a
    process handle is never killed while it is being released.
    """

    def __init__(self, kill_tree: bool = True, stream_limit: int = STREAM_LIMIT):
        self._kill_tree = kill_tree
        self._stream_limit = stream_limit
        self._lock = threading.Lock()
        self._process: asyncio.subprocess.Process | None = None
        self._readers: list[asyncio.Task] = []
        self.was_killed = False

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    async def launch(
        self,
        executable: Path,
        arguments: Sequence[str],
        working_dir: Path,
        on_line: LineCallback,
    ) -> asyncio.subprocess.Process:
        """
        Starts the interpreter with no visible console.

        Both stdout and stderr are pumped line by line into `on_line`.
        """
        command = [str(executable), *arguments]
        run_log = log.bind(command=" ".join(command), working_dir=str(working_dir))
        run_log.info("Launching interpreter", emoji_key="launch")

        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=working_dir,
                limit=self._stream_limit,
                **kwargs,
            )
        except FileNotFoundError as e:
            run_log.error("Interpreter or working directory not found", error=str(e))
            raise ProcessLaunchError(f"Unable to start '{executable}': {e}") from e
        except OSError as e:
            run_log.error("Failed to launch interpreter", error=str(e))
            raise ProcessLaunchError(f"Unable to start '{executable}': {e}") from e

        with self._lock:
            self._process = process
            self.was_killed = False
        self._readers = [
            asyncio.create_task(self._pump(process.stdout, on_line, "stdout")),
            asyncio.create_task(self._pump(process.stderr, on_line, "stderr")),
        ]
        run_log.debug("Interpreter started", pid=process.pid)
        return process

    async def _read_line(self, stream: asyncio.StreamReader, stream_name: str) -> bytes | None:
        """
        Reads one line; b"" at end of stream.

        A line longer than the stream limit is consumed up to and including its
        newline and dropped whole (returns None), so its tail never surfaces as
        a line of its own.
        """
        try:
            return await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            head = await stream.read(e.consumed)

        dropped = len(head)
        while True:
            try:
                dropped += len(await stream.readuntil(b"\n"))
                break
            except asyncio.IncompleteReadError as e:
                dropped += len(e.partial)
                break
            except asyncio.LimitOverrunError as e:
                dropped += len(await stream.read(e.consumed))

        # Runner events lead with their type and title, so the head names the lost event.
        log.warning(
            "Discarding over-long output line",
            stream=stream_name,
            size=dropped,
            limit=self._stream_limit,
            line_start=head[:200].decode("utf-8", errors="replace"),
        )
        return None

    async def _pump(self, stream: asyncio.StreamReader | None, on_line: LineCallback, stream_name: str) -> None:
        if stream is None:
            return
        while True:
            raw = await self._read_line(stream, stream_name)
            if raw is None:
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            try:
                on_line(line)
            except Exception:
                log.exception("Output line handler failed", stream=stream_name)

    async def send_line(self, line: str) -> None:
        """Writes one line to the process's standard input, leaving it open."""
        process = self._process
        if process is None or process.stdin is None:
            raise RuntimeError("No running process to write to")
        try:
            process.stdin.write(line.encode("utf-8") + b"\n")
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            log.warning("Interpreter closed its input before the test list was sent", error=str(e))

    async def wait(self) -> int:
        """Blocks until the process exits and its output has been drained."""
        process = self._process
        if process is None:
            raise RuntimeError("No process has been launched")
        exit_code = await process.wait()
        if self._readers:
            await asyncio.gather(*self._readers, return_exceptions=True)
        log.info("Interpreter exited", pid=process.pid, exit_code=exit_code, killed=self.was_killed)
        return exit_code

    def kill(self) -> None:
        """Force-kills the process without a grace period. Safe to call from any thread."""
        with self._lock:
            process = self._process
            if process is None or process.returncode is not None:
                return
            self.was_killed = True
            log.warning("Killing interpreter process", pid=process.pid, emoji_key="kill")
            kill_process_tree(process.pid, include_children=self._kill_tree)

    async def close(self) -> None:
        """Kills the process if it is still alive and releases its handle."""
        process = self._process
        if process is None:
            return
        try:
            if process.returncode is None:
                self.kill()
            await process.wait()
            for reader in self._readers:
                if not reader.done():
                    reader.cancel()
            await asyncio.gather(*self._readers, return_exceptions=True)
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()
        finally:
            with self._lock:
                self._process = None
                self._readers = []

    async def run(
        self,
        executable: Path,
        arguments: Sequence[str],
        working_dir: Path,
        on_line: LineCallback,
        input_line: str | None = None,
        after_launch: AfterLaunchHook | None = None,
    ) -> int:
        """
        Launches the process, sends `input_line`, and waits for it to exit.

        `after_launch` runs between launch and the stdin write (used to attach
        a debugger). The process is always killed and released on return,
        including when the calling task is cancelled.

        Returns:
            The process exit code.
        """
        process = await self.launch(executable, arguments, working_dir, on_line)
        try:
            if after_launch is not None:
                await after_launch(process)
            if input_line is not None and process.returncode is None:
                await self.send_line(input_line)
            return await self.wait()
        finally:
            await self.close()
