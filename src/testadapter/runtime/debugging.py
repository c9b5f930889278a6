# src/testadapter/runtime/debugging.py

"""
Debug-port selection and the debugger attach loop for interpreter processes.
"""

import asyncio
import random
import socket

import psutil
import structlog

from testadapter.exceptions import DebuggerAttachError, PortSearchError
from testadapter.protocols import Debugger
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.debugging")

# Port supplier id the host's remote debugger uses for unsecured TCP transports.
REMOTE_DEBUG_TRANSPORT_ID = "{9E16F805-5EFC-4CE5-8B67-9AE9B643EF80}"
EPHEMERAL_PORT_RANGE = (49152, 65535)


def _ports_in_use() -> set[int]:
    try:
        connections = psutil.net_connections(kind="tcp")
    except psutil.AccessDenied:
        log.debug("Listing TCP connections not permitted, relying on bind checks")
        return set()
    return {conn.laddr.port for conn in connections if conn.laddr}


def _can_bind(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
    return True


def find_free_port(attempts: int = 100, rng: random.Random | None = None) -> int:
    """
    Picks a free port from the ephemeral range.

    Scans upward (wrapping within the range) from a random starting port,
    skipping ports with active connections.

    Raises:
        PortSearchError: If no free port is found within `attempts` candidates.
    """
    rng = rng or random.Random()
    low, high = EPHEMERAL_PORT_RANGE
    span = high - low + 1
    start = rng.randint(low, high)
    in_use = _ports_in_use()

    for offset in range(min(attempts, span)):
        port = low + (start - low + offset) % span
        if port in in_use or not _can_bind(port):
            continue
        log.debug("Selected debug port", port=port, emoji_key="debug")
        return port

    raise PortSearchError(f"No free debug port found after {attempts} attempts")


def debug_break_args(port: int, flag_template: str = "--debug-brk={port}") -> list[str]:
    """Interpreter arguments that make it wait for a debugger on `port`."""
    return [flag_template.format(port=port)]


def connection_string(port: int) -> str:
    # '#ping=0' stops the debugger from probing the port, which would release
    # the break-on-start before breakpoints are bound.
    return f"tcp://localhost:{port}#ping=0"


async def attach_debugger(
    debugger: Debugger,
    process: asyncio.subprocess.Process,
    port: int,
    poll_interval: float = 0.5,
) -> bool:
    """
    Repeatedly tries to attach `debugger` to `process` until it succeeds or the
    process exits.

    Returns:
        True once attached, False if the process exited first.

    Raises:
        DebuggerAttachError: If the debugger reports a failure.
    """
    qualifier = connection_string(port)
    attach_log = log.bind(pid=process.pid, port=port)
    attempts = 0

    while process.returncode is None:
        attempts += 1
        try:
            attached = await asyncio.to_thread(
                debugger.attach, process, REMOTE_DEBUG_TRANSPORT_ID, qualifier
            )
        except Exception as e:
            attach_log.error("Debugger attach failed", error=str(e), attempts=attempts)
            raise DebuggerAttachError(f"Error occurred connecting to debuggee: {e}") from e

        if attached:
            attach_log.info("Debugger attached", attempts=attempts, emoji_key="debug")
            return True

        try:
            await asyncio.wait_for(process.wait(), timeout=poll_interval)
        except TimeoutError:
            continue

    attach_log.warning("Interpreter exited before the debugger could attach", attempts=attempts)
    return False
