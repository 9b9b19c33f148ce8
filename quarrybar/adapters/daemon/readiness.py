"""Readiness probes for a freshly launched daemon.

A probe decides whether the daemon became servable, failed, or never became
ready within the timeout. Probes run off the control thread and must return
promptly once the cancel event is set.
"""

import contextlib
import logging
import re
import socket
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from quarrybar.adapters.daemon.timeouts import DaemonTimeouts
from quarrybar.ports.daemon import ProcessHandle

logger = logging.getLogger(__name__)


class ProbeOutcome(str, Enum):
    """Result classification of a readiness probe."""

    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of waiting for readiness.

    Attributes:
        outcome: What happened.
        reason: Diagnostic text for FAILED and TIMED_OUT outcomes.
    """

    outcome: ProbeOutcome
    reason: str = ""

    @staticmethod
    def ready() -> "ProbeResult":
        return ProbeResult(ProbeOutcome.READY)

    @staticmethod
    def failed(reason: str) -> "ProbeResult":
        return ProbeResult(ProbeOutcome.FAILED, reason)

    @staticmethod
    def timed_out(timeout: float) -> "ProbeResult":
        return ProbeResult(
            ProbeOutcome.TIMED_OUT,
            f"Daemon did not become ready within {timeout:g}s",
        )

    @staticmethod
    def cancelled() -> "ProbeResult":
        return ProbeResult(ProbeOutcome.CANCELLED)


def poll_until_ready(
    check: Callable[[], bool],
    handle: ProcessHandle,
    timeout: float,
    cancel: threading.Event,
    interval: float = DaemonTimeouts.READY_CHECK_INTERVAL,
) -> ProbeResult:
    """Poll a readiness check until it passes or the attempt ends.

    Checks, in order, on every iteration: cancellation, the readiness check,
    process death, and the deadline.

    Args:
        check: Returns True once the daemon is ready
        handle: Process being probed
        timeout: Seconds before giving up
        cancel: Set by the supervisor to abandon the probe
        interval: Seconds between checks

    Returns:
        ProbeResult describing how the wait ended
    """
    started = time.monotonic()
    deadline = started + timeout

    while True:
        if cancel.is_set():
            return ProbeResult.cancelled()

        if check():
            logger.info(
                f"Daemon is ready (took {time.monotonic() - started:.1f}s)"
            )
            return ProbeResult.ready()

        if not handle.is_alive():
            status = handle.wait(timeout=DaemonTimeouts.OUTPUT_JOIN)
            detail = status.describe() if status is not None else "process exited"
            return ProbeResult.failed(f"Daemon exited during startup ({detail})")

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return ProbeResult.timed_out(timeout)

        cancel.wait(min(interval, remaining))


class OutputSentinelProbe:
    """Ready once the daemon prints a line matching a pattern.

    Args:
        pattern: Regex searched (case-insensitive) in every output line.
    """

    def __init__(self, pattern: str):
        self.pattern = re.compile(pattern, re.IGNORECASE)

    def await_ready(
        self,
        handle: ProcessHandle,
        timeout: float,
        cancel: threading.Event,
    ) -> ProbeResult:
        seen = threading.Event()

        def on_line(line: str) -> None:
            if not seen.is_set() and self.pattern.search(line):
                logger.debug(f"Readiness line matched: {line}")
                seen.set()

        handle.add_output_listener(on_line)
        return poll_until_ready(seen.is_set, handle, timeout, cancel)


class SocketProbe:
    """Ready once the daemon accepts connections on its control socket.

    Uses a Unix socket when socket_path is given, TCP host:port otherwise.
    """

    def __init__(
        self,
        socket_path: Path | None = None,
        host: str = "127.0.0.1",
        port: int | None = None,
    ):
        """Initialize socket probe.

        Args:
            socket_path: Path to a Unix domain socket
            host: TCP host (when no socket_path)
            port: TCP port (when no socket_path)

        Raises:
            ValueError: If neither socket_path nor port is given
        """
        if socket_path is None and port is None:
            raise ValueError("SocketProbe needs socket_path or port")
        self.socket_path = socket_path
        self.host = host
        self.port = port

    @contextmanager
    def _connection(self) -> Iterator[socket.socket]:
        if self.socket_path is not None:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            address: str | tuple[str, int] = str(self.socket_path)
        else:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            address = (self.host, self.port)
        sock.settimeout(DaemonTimeouts.SOCKET_CONNECT)
        try:
            sock.connect(address)
            yield sock
        finally:
            with contextlib.suppress(OSError):
                sock.close()

    def accepts_connections(self) -> bool:
        """Check whether the daemon's socket accepts a connection right now."""
        try:
            with self._connection():
                return True
        except OSError:
            # Refused, missing socket file, or timeout - not ready yet
            return False

    def await_ready(
        self,
        handle: ProcessHandle,
        timeout: float,
        cancel: threading.Event,
    ) -> ProbeResult:
        return poll_until_ready(self.accepts_connections, handle, timeout, cancel)
