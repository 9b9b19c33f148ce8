"""Port interfaces for daemon supervision.

Defines the protocols the supervisor depends on, so the state machine can be
driven by real subprocesses or by test doubles.
"""

import threading
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol

from quarrybar.domain.state import DaemonState

if TYPE_CHECKING:
    from quarrybar.adapters.daemon.process import ExitStatus
    from quarrybar.adapters.daemon.readiness import ProbeResult

StateObserver = Callable[[DaemonState], None]
"""Callback invoked with the new state after every committed transition."""

OutputListener = Callable[[str], None]
"""Callback invoked with each line the daemon writes to stdout or stderr."""


class ProcessHandle(Protocol):
    """Protocol for a single supervised OS child process."""

    @property
    def pid(self) -> int: ...

    @property
    def args(self) -> list[str]: ...

    def is_alive(self) -> bool:
        """Check whether the process has not exited yet."""
        ...

    def wait(self, timeout: float | None = None) -> "ExitStatus | None":
        """Block until the process exits.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            ExitStatus once exited, None if still running after timeout
        """
        ...

    def terminate(self, grace_period: float) -> "ExitStatus":
        """Stop the process, escalating to a forced kill after grace_period.

        Returns:
            ExitStatus of the reaped process
        """
        ...

    def add_output_listener(self, listener: OutputListener) -> None:
        """Register a callback for output lines, replaying lines seen so far."""
        ...


class ProcessLauncher(Protocol):
    """Protocol for starting processes."""

    def __call__(
        self,
        executable: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle:
        """Launch a process.

        Raises:
            LaunchFailure: If the executable is missing or not runnable
        """
        ...


class ReadinessProbe(Protocol):
    """Protocol for deciding when a freshly launched daemon can serve requests."""

    def await_ready(
        self,
        handle: ProcessHandle,
        timeout: float,
        cancel: threading.Event,
    ) -> "ProbeResult":
        """Block until the daemon is ready, failed, timed out, or cancel is set."""
        ...


class TargetSelector(Protocol):
    """Protocol for the component choosing which database the daemon serves."""

    @property
    def current(self) -> str: ...

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a change callback; returns a function that unsubscribes."""
        ...
