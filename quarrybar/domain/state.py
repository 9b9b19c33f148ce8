"""Daemon state and command value types.

The supervisor publishes exactly one DaemonState at a time. Observers match on
``state.kind``; only RUNNING and ERROR carry data (the bound target and the
diagnostic message respectively).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StateKind(str, Enum):
    """Lifecycle phase of the supervised daemon."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    ERROR = "error"


@dataclass(frozen=True)
class DaemonState:
    """Current published state of the daemon.

    Use the constructors (``stopped()``, ``starting()``, ``running(target)``,
    ``error(message)``) rather than building instances directly.

    Attributes:
        kind: Lifecycle phase.
        target: Database the daemon is bound to (RUNNING only).
        message: Human-readable diagnostic (ERROR only).
    """

    kind: StateKind
    target: str | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.kind is StateKind.RUNNING and not self.target:
            raise ValueError("running state requires a target")
        if self.kind is StateKind.ERROR and self.message is None:
            raise ValueError("error state requires a message")
        if self.kind is not StateKind.RUNNING and self.target is not None:
            raise ValueError(f"{self.kind.value} state cannot carry a target")
        if self.kind is not StateKind.ERROR and self.message is not None:
            raise ValueError(f"{self.kind.value} state cannot carry a message")

    @staticmethod
    def stopped() -> DaemonState:
        return DaemonState(StateKind.STOPPED)

    @staticmethod
    def starting() -> DaemonState:
        return DaemonState(StateKind.STARTING)

    @staticmethod
    def running(target: str) -> DaemonState:
        return DaemonState(StateKind.RUNNING, target=target)

    @staticmethod
    def error(message: str) -> DaemonState:
        return DaemonState(StateKind.ERROR, message=message)

    @property
    def is_active(self) -> bool:
        """True while a daemon process is expected to exist."""
        return self.kind in (StateKind.STARTING, StateKind.RUNNING)

    def __str__(self) -> str:
        if self.kind is StateKind.RUNNING:
            return f"running({self.target})"
        if self.kind is StateKind.ERROR:
            return f"error({self.message})"
        return self.kind.value


class CommandKind(str, Enum):
    """Control requests accepted by the supervisor."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"
    RETARGET = "retarget"


@dataclass(frozen=True)
class Command:
    """A queued control request.

    Attributes:
        kind: Which operation to apply.
        target: New database identifier (RETARGET only).
    """

    kind: CommandKind
    target: str | None = None
