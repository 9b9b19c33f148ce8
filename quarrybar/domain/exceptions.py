"""Domain exceptions for quarrybar.

These exceptions represent lifecycle failures and invalid requests. Supervisor
failures are converted into ``DaemonState.error(...)`` by the supervisor; the
remaining errors are raised to the caller and converted to user-facing messages
at the application boundary (CLI, TUI).
"""


class QuarryDomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class SupervisorError(QuarryDomainError):
    """A launch attempt or running daemon failed.

    The supervisor surfaces every subclass identically as an error state; the
    class only determines the wording of the message.
    """

    pass


class LaunchFailure(SupervisorError):
    """Raised when the daemon executable is missing or cannot be run."""

    pass


class ReadinessTimeout(SupervisorError):
    """Raised when the daemon stayed alive but never signaled readiness."""

    pass


class ReadinessFailure(SupervisorError):
    """Raised when the daemon failed or exited while being probed."""

    pass


class UnexpectedExit(SupervisorError):
    """Raised when a running daemon terminated without being asked to."""

    pass


class InvalidTargetError(QuarryDomainError):
    """Raised when a retarget request names an empty database."""

    pass


class UnknownDatabaseError(QuarryDomainError):
    """Raised when selecting a database that does not exist."""

    pass


class DaemonNotReadyError(QuarryDomainError):
    """Raised when an operation needs a running daemon and there is none."""

    pass
