"""Centralized timeout configuration for daemon supervision.

All supervision-related timeout values are defined here to:
1. Provide a single source of truth for tuning
2. Document the purpose of each timeout value
3. Keep defaults in one place for the config layer and the adapters
"""


class DaemonTimeouts:
    """Centralized timeout configuration for daemon supervision.

    All values are in seconds unless otherwise noted.

    Groups:
        READY_*: Waiting for the daemon to become ready after launch
        SIGTERM_*: Graceful shutdown timeouts
        SIGKILL_*: Force kill timeouts
        SOCKET_*: Socket readiness probing
        OUTPUT_*: Output capture
        CONTROL_*: Supervisor control thread
    """

    # =========================================================================
    # Daemon Ready Wait Timeouts
    # =========================================================================

    READY_WAIT_DEFAULT: float = 30.0
    """Default time a launched daemon has to report readiness.

    Opening a large database can take several seconds on a cold disk cache.
    If the daemon is still not ready after this long it is terminated and the
    attempt is reported as a readiness timeout.
    """

    READY_CHECK_INTERVAL: float = 0.1
    """Interval between readiness checks.

    Controls how often probes re-check for cancellation, process death and
    (for socket readiness) reconnect. Lower values detect readiness faster
    but consume more CPU.
    """

    # =========================================================================
    # Graceful Shutdown (SIGTERM) Timeouts
    # =========================================================================

    SIGTERM_WAIT: float = 10.0
    """Time to wait for graceful shutdown after SIGTERM.

    Gives the daemon time to finish in-flight queries and close its database.
    If the daemon doesn't stop within this time, SIGKILL is sent.
    """

    # =========================================================================
    # Force Kill (SIGKILL) Timeouts
    # =========================================================================

    SIGKILL_WAIT: float = 2.5
    """Time to wait after sending SIGKILL.

    SIGKILL cannot be caught or ignored, so this is primarily to allow the OS
    to reap the process. If a process survives SIGKILL, something is seriously
    wrong (kernel issue, uninterruptible I/O).
    """

    # =========================================================================
    # Socket Readiness
    # =========================================================================

    SOCKET_CONNECT: float = 0.5
    """Timeout for a single readiness connection attempt."""

    # =========================================================================
    # Output Capture
    # =========================================================================

    OUTPUT_TAIL_LINES: int = 20
    """Number of trailing output lines kept for error diagnostics."""

    OUTPUT_JOIN: float = 1.0
    """Time to wait for output reader threads to drain after exit."""

    # =========================================================================
    # Supervisor Control Thread
    # =========================================================================

    CONTROL_SHUTDOWN: float = 30.0
    """Time close() waits for the control thread to finish.

    Must cover a full graceful stop (SIGTERM_WAIT + SIGKILL_WAIT).
    """
