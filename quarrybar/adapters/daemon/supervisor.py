"""Daemon supervisor: the lifecycle state machine.

A single control thread owns the state and applies commands (start, stop,
restart, retarget) one at a time in arrival order. Launching is done on the
control thread; readiness probing and exit monitoring run on helper threads
that only post events back to the control queue. Observers are notified on
the control thread after each transition commits.
"""

import logging
import queue
import threading
from collections.abc import Callable, Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from quarrybar.adapters.daemon.process import ExitStatus, SubprocessHandle
from quarrybar.adapters.daemon.readiness import (
    OutputSentinelProbe,
    ProbeOutcome,
    ProbeResult,
)
from quarrybar.adapters.daemon.timeouts import DaemonTimeouts
from quarrybar.domain.config import DaemonConfig, substitute_target
from quarrybar.domain.exceptions import (
    DaemonNotReadyError,
    InvalidTargetError,
    ReadinessFailure,
    ReadinessTimeout,
    SupervisorError,
    UnexpectedExit,
)
from quarrybar.domain.state import Command, CommandKind, DaemonState, StateKind
from quarrybar.ports.daemon import (
    ProcessHandle,
    ProcessLauncher,
    ReadinessProbe,
    StateObserver,
    TargetSelector,
)

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Attempt:
    """One launched process and the target it was launched with."""

    handle: ProcessHandle
    target: str
    cancel: threading.Event = field(default_factory=threading.Event)
    ready: bool = False


@dataclass(frozen=True)
class _ReadinessResolved:
    attempt: _Attempt
    result: ProbeResult


@dataclass(frozen=True)
class _ProcessExited:
    attempt: _Attempt
    status: ExitStatus


class _Shutdown:
    pass


def _check_target(target: str) -> None:
    if not target or not target.strip():
        raise InvalidTargetError(
            "Database name must not be empty",
            hint="Pick a database from 'quarrybar databases'",
        )


class DaemonSupervisor:
    """Supervises one search daemon process and publishes its state.

    Command methods (start, stop, restart, retarget) return immediately;
    callers observe the outcome through subscribe() or state.
    """

    def __init__(
        self,
        executable: str,
        args: Sequence[str] = (),
        target: str = "default",
        env: Mapping[str, str] | None = None,
        probe: ReadinessProbe | None = None,
        ready_timeout: float = DaemonTimeouts.READY_WAIT_DEFAULT,
        grace_period: float = DaemonTimeouts.SIGTERM_WAIT,
        launcher: ProcessLauncher | None = None,
    ):
        """Initialize supervisor.

        Args:
            executable: Path or name of the daemon executable
            args: Launch arguments; ``{target}`` is replaced with the bound database
            target: Database to bind to on the first start
            env: Extra environment variables for the daemon
            probe: Readiness probe (default: watch output for DaemonConfig's ready_pattern)
            ready_timeout: Seconds the daemon has to become ready
            grace_period: Seconds between SIGTERM and SIGKILL when stopping
            launcher: Process launcher (default: SubprocessHandle.launch)
        """
        _check_target(target)
        self.executable = executable
        self.args = list(args)
        self.env = dict(env or {})
        self.probe = probe or OutputSentinelProbe(DaemonConfig().ready_pattern)
        self.ready_timeout = ready_timeout
        self.grace_period = grace_period
        self._launcher: ProcessLauncher = launcher or SubprocessHandle.launch

        # Owned by the control thread
        self._target = target
        self._attempt: _Attempt | None = None

        # Shared with callers, guarded by _cond
        self._cond = threading.Condition()
        self._state = DaemonState.stopped()
        self._pid: int | None = None
        self._observers: list[StateObserver] = []
        self._pending = 0
        self._closed = False
        self._thread: threading.Thread | None = None

        self._queue: queue.Queue[Any] = queue.Queue()

    @classmethod
    def from_config(
        cls,
        config: DaemonConfig,
        target: str,
        probe: ReadinessProbe | None = None,
    ) -> "DaemonSupervisor":
        """Create a supervisor from daemon configuration.

        Args:
            config: Validated daemon configuration
            target: Database to bind to on the first start
            probe: Readiness probe; built by the caller from config.readiness

        Returns:
            Supervisor in the stopped state
        """
        return cls(
            executable=config.executable,
            args=config.args,
            target=target,
            env=config.env,
            probe=probe or OutputSentinelProbe(config.ready_pattern),
            ready_timeout=config.ready_timeout,
            grace_period=config.grace_period,
        )

    # =========================================================================
    # Observer interface
    # =========================================================================

    @property
    def state(self) -> DaemonState:
        """Currently published state."""
        with self._cond:
            return self._state

    @property
    def target(self) -> str:
        """Database used by the current or next launch."""
        with self._cond:
            return self._target

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register a callback for every state transition.

        Callbacks run on the supervisor's control thread and must not block.

        Returns:
            Function that removes the observer
        """
        with self._cond:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._cond:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def start(self) -> None:
        """Launch the daemon unless it is already starting or running."""
        self._submit(Command(CommandKind.START))

    def stop(self) -> None:
        """Stop the daemon; always ends in the stopped state."""
        self._submit(Command(CommandKind.STOP))

    def restart(self) -> None:
        """Stop and relaunch as one operation, without publishing stopped."""
        self._submit(Command(CommandKind.RESTART))

    def retarget(self, target: str) -> None:
        """Bind the daemon to another database.

        Relaunches a starting or running daemon with the new target. When the
        daemon is stopped or failed, the target is recorded for the next start.

        Raises:
            InvalidTargetError: If target is empty
        """
        _check_target(target)
        self._submit(Command(CommandKind.RETARGET, target=target))

    def follow(self, selector: TargetSelector) -> Callable[[], None]:
        """Retarget whenever the selector's database changes.

        Returns:
            Function that stops following the selector
        """
        self.retarget(selector.current)
        return selector.subscribe(self.retarget)

    def require_running(self) -> str:
        """Return the bound database, for callers that need a live daemon.

        Raises:
            DaemonNotReadyError: If the daemon is not running
        """
        state = self.state
        if state.kind is not StateKind.RUNNING or state.target is None:
            raise DaemonNotReadyError(
                f"Search backend is not running ({state.kind.value})",
                hint="Start the backend and wait for it to become ready",
            )
        return state.target

    def status(self) -> dict:
        """Get supervisor status.

        Returns:
            Dictionary with status information
        """
        with self._cond:
            state = self._state
            pid = self._pid
            target = self._target
        return {
            "state": state.kind.value,
            "target": state.target or target,
            "message": state.message,
            "pid": pid,
            "executable": self.executable,
        }

    def wait_for(
        self,
        condition: StateKind | Collection[StateKind] | Callable[[DaemonState], bool],
        timeout: float | None = None,
    ) -> DaemonState:
        """Block until the published state satisfies condition.

        Never call this from a UI thread.

        Args:
            condition: A state kind, several kinds, or a predicate on the state
            timeout: Seconds to wait, or None to wait forever

        Returns:
            The state that satisfied the condition

        Raises:
            TimeoutError: If the condition was not met in time
        """
        if isinstance(condition, StateKind):
            condition = (condition,)
        if callable(condition):
            predicate = condition
        else:
            kinds = frozenset(condition)

            def predicate(state: DaemonState) -> bool:
                return state.kind in kinds

        with self._cond:
            if not self._cond.wait_for(lambda: predicate(self._state), timeout):
                raise TimeoutError(f"Daemon state still {self._state} after {timeout}s")
            return self._state

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every command issued so far has been applied.

        Returns:
            True if idle, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout)

    def close(self, timeout: float = DaemonTimeouts.CONTROL_SHUTDOWN) -> None:
        """Stop the daemon and shut down the control thread.

        Commands already queued are applied first. Further commands raise
        RuntimeError.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
        if thread is None:
            return
        self._queue.put(_Shutdown())
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"Supervisor control thread did not exit within {timeout}s")

    def __enter__(self) -> "DaemonSupervisor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # =========================================================================
    # Command queue
    # =========================================================================

    def _submit(self, command: Command) -> None:
        with self._cond:
            if self._closed:
                raise RuntimeError("Supervisor is closed")
            self._pending += 1
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run, name="quarry-supervisor", daemon=True
                )
                self._thread.start()
        self._queue.put(command)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if isinstance(item, _Shutdown):
                try:
                    self._apply_stop()
                except Exception as e:
                    logger.exception("Failed to stop daemon during shutdown")
                    self._publish(DaemonState.error(f"Failed to stop daemon: {e}"))
                return
            try:
                self._dispatch(item)
            except SupervisorError as e:
                self._fail(e)
            except Exception as e:
                logger.exception(f"Unexpected error while applying {item}")
                self._fail(SupervisorError(f"Supervisor error: {e}"))
            finally:
                if isinstance(item, Command):
                    with self._cond:
                        self._pending -= 1
                        self._cond.notify_all()

    def _dispatch(self, item: Any) -> None:
        if isinstance(item, _ReadinessResolved):
            self._on_readiness(item)
        elif isinstance(item, _ProcessExited):
            self._on_exit(item)
        elif item.kind is CommandKind.START:
            self._apply_start()
        elif item.kind is CommandKind.STOP:
            self._apply_stop()
        elif item.kind is CommandKind.RESTART:
            self._relaunch(self._target)
        elif item.kind is CommandKind.RETARGET:
            self._apply_retarget(item.target)

    # =========================================================================
    # Transitions (control thread only)
    # =========================================================================

    def _apply_start(self) -> None:
        if self._state.is_active:
            logger.debug(f"Start ignored, daemon already {self._state.kind.value}")
            return
        self._launch(self._target)

    def _apply_stop(self) -> None:
        if self._state.kind is StateKind.STOPPED and self._attempt is None:
            return
        self._teardown()
        self._publish(DaemonState.stopped())

    def _apply_retarget(self, target: str) -> None:
        # A live attempt is always bound to self._target
        if target == self._target:
            logger.debug(f"Retarget ignored, already bound to {target!r}")
            return

        logger.info(f"Retargeting daemon: {self._target!r} -> {target!r}")
        with self._cond:
            self._target = target
        if self._state.is_active:
            self._relaunch(target)
        else:
            logger.info(f"Database {target!r} will be used on next start")

    def _relaunch(self, target: str) -> None:
        # Goes straight to starting; observers never see stopped in between
        self._teardown()
        self._launch(target)

    def _launch(self, target: str) -> None:
        self._publish(DaemonState.starting())
        handle = self._launcher(
            self.executable, substitute_target(self.args, target), self.env
        )
        attempt = _Attempt(handle=handle, target=target)
        self._set_attempt(attempt)

        threading.Thread(
            target=self._monitor_exit,
            args=(attempt,),
            name=f"quarry-exit-monitor-{handle.pid}",
            daemon=True,
        ).start()
        threading.Thread(
            target=self._probe_readiness,
            args=(attempt,),
            name=f"quarry-readiness-{handle.pid}",
            daemon=True,
        ).start()

    def _teardown(self) -> None:
        attempt = self._attempt
        if attempt is None:
            return
        self._set_attempt(None)
        attempt.cancel.set()
        status = attempt.handle.terminate(self.grace_period)
        logger.info(f"Daemon (PID {attempt.handle.pid}) released: {status.describe()}")

    def _fail(self, error: SupervisorError) -> None:
        logger.error(f"Daemon failed: {error.message}")
        self._teardown()
        self._publish(DaemonState.error(error.message))

    def _on_readiness(self, event: _ReadinessResolved) -> None:
        attempt = event.attempt
        if attempt is not self._attempt:
            logger.debug(f"Discarding readiness result for stale PID {attempt.handle.pid}")
            return

        result = event.result
        if result.outcome is ProbeOutcome.READY:
            attempt.ready = True
            self._publish(DaemonState.running(attempt.target))
        elif result.outcome is ProbeOutcome.TIMED_OUT:
            raise ReadinessTimeout(result.reason)
        elif result.outcome is ProbeOutcome.FAILED:
            raise ReadinessFailure(result.reason)
        else:
            # Only teardown cancels, and teardown clears the current attempt
            logger.debug("Readiness probe cancelled")

    def _on_exit(self, event: _ProcessExited) -> None:
        attempt = event.attempt
        if attempt is not self._attempt:
            logger.debug(f"Ignoring exit of released PID {attempt.handle.pid}")
            return

        detail = event.status.describe()
        if attempt.ready:
            raise UnexpectedExit(f"Daemon exited unexpectedly ({detail})")
        raise ReadinessFailure(f"Daemon exited during startup ({detail})")

    def _set_attempt(self, attempt: _Attempt | None) -> None:
        self._attempt = attempt
        with self._cond:
            self._pid = attempt.handle.pid if attempt is not None else None

    def _publish(self, state: DaemonState) -> None:
        with self._cond:
            if state == self._state:
                return
            previous = self._state
            self._state = state
            self._cond.notify_all()
            observers = list(self._observers)

        logger.info(f"Daemon state: {previous} -> {state}")
        for observer in observers:
            try:
                observer(state)
            except Exception:
                logger.exception("State observer raised")

    # =========================================================================
    # Helper threads (post events only)
    # =========================================================================

    def _monitor_exit(self, attempt: _Attempt) -> None:
        status = attempt.handle.wait()
        if status is not None:
            self._queue.put(_ProcessExited(attempt, status))

    def _probe_readiness(self, attempt: _Attempt) -> None:
        try:
            result = self.probe.await_ready(
                attempt.handle, self.ready_timeout, attempt.cancel
            )
        except Exception as e:
            logger.exception("Readiness probe raised")
            result = ProbeResult.failed(f"Readiness probe error: {e}")
        self._queue.put(_ReadinessResolved(attempt, result))
