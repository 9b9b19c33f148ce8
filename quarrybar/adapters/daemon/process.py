"""Thin wrapper around a single daemon child process.

Handles spawning, output capture, termination with SIGTERM -> SIGKILL
escalation, and reaping. Holds no lifecycle policy; that lives in the
supervisor.
"""

import contextlib
import logging
import os
import signal
import subprocess
import threading
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import IO

from quarrybar.adapters.daemon.timeouts import DaemonTimeouts
from quarrybar.domain.exceptions import LaunchFailure
from quarrybar.ports.daemon import OutputListener

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExitStatus:
    """How a daemon process ended.

    Attributes:
        returncode: Exit code, negative signal number if killed by a signal,
                    or None if the process could not be reaped.
        output_tail: Last lines the process wrote to stdout/stderr.
    """

    returncode: int | None
    output_tail: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        """Render the exit reason and captured output for error messages.

        Returns:
            e.g. "exit code 2: error: database 'x' not found"
        """
        if self.returncode is None:
            reason = "process could not be reaped"
        elif self.returncode < 0:
            try:
                name = signal.Signals(-self.returncode).name
            except ValueError:
                name = str(-self.returncode)
            reason = f"killed by signal {name}"
        else:
            reason = f"exit code {self.returncode}"

        if self.output_tail:
            # The last line is usually the most specific one
            return f"{reason}: {self.output_tail[-1]}"
        return reason


class SubprocessHandle:
    """ProcessHandle backed by subprocess.Popen.

    Both output streams are drained by reader threads so the daemon never
    blocks on a full pipe. The last lines are kept for diagnostics and passed
    to registered output listeners.
    """

    def __init__(self, process: subprocess.Popen, args: list[str]):
        """Wrap an already spawned process.

        Args:
            process: Process spawned with stdout and stderr as pipes
            args: Full command line (executable first)
        """
        self._process = process
        self._args = args
        self._lock = threading.Lock()
        self._tail: deque[str] = deque(maxlen=DaemonTimeouts.OUTPUT_TAIL_LINES)
        self._listeners: list[OutputListener] = []
        self._finalize_lock = threading.Lock()
        self._exit_status: ExitStatus | None = None
        self._readers = [
            self._start_reader(stream, name)
            for stream, name in ((process.stdout, "stdout"), (process.stderr, "stderr"))
            if stream is not None
        ]

    @classmethod
    def launch(
        cls,
        executable: str,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> "SubprocessHandle":
        """Spawn the daemon.

        Args:
            executable: Path or name of the executable
            args: Arguments after the executable
            env: Extra environment variables layered over os.environ

        Returns:
            Handle for the running process

        Raises:
            LaunchFailure: If the executable is missing or cannot be executed
        """
        cmd = [executable, *args]
        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                start_new_session=True,  # Keep terminal signals (Ctrl-C) away from the daemon
                env=process_env,
            )
        except FileNotFoundError as e:
            raise LaunchFailure(
                f"Daemon executable not found: {executable}",
                hint="Install quarry or set [daemon] executable in the config file",
            ) from e
        except PermissionError as e:
            raise LaunchFailure(
                f"Daemon executable is not runnable: {executable}",
                hint="Check the file permissions of the configured executable",
            ) from e
        except OSError as e:
            raise LaunchFailure(f"Failed to launch daemon: {e}") from e

        logger.info(f"Launched daemon with PID {process.pid}: {' '.join(cmd)}")
        return cls(process, cmd)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def args(self) -> list[str]:
        return list(self._args)

    def output_tail(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._tail)

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def add_output_listener(self, listener: OutputListener) -> None:
        """Register a callback for output lines.

        Lines already captured are replayed first so a late listener cannot
        miss a line printed right after launch.
        """
        with self._lock:
            self._listeners.append(listener)
            seen = list(self._tail)
        for line in seen:
            listener(line)

    def wait(self, timeout: float | None = None) -> ExitStatus | None:
        """Block until the process exits, then collect its final output.

        Safe to call from several threads; the first caller to observe the
        exit records the ExitStatus. Each reader thread closes its own pipe
        once it reaches end of file.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            ExitStatus once exited, None if still running after timeout
        """
        try:
            returncode = self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None
        return self._finalize(returncode)

    def terminate(self, grace_period: float = DaemonTimeouts.SIGTERM_WAIT) -> ExitStatus:
        """Stop the process group gracefully, force-killing it if needed.

        Shutdown sequence:
        1. If the process already exited, only sweep leftover workers
        2. Send SIGTERM to the group and wait up to grace_period seconds
        3. If still alive, send SIGKILL to the group and wait SIGKILL_WAIT seconds

        Args:
            grace_period: Seconds to wait for graceful SIGTERM shutdown

        Returns:
            ExitStatus of the process (returncode None if it survived SIGKILL)
        """
        status = self.wait(timeout=0)
        if status is not None:
            self._sweep_group()
            return status

        logger.info(f"Stopping daemon (PID {self.pid})...")
        self._send_signal(signal.SIGTERM)
        status = self.wait(timeout=grace_period)
        if status is not None:
            logger.info("Daemon stopped gracefully")
            self._sweep_group()
            return status

        logger.warning("Daemon did not stop gracefully, sending SIGKILL...")
        self._send_signal(signal.SIGKILL)
        status = self.wait(timeout=DaemonTimeouts.SIGKILL_WAIT)
        if status is not None:
            logger.info("Daemon force-killed")
            return status

        logger.error(f"Daemon (PID {self.pid}) survived SIGKILL! Manual cleanup required.")
        return self._finalize(None)

    def _sweep_group(self) -> None:
        # Workers forked by the daemon can outlive it and keep its pipes open
        self._send_signal(signal.SIGKILL)

    def _send_signal(self, sig: signal.Signals) -> None:
        # start_new_session makes the daemon its own group leader (pgid == pid),
        # so this reaches any workers it forked as well.
        # The group may be gone between the liveness check and the signal.
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(self._process.pid, sig)

    def _finalize(self, returncode: int | None) -> ExitStatus:
        # Separate from self._lock: reader threads need that one to drain
        with self._finalize_lock:
            if self._exit_status is None:
                for reader in self._readers:
                    reader.join(timeout=DaemonTimeouts.OUTPUT_JOIN)
                if any(reader.is_alive() for reader in self._readers):
                    # Each reader closes its own pipe once every writer is gone
                    logger.debug(f"Daemon (PID {self.pid}) output still held open by a child")
                self._exit_status = ExitStatus(returncode, self.output_tail())
            return self._exit_status

    def _start_reader(self, stream: IO[bytes], name: str) -> threading.Thread:
        thread = threading.Thread(
            target=self._read_stream,
            args=(stream, name),
            name=f"quarry-daemon-{name}-{self._process.pid}",
            daemon=True,
        )
        thread.start()
        return thread

    def _read_stream(self, stream: IO[bytes], name: str) -> None:
        try:
            for raw in iter(stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                logger.debug(f"daemon {name}: {line}")
                with self._lock:
                    self._tail.append(line)
                    listeners = list(self._listeners)
                for listener in listeners:
                    listener(line)
        except (OSError, ValueError):
            logger.debug(f"Stopped reading daemon {name}")
        finally:
            with contextlib.suppress(OSError):
                stream.close()
