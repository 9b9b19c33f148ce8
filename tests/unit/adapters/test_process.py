"""Unit tests for the daemon process wrapper."""

import signal
import subprocess
import sys
import time
from unittest.mock import MagicMock, call, patch

import pytest

from quarrybar.adapters.daemon.process import ExitStatus, SubprocessHandle
from quarrybar.domain.exceptions import LaunchFailure, SupervisorError
from tests.helpers.processes import is_gone, wait_gone, worker_pid


class TestExitStatus:
    """Tests for ExitStatus.describe()."""

    def test_exit_code(self) -> None:
        assert ExitStatus(2).describe() == "exit code 2"

    def test_clean_exit(self) -> None:
        status = ExitStatus(0)
        assert status.clean
        assert status.describe() == "exit code 0"

    def test_signal(self) -> None:
        status = ExitStatus(-9)
        assert not status.clean
        assert status.describe() == "killed by signal SIGKILL"

    def test_unknown_signal_number(self) -> None:
        assert ExitStatus(-250).describe() == "killed by signal 250"

    def test_not_reaped(self) -> None:
        assert ExitStatus(None).describe() == "process could not be reaped"

    def test_includes_last_output_line(self) -> None:
        status = ExitStatus(1, ("loading index", "error: database 'x' not found"))
        assert status.describe() == "exit code 1: error: database 'x' not found"


def _fake_process(pid: int = 4321) -> MagicMock:
    """Popen stand-in without pipes, so no reader threads are started."""
    process = MagicMock()
    process.pid = pid
    process.stdout = None
    process.stderr = None
    return process


class TestLaunch:
    """Tests for SubprocessHandle.launch()."""

    @patch("quarrybar.adapters.daemon.process.subprocess.Popen")
    def test_launch_builds_command_line(self, mock_popen: MagicMock) -> None:
        mock_popen.return_value = _fake_process()

        handle = SubprocessHandle.launch("quarry", ["serve", "--db", "A"])

        assert handle.pid == 4321
        assert handle.args == ["quarry", "serve", "--db", "A"]
        cmd = mock_popen.call_args.args[0]
        kwargs = mock_popen.call_args.kwargs
        assert cmd == ["quarry", "serve", "--db", "A"]
        assert kwargs["stdout"] is subprocess.PIPE
        assert kwargs["stderr"] is subprocess.PIPE
        assert kwargs["stdin"] is subprocess.DEVNULL
        assert kwargs["start_new_session"] is True

    @patch("quarrybar.adapters.daemon.process.subprocess.Popen")
    def test_launch_layers_env_over_os_environ(
        self, mock_popen: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("QUARRYBAR_TEST_INHERITED", "yes")
        mock_popen.return_value = _fake_process()

        SubprocessHandle.launch("quarry", [], env={"QUARRY_LOG_LEVEL": "debug"})

        env = mock_popen.call_args.kwargs["env"]
        assert env["QUARRYBAR_TEST_INHERITED"] == "yes"
        assert env["QUARRY_LOG_LEVEL"] == "debug"

    @patch("quarrybar.adapters.daemon.process.subprocess.Popen")
    def test_missing_executable_raises_launch_failure(self, mock_popen: MagicMock) -> None:
        mock_popen.side_effect = FileNotFoundError(2, "No such file or directory")

        with pytest.raises(LaunchFailure) as exc_info:
            SubprocessHandle.launch("/nonexistent/quarry", [])

        assert exc_info.value.message == "Daemon executable not found: /nonexistent/quarry"
        assert exc_info.value.hint is not None
        assert isinstance(exc_info.value, SupervisorError)

    @patch("quarrybar.adapters.daemon.process.subprocess.Popen")
    def test_not_executable_raises_launch_failure(self, mock_popen: MagicMock) -> None:
        mock_popen.side_effect = PermissionError(13, "Permission denied")

        with pytest.raises(LaunchFailure, match="not runnable"):
            SubprocessHandle.launch("/etc/hosts", [])

    @patch("quarrybar.adapters.daemon.process.subprocess.Popen")
    def test_other_os_error_raises_launch_failure(self, mock_popen: MagicMock) -> None:
        mock_popen.side_effect = OSError(8, "Exec format error")

        with pytest.raises(LaunchFailure, match="Failed to launch daemon"):
            SubprocessHandle.launch("./broken", [])

    def test_real_missing_executable(self, tmp_path) -> None:
        with pytest.raises(LaunchFailure, match="not found"):
            SubprocessHandle.launch(str(tmp_path / "no-such-daemon"), [])


@patch("quarrybar.adapters.daemon.process.os.killpg")
class TestTerminate:
    """Tests for the SIGTERM -> SIGKILL sequence with a mocked process."""

    def test_already_exited_process_only_sweeps_group(self, mock_killpg: MagicMock) -> None:
        process = _fake_process()
        process.wait.return_value = 0
        handle = SubprocessHandle(process, ["quarry"])

        status = handle.terminate(grace_period=1.0)

        assert status == ExitStatus(0)
        mock_killpg.assert_called_once_with(4321, signal.SIGKILL)
        process.send_signal.assert_not_called()

    def test_graceful_stop_signals_whole_group(self, mock_killpg: MagicMock) -> None:
        process = _fake_process()
        process.wait.side_effect = [subprocess.TimeoutExpired("quarry", 0), 0]
        handle = SubprocessHandle(process, ["quarry"])

        status = handle.terminate(grace_period=1.0)

        assert status == ExitStatus(0)
        assert mock_killpg.call_args_list == [
            call(4321, signal.SIGTERM),
            call(4321, signal.SIGKILL),
        ]

    def test_escalates_to_sigkill(self, mock_killpg: MagicMock) -> None:
        process = _fake_process()
        # Still running at the first check and after SIGTERM, dead after SIGKILL
        process.wait.side_effect = [
            subprocess.TimeoutExpired("quarry", 0),
            subprocess.TimeoutExpired("quarry", 1.0),
            -9,
        ]
        handle = SubprocessHandle(process, ["quarry"])

        status = handle.terminate(grace_period=1.0)

        assert mock_killpg.call_args_list == [
            call(4321, signal.SIGTERM),
            call(4321, signal.SIGKILL),
        ]
        assert status.describe() == "killed by signal SIGKILL"

    def test_survives_sigkill(self, mock_killpg: MagicMock) -> None:
        process = _fake_process()
        process.wait.side_effect = subprocess.TimeoutExpired("quarry", 1.0)
        handle = SubprocessHandle(process, ["quarry"])

        status = handle.terminate(grace_period=0.1)

        assert status.returncode is None
        assert mock_killpg.call_count == 2

    def test_signal_race_with_exit_is_ignored(self, mock_killpg: MagicMock) -> None:
        process = _fake_process()
        process.wait.side_effect = [subprocess.TimeoutExpired("quarry", 0), 0]
        mock_killpg.side_effect = ProcessLookupError()
        handle = SubprocessHandle(process, ["quarry"])

        assert handle.terminate(grace_period=1.0) == ExitStatus(0)


class TestOutputCapture:
    """Tests with a real child process writing to both streams."""

    def test_captures_both_streams(self) -> None:
        handle = SubprocessHandle.launch(
            sys.executable,
            [
                "-c",
                "import sys; print('to stdout', flush=True); "
                "print('to stderr', file=sys.stderr, flush=True)",
            ],
        )

        status = handle.wait(timeout=10)

        assert status is not None
        assert status.clean
        assert set(status.output_tail) == {"to stdout", "to stderr"}

    def test_late_listener_gets_replayed_lines(self) -> None:
        handle = SubprocessHandle.launch(sys.executable, ["-c", "print('ready')"])
        handle.wait(timeout=10)
        seen: list[str] = []

        handle.add_output_listener(seen.append)

        assert seen == ["ready"]


class TestProcessGroup:
    """Workers forked by the daemon share its pipes and its process group."""

    # sh prints the pid of its background worker before going idle or exiting
    IDLE_WITH_WORKER = 'sleep 30 & echo "worker $!"; echo ready; wait'
    EXIT_LEAVING_WORKER = 'sleep 30 & echo "worker $!"; exit 0'

    def test_terminate_stops_forked_worker(self) -> None:
        handle = SubprocessHandle.launch("sh", ["-c", self.IDLE_WITH_WORKER])
        try:
            assert wait_for_line(handle, "ready")
            worker = worker_pid(handle.output_tail())

            started = time.monotonic()
            status = handle.terminate(grace_period=1.0)

            assert time.monotonic() - started < 8
            assert status.returncode == -signal.SIGTERM
            assert wait_gone(worker)
        finally:
            handle.terminate(grace_period=0.1)

    def test_exit_does_not_block_on_pipes_held_by_worker(self) -> None:
        handle = SubprocessHandle.launch("sh", ["-c", self.EXIT_LEAVING_WORKER])
        try:
            started = time.monotonic()
            status = handle.wait(timeout=10)

            assert status is not None
            assert status.clean
            assert time.monotonic() - started < 8
            worker = worker_pid(status.output_tail)
            assert not is_gone(worker)

            assert handle.terminate(grace_period=1.0) == status
            assert wait_gone(worker)
        finally:
            handle.terminate(grace_period=0.1)


def wait_for_line(handle: SubprocessHandle, line: str, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if line in handle.output_tail():
            return True
        time.sleep(0.05)
    return False
