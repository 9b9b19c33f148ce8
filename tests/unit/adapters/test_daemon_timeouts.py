"""Tests for DaemonTimeouts constants."""

from quarrybar.adapters.daemon.timeouts import DaemonTimeouts
from quarrybar.domain.config import DaemonConfig


class TestDaemonTimeouts:
    """Sanity checks on the relationships between timeout values."""

    def test_all_positive(self) -> None:
        for name in dir(DaemonTimeouts):
            if name.isupper():
                assert getattr(DaemonTimeouts, name) > 0, name

    def test_check_interval_shorter_than_ready_wait(self) -> None:
        assert DaemonTimeouts.READY_CHECK_INTERVAL < DaemonTimeouts.READY_WAIT_DEFAULT

    def test_control_shutdown_covers_full_stop(self) -> None:
        assert DaemonTimeouts.CONTROL_SHUTDOWN > (
            DaemonTimeouts.SIGTERM_WAIT + DaemonTimeouts.SIGKILL_WAIT
        )

    def test_socket_connect_shorter_than_ready_wait(self) -> None:
        assert DaemonTimeouts.SOCKET_CONNECT < DaemonTimeouts.READY_WAIT_DEFAULT

    def test_config_defaults_match(self) -> None:
        config = DaemonConfig()
        assert config.ready_timeout == DaemonTimeouts.READY_WAIT_DEFAULT
        assert config.grace_period == DaemonTimeouts.SIGTERM_WAIT
