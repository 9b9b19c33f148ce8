"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from quarrybar.adapters.daemon.supervisor import DaemonSupervisor
from tests.helpers.fakes import WAIT, FakeLauncher, ScriptedProbe, StateRecorder


@pytest.fixture(autouse=True)
def isolated_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Point HOME and XDG_CONFIG_HOME at a temp dir.

    Keeps the log file and global config of the developer's machine out of
    every test.
    """
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    return home


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def probe() -> ScriptedProbe:
    return ScriptedProbe()


@pytest.fixture
def make_supervisor(
    launcher: FakeLauncher, probe: ScriptedProbe
) -> Iterator[Callable[..., tuple[DaemonSupervisor, StateRecorder]]]:
    """Factory for supervisors wired to the fake launcher and probe.

    Every supervisor created is closed at teardown.
    """
    created: list[DaemonSupervisor] = []

    def factory(**kwargs) -> tuple[DaemonSupervisor, StateRecorder]:
        kwargs.setdefault("executable", "quarry")
        kwargs.setdefault("args", ["serve", "--db", "{target}"])
        kwargs.setdefault("target", "A")
        kwargs.setdefault("probe", probe)
        kwargs.setdefault("launcher", launcher)
        kwargs.setdefault("grace_period", 0.5)
        supervisor = DaemonSupervisor(**kwargs)
        recorder = StateRecorder()
        supervisor.subscribe(recorder)
        created.append(supervisor)
        return supervisor, recorder

    yield factory

    for supervisor in created:
        supervisor.close(timeout=WAIT)
