"""Test helper utilities for the quarrybar test suite."""

from tests.helpers.cli_assertions import (
    assert_command_failed,
    assert_command_success,
    assert_error_message,
    assert_output_contains,
)
from tests.helpers.fakes import FakeHandle, FakeLauncher, ScriptedProbe, StateRecorder

__all__ = [
    "assert_command_success",
    "assert_command_failed",
    "assert_output_contains",
    "assert_error_message",
    "FakeHandle",
    "FakeLauncher",
    "ScriptedProbe",
    "StateRecorder",
]
