"""Tests for DatabaseSelector."""

from pathlib import Path

import pytest

from quarrybar.core.databases import DatabaseSelector
from quarrybar.domain.exceptions import UnknownDatabaseError


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    for name in ("docs", "notes", "code", ".cache"):
        (tmp_path / name).mkdir()
    (tmp_path / "README.txt").write_text("not a database")
    return tmp_path


class TestListDatabases:
    def test_lists_subdirectories_sorted(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="docs")
        assert selector.list_databases() == ["code", "docs", "notes"]

    def test_current_included_before_it_exists(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="fresh")
        assert "fresh" in selector.list_databases()

    def test_missing_data_dir(self, tmp_path: Path) -> None:
        selector = DatabaseSelector(tmp_path / "missing", current="default")
        assert selector.list_databases() == ["default"]


class TestSelect:
    """Tests for selection changes and notifications."""

    def test_select_notifies_subscribers(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="docs")
        seen: list[str] = []
        selector.subscribe(seen.append)

        selector.select("notes")

        assert selector.current == "notes"
        assert seen == ["notes"]

    def test_select_current_does_not_notify(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="docs")
        seen: list[str] = []
        selector.subscribe(seen.append)

        selector.select("docs")

        assert seen == []

    def test_unknown_database_raises_with_hint(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="docs")

        with pytest.raises(UnknownDatabaseError) as exc_info:
            selector.select("missing")

        assert "code, docs, notes" in exc_info.value.hint
        assert selector.current == "docs"

    def test_unsubscribe(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="docs")
        seen: list[str] = []
        unsubscribe = selector.subscribe(seen.append)
        unsubscribe()

        selector.select("notes")

        assert seen == []

    def test_cycle_wraps_around(self, data_dir: Path) -> None:
        selector = DatabaseSelector(data_dir, current="notes")

        assert selector.cycle() == "code"
        assert selector.cycle(-1) == "notes"
        assert selector.cycle(-1) == "docs"
