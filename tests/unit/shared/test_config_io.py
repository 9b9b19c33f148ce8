"""Tests for config file I/O."""

import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

from quarrybar.domain.config import QuarryConfig
from quarrybar.shared.config_io import (
    config_to_data,
    create_default_config_file,
    get_global_config_path,
    load_config,
    load_config_data,
    save_config,
)


class TestGlobalConfigPath:
    """Tests for the platform-dependent global config location."""

    def test_uses_xdg_config_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        with patch("quarrybar.shared.config_io.platform.system", return_value="Linux"):
            assert get_global_config_path() == tmp_path / "xdg" / "quarrybar" / "config.toml"

    def test_falls_back_to_dot_config(
        self, monkeypatch: pytest.MonkeyPatch, isolated_home: Path
    ) -> None:
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        with patch("quarrybar.shared.config_io.platform.system", return_value="Darwin"):
            assert get_global_config_path() == isolated_home / ".config" / "quarrybar" / "config.toml"

    def test_windows_uses_appdata(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("APPDATA", str(tmp_path / "AppData"))
        with patch("quarrybar.shared.config_io.platform.system", return_value="Windows"):
            assert get_global_config_path() == tmp_path / "AppData" / "quarrybar" / "config.toml"


class TestLoadConfig:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_data(tmp_path / "missing.toml")

    def test_invalid_toml_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[daemon\nexecutable = ")

        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config_data(path)

    def test_default_file_round_trips_to_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        create_default_config_file(path)

        assert load_config(path) == QuarryConfig.default()

    def test_default_file_documents_placeholder(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.toml"
        create_default_config_file(path)

        assert "{target}" in path.read_text()


class TestSaveConfig:
    def test_save_omits_unset_values(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"

        save_config(QuarryConfig.default(), path)

        with path.open("rb") as f:
            data = tomllib.load(f)
        assert "ready_socket" not in data["daemon"]
        assert "ready_port" not in data["daemon"]
        assert data["database"]["default"] == "default"

    def test_saved_config_loads_back(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        config = QuarryConfig.from_partial(
            QuarryConfig.default(),
            {
                "daemon": {"env": {"QUARRY_LOG_LEVEL": "debug"}, "readiness": "socket", "ready_port": 8420},
                "database": {"default": "docs"},
            },
        )

        save_config(config, path)

        assert load_config(path) == config

    def test_config_to_data_sections(self) -> None:
        assert set(config_to_data(QuarryConfig.default())) == {"daemon", "database"}
