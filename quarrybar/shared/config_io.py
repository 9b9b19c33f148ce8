"""Configuration I/O utilities for reading and writing TOML config files.

This module handles serialization/deserialization of QuarryConfig to/from TOML format.
"""

import os
import platform
import tomllib  # Built-in Python 3.11+
from dataclasses import asdict
from pathlib import Path
from typing import Any

import tomli_w

from quarrybar.domain.config import QuarryConfig


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/quarrybar/config.toml or ~/.config/quarrybar/config.toml
    - Windows: %APPDATA%/quarrybar/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "quarrybar" / "config.toml"
        return Path.home() / ".config" / "quarrybar" / "config.toml"
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
        if xdg_config:
            return Path(xdg_config) / "quarrybar" / "config.toml"
        return Path.home() / ".config" / "quarrybar" / "config.toml"


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Args:
        path: Path to config.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def config_to_data(config: QuarryConfig) -> dict[str, Any]:
    """Convert a QuarryConfig into TOML-serializable data.

    TOML has no null, so unset optional values are omitted.
    """
    return {
        section: {key: value for key, value in values.items() if value is not None}
        for section, values in asdict(config).items()
    }


def load_config(path: Path) -> QuarryConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        Parsed QuarryConfig instance (missing values use defaults)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed or has invalid values
    """
    return QuarryConfig.from_partial(QuarryConfig.default(), load_config_data(path))


def save_config(config: QuarryConfig, path: Path) -> None:
    """Save configuration to a TOML file.

    Args:
        config: QuarryConfig to save
        path: Destination path for config.toml
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(config_to_data(config), f)


def create_default_config_file(path: Path) -> None:
    """Create a default config.toml file with sensible defaults and comments.

    Args:
        path: Destination path for config.toml
    """
    # We use a template string to preserve comments and formatting
    template = """\
# quarrybar configuration
# Created by: quarrybar config --init

[daemon]
# Search backend executable (name on PATH or absolute path)
executable = "quarry"

# Launch arguments; {target} is replaced with the selected database
args = ["serve", "--db", "{target}"]

# How readiness is detected: "output" (watch for ready_pattern) or "socket"
readiness = "output"

# Regex (case-insensitive) printed by the backend once it can serve queries
ready_pattern = "ready|running on"

# For socket readiness set either ready_socket or ready_port
# ready_socket = "/tmp/quarry.sock"
# ready_host = "127.0.0.1"
# ready_port = 8420

# Seconds the backend has to become ready
ready_timeout = 30.0

# Seconds between SIGTERM and SIGKILL when stopping
grace_period = 10.0

[daemon.env]
# Extra environment variables for the backend
# QUARRY_LOG_LEVEL = "info"

[database]
# Database the backend binds to on first start
default = "default"

# Directory holding one sub-directory per database
data_dir = "~/.quarry/data"
"""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(template)
