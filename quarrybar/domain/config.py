"""Config domain models for quarrybar.

Configuration is stored in config.toml and describes how the search daemon is
launched, how its readiness is detected, and where databases live. This module
defines the domain models that represent validated configuration state.
"""

import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Literal

TARGET_PLACEHOLDER = "{target}"


@dataclass(frozen=True)
class DaemonConfig:
    """Configuration for launching and supervising the daemon.

    Attributes:
        executable: Path or name of the daemon executable.
        args: Launch arguments. ``{target}`` is replaced with the bound database.
        env: Extra environment variables layered over the parent environment.
        readiness: How readiness is detected - "output" watches stdout/stderr
                   for ready_pattern, "socket" polls ready_socket or
                   ready_host:ready_port until it accepts connections.
        ready_pattern: Regex (case-insensitive) marking the daemon as ready.
        ready_socket: Unix socket path for socket readiness.
        ready_host: TCP host for socket readiness.
        ready_port: TCP port for socket readiness.
        ready_timeout: Seconds to wait for readiness before giving up.
        grace_period: Seconds between the graceful signal and a forced kill.

    Raises:
        ValueError: If executable is empty, timeouts are not positive, the
                   readiness kind is unknown, socket readiness has no address,
                   or ready_pattern does not compile.
    """

    executable: str = "quarry"
    args: list[str] = field(
        default_factory=lambda: ["serve", "--db", TARGET_PLACEHOLDER]
    )
    env: dict[str, str] = field(default_factory=dict)
    readiness: Literal["output", "socket"] = "output"
    ready_pattern: str = r"ready|running on"
    ready_socket: str | None = None
    ready_host: str = "127.0.0.1"
    ready_port: int | None = None
    ready_timeout: float = 30.0
    grace_period: float = 10.0

    def __post_init__(self) -> None:
        """Validate daemon config after initialization."""
        if not self.executable:
            raise ValueError("executable must not be empty")
        if self.ready_timeout <= 0:
            raise ValueError(f"ready_timeout must be positive, got {self.ready_timeout}")
        if self.grace_period <= 0:
            raise ValueError(f"grace_period must be positive, got {self.grace_period}")
        if self.readiness not in ("output", "socket"):
            raise ValueError(
                f"readiness must be 'output' or 'socket', got {self.readiness!r}"
            )
        if self.readiness == "socket" and not self.ready_socket and not self.ready_port:
            raise ValueError(
                "socket readiness requires ready_socket or ready_port"
            )
        try:
            re.compile(self.ready_pattern)
        except re.error as e:
            raise ValueError(f"Invalid ready_pattern {self.ready_pattern!r}: {e}") from e


def substitute_target(args: list[str], target: str) -> list[str]:
    """Replace every ``{target}`` placeholder in args with target."""
    return [arg.replace(TARGET_PLACEHOLDER, target) for arg in args]


@dataclass(frozen=True)
class DatabaseConfig:
    """Configuration for database selection.

    Attributes:
        default: Database the daemon binds to on first start.
        data_dir: Directory holding one sub-directory per database.

    Raises:
        ValueError: If default is empty.
    """

    default: str = "default"
    data_dir: str = "~/.quarry/data"

    def __post_init__(self) -> None:
        """Validate database config after initialization."""
        if not self.default:
            raise ValueError("default database must not be empty")

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


@dataclass(frozen=True)
class QuarryConfig:
    """Complete quarrybar configuration.

    Attributes:
        daemon: Daemon launch and supervision configuration
        database: Database selection configuration
    """

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @staticmethod
    def default() -> "QuarryConfig":
        """Create a config with all default values."""
        return QuarryConfig(daemon=DaemonConfig(), database=DatabaseConfig())

    @staticmethod
    def from_partial(base: "QuarryConfig", data: dict[str, Any]) -> "QuarryConfig":
        """Overlay raw config data on an existing config.

        Only keys present in ``data`` replace values in ``base``; unknown keys
        are ignored. Validation runs on the merged sections.

        Args:
            base: Config providing values for keys missing from data
            data: Dictionary with config sections (as parsed from TOML)

        Returns:
            New QuarryConfig with data applied

        Raises:
            ValueError: If the merged values fail validation
        """
        return QuarryConfig(
            daemon=_overlay(base.daemon, data.get("daemon", {})),
            database=_overlay(base.database, data.get("database", {})),
        )


def _overlay(section: Any, values: dict[str, Any]) -> Any:
    known = {f.name for f in fields(section)}
    updates = {key: value for key, value in values.items() if key in known}
    return replace(section, **updates)
