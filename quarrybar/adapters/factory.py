"""Factory classes for adapter instantiation.

This module centralizes the wiring of configuration into supervisors, probes
and selectors, keeping the CLI layer free from direct adapter imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarrybar.adapters.config.toml_config_provider import TomlConfigProvider
    from quarrybar.adapters.daemon.supervisor import DaemonSupervisor
    from quarrybar.core.databases import DatabaseSelector
    from quarrybar.domain.config import QuarryConfig
    from quarrybar.ports.daemon import ReadinessProbe


class DaemonFactory:
    """Factory for creating supervision-related instances.

    Args:
        config: QuarryConfig with daemon and database settings.
    """

    def __init__(self, config: QuarryConfig) -> None:
        """Initialize factory with configuration.

        Args:
            config: Configuration containing daemon and database settings.
        """
        self._config = config

    def create_probe(self) -> ReadinessProbe:
        """Create the readiness probe selected by [daemon] readiness.

        Returns:
            OutputSentinelProbe or SocketProbe.
        """
        from quarrybar.adapters.daemon.readiness import OutputSentinelProbe, SocketProbe

        daemon = self._config.daemon
        if daemon.readiness == "socket":
            return SocketProbe(
                socket_path=Path(daemon.ready_socket).expanduser()
                if daemon.ready_socket
                else None,
                host=daemon.ready_host,
                port=daemon.ready_port,
            )
        return OutputSentinelProbe(daemon.ready_pattern)

    def create_selector(self, database: str | None = None) -> DatabaseSelector:
        """Create a DatabaseSelector over the configured data directory.

        Args:
            database: Initially selected database (default: [database] default).

        Returns:
            DatabaseSelector instance.
        """
        from quarrybar.core.databases import DatabaseSelector

        return DatabaseSelector(
            data_dir=self._config.database.data_path,
            current=database or self._config.database.default,
        )

    def create_supervisor(self, target: str | None = None) -> DaemonSupervisor:
        """Create a DaemonSupervisor in the stopped state.

        Args:
            target: Database to bind to (default: [database] default).

        Returns:
            DaemonSupervisor instance.
        """
        from quarrybar.adapters.daemon.supervisor import DaemonSupervisor

        return DaemonSupervisor.from_config(
            self._config.daemon,
            target=target or self._config.database.default,
            probe=self.create_probe(),
        )


class ConfigFactory:
    """Factory for creating configuration-related instances."""

    def create_config_provider(self) -> TomlConfigProvider:
        """Create a TomlConfigProvider instance.

        Returns:
            TomlConfigProvider instance.
        """
        from quarrybar.adapters.config.toml_config_provider import TomlConfigProvider

        return TomlConfigProvider()
