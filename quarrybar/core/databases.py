"""Database discovery and selection.

Each sub-directory of the data directory is one database the search daemon can
bind to. DatabaseSelector tracks which one is current and notifies subscribers
(typically DaemonSupervisor.retarget) when the selection changes.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from quarrybar.domain.exceptions import UnknownDatabaseError

logger = logging.getLogger(__name__)


class DatabaseSelector:
    """TargetSelector backed by a directory of databases."""

    def __init__(self, data_dir: Path, current: str):
        """Initialize selector.

        Args:
            data_dir: Directory holding one sub-directory per database
            current: Initially selected database
        """
        self.data_dir = data_dir
        self._current = current
        self._lock = threading.Lock()
        self._subscribers: list[Callable[[str], None]] = []

    @property
    def current(self) -> str:
        with self._lock:
            return self._current

    def list_databases(self) -> list[str]:
        """List available databases, sorted by name.

        The current database is always included, even before its directory
        exists (the daemon creates it on first use).

        Returns:
            Database names
        """
        names: set[str] = set()
        if self.data_dir.is_dir():
            names.update(
                entry.name
                for entry in self.data_dir.iterdir()
                if entry.is_dir() and not entry.name.startswith(".")
            )
        names.add(self.current)
        return sorted(names)

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register a callback invoked with the new database name on change.

        Returns:
            Function that removes the callback
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def select(self, name: str) -> None:
        """Make name the current database and notify subscribers.

        Selecting the current database does nothing.

        Raises:
            UnknownDatabaseError: If name is not an available database
        """
        available = self.list_databases()
        if name not in available:
            raise UnknownDatabaseError(
                f"Database '{name}' not found in {self.data_dir}",
                hint=f"Available databases: {', '.join(available)}",
            )

        with self._lock:
            if name == self._current:
                return
            self._current = name
            subscribers = list(self._subscribers)

        logger.info(f"Selected database {name!r}")
        for callback in subscribers:
            callback(name)

    def cycle(self, step: int = 1) -> str:
        """Select the next (or previous, with step=-1) database.

        Returns:
            The newly selected database name
        """
        available = self.list_databases()
        index = available.index(self.current)
        name = available[(index + step) % len(available)]
        self.select(name)
        return name
