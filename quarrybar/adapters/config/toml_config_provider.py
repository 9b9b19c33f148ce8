"""TOML-based configuration provider.

Loads configuration from the global config file with an optional explicit
config file layered on top.

Config loading priority (highest to lowest):
1. Explicit: --config PATH
2. Global: ~/.config/quarrybar/config.toml (user defaults)
3. Built-in defaults
"""

import logging
from pathlib import Path

from quarrybar.domain.config import QuarryConfig
from quarrybar.shared.config_io import get_global_config_path, load_config_data

logger = logging.getLogger(__name__)


class TomlConfigProvider:
    """Configuration provider that loads from TOML files.

    Implements config cascade:
    1. Load global config if present
    2. Load explicit config if given
    3. Explicit values override global values (key-level merge per section)
    4. Missing values fall back to built-in defaults

    Gracefully handles missing or invalid configs with warnings.
    """

    def __init__(self, global_path: Path | None = None):
        """Initialize provider.

        Args:
            global_path: Global config location (default: platform config dir)
        """
        self.global_path = global_path or get_global_config_path()

    def load(self, config_path: Path | None = None) -> QuarryConfig:
        """Load configuration with global fallback.

        Args:
            config_path: Optional explicit config file layered over the global one

        Returns:
            QuarryConfig instance with merged values or defaults
        """
        config = QuarryConfig.default()

        if self.global_path.exists():
            config = self._apply(config, self.global_path, "global")

        if config_path is not None:
            if config_path.exists():
                config = self._apply(config, config_path, "explicit")
            else:
                logger.warning(
                    "Config file %s does not exist. Using global/default configuration.",
                    config_path,
                )

        return config

    def _apply(self, config: QuarryConfig, path: Path, layer: str) -> QuarryConfig:
        try:
            data = load_config_data(path)
            merged = QuarryConfig.from_partial(config, data)
        except (FileNotFoundError, ValueError, TypeError) as e:
            logger.warning(
                "Failed to load %s config at %s: %s. Ignoring it.", layer, path, e
            )
            return config
        logger.debug("Loaded %s config from %s", layer, path)
        return merged
