"""Runtime configuration for license_lens.

Settings are kept as a nested mapping mirroring the YAML file layout and are
read fresh on every accessor call, so an ``update()`` is visible to the cache
and fetchers immediately.
"""

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "license-lens" / "config.yaml"

DEFAULTS: dict[str, dict[str, Any]] = {
    "cache": {
        "enabled": True,
        "max_age": 24,  # hours
        "max_size": 1000,
    },
    "fetching": {
        "timeout": 5000,  # milliseconds
        "retry_attempts": 3,
    },
    "compatibility": {
        "show_warnings": True,
        "strict_mode": False,
    },
    "display": {
        "group_by_license": True,
        "show_descriptions": True,
        "highlight_problematic": True,
        "date_format": "international",
    },
}

DATE_FORMATS = ("international", "us")


@dataclass(frozen=True)
class CacheConfig:
    """Cache settings as seen by the cache.

    Attributes:
        enabled: Master switch; when False reads miss and writes are dropped.
        max_age_ms: Entry time-to-live in milliseconds.
        max_size: Maximum number of entries per keyspace.
    """

    enabled: bool
    max_age_ms: int
    max_size: int


@dataclass(frozen=True)
class FetchingConfig:
    timeout_ms: int
    retry_attempts: int


@dataclass(frozen=True)
class CompatibilityConfig:
    show_warnings: bool
    strict_mode: bool


@dataclass(frozen=True)
class DisplayConfig:
    group_by_license: bool
    show_descriptions: bool
    highlight_problematic: bool
    date_format: str


class ConfigurationManager:
    """Holds license_lens settings, optionally backed by a YAML file.

    Attributes:
        path: YAML file the settings were loaded from and are saved to,
            or None for an in-memory configuration.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        """Initialize with defaults, then overlay the YAML file if present.

        Args:
            path: Optional path to a YAML config file. A missing file is not
                an error; defaults are used until ``save()`` creates it.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values.
        """
        self.path = path
        self._settings = copy.deepcopy(DEFAULTS)
        if path is not None and path.exists():
            self._load(path)

    def _load(self, path: Path) -> None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML config file at {path}: {e}") from e

        if raw is None:
            return
        if not isinstance(raw, dict):
            raise ValueError(f"Config file at {path} must be a YAML mapping")

        for section, values in raw.items():
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{section}' must be a mapping")
            for key, value in values.items():
                self.update(f"{section}.{key}", value)

        logger.debug("Loaded configuration from %s", path)

    def get(self, key: str) -> Any:
        """Return a setting by dotted key (e.g., "cache.enabled")."""
        section, name = self._split_key(key)
        return self._settings[section][name]

    def update(self, key: str, value: Any) -> None:
        """Set a setting by dotted key, validating its type.

        Args:
            key: Dotted key such as "cache.max_size".
            value: New value; must match the type of the default.

        Raises:
            ValueError: If the key is unknown or the value is invalid.
        """
        section, name = self._split_key(key)
        default = DEFAULTS[section][name]

        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean, got {value!r}")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be a number, got {value!r}")
            if value < 0:
                raise ValueError(f"{key} must not be negative, got {value!r}")
            if key == "cache.max_size" and value < 1:
                raise ValueError("cache.max_size must be at least 1")
        elif isinstance(default, str):
            if key == "display.date_format" and value not in DATE_FORMATS:
                raise ValueError(
                    f"display.date_format must be one of {', '.join(DATE_FORMATS)}"
                )

        self._settings[section][name] = value

    def reset_to_defaults(self) -> None:
        """Restore every setting to its default value."""
        self._settings = copy.deepcopy(DEFAULTS)

    def save(self) -> None:
        """Write the current settings to ``path`` as YAML.

        Raises:
            ValueError: If the configuration has no backing file.
        """
        if self.path is None:
            raise ValueError("Configuration has no file path to save to")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(self._settings, sort_keys=False), encoding="utf-8"
        )

    def get_configuration(self) -> dict[str, dict[str, Any]]:
        """Return a copy of the full settings tree."""
        return copy.deepcopy(self._settings)

    def get_cache_config(self) -> CacheConfig:
        cache = self._settings["cache"]
        return CacheConfig(
            enabled=cache["enabled"],
            max_age_ms=int(cache["max_age"] * 60 * 60 * 1000),
            max_size=int(cache["max_size"]),
        )

    def get_fetching_config(self) -> FetchingConfig:
        fetching = self._settings["fetching"]
        return FetchingConfig(
            timeout_ms=int(fetching["timeout"]),
            retry_attempts=int(fetching["retry_attempts"]),
        )

    def get_compatibility_config(self) -> CompatibilityConfig:
        return CompatibilityConfig(**self._settings["compatibility"])

    def get_display_config(self) -> DisplayConfig:
        return DisplayConfig(**self._settings["display"])

    @staticmethod
    def _split_key(key: str) -> tuple[str, str]:
        section, _, name = key.partition(".")
        if section not in DEFAULTS or name not in DEFAULTS[section]:
            raise ValueError(f"Unknown configuration key: {key}")
        return section, name
