"""Two-keyspace TTL cache for license records and license texts.

The cache sits between the registry fetchers and the rest of the tool. It
keeps license records (keyed by ecosystem, package name and version) and
license texts (keyed by license name) in memory, bounds each keyspace,
expires entries on read, and writes a debounced snapshot of both keyspaces
to a durable state store.
"""

import json
import logging
from dataclasses import asdict
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Optional, Protocol

from license_lens.config import CacheConfig, ConfigurationManager
from license_lens.debounce import DebouncedCall
from license_lens.models import (
    CacheStats,
    LicenseInfo,
    LicenseInfoEntry,
    LicenseTextEntry,
)

logger = logging.getLogger(__name__)

LICENSE_INFO_KEY = "license_info_cache"
LICENSE_TEXT_KEY = "license_text_cache"

# Fraction of a full keyspace removed before inserting into it
EVICTION_FRACTION = 0.1


class StateStore(Protocol):
    """Durable key-value handle the cache persists its snapshot through."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def update(self, key: str, value: Any) -> None: ...


def make_cache_key(ecosystem: str, name: str, version: str) -> str:
    """Build the license-record key. Parts are case-sensitive and opaque."""
    return f"{ecosystem}:{name}:{version}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class LicenseCache:
    """In-memory license cache with TTL expiry, eviction and persistence.

    Configuration is read from the ``ConfigurationManager`` on every
    operation, so disabling the cache or changing its limits takes effect
    immediately. All methods are synchronous and must be called from a
    single thread; the persistence flush runs later on the same event loop.

    Attributes:
        config: Source of the ``cache.*`` settings.
        clock: Callable returning the current aware UTC datetime.
    """

    def __init__(
        self,
        config: ConfigurationManager,
        clock: Optional[Callable[[], datetime]] = None,
        debounce_delay: float = 1.0,
    ) -> None:
        """Create an empty cache with no persistence target.

        Args:
            config: Configuration manager supplying cache settings.
            clock: Optional clock override, used by tests.
            debounce_delay: Seconds of inactivity before a snapshot is written.
        """
        self.config = config
        self.clock = clock or _utcnow
        self._store: Optional[StateStore] = None
        self._info: dict[str, LicenseInfoEntry] = {}
        self._text: dict[str, LicenseTextEntry] = {}
        self._save = DebouncedCall(self._save_to_store, delay=debounce_delay)

    def init(self, store: StateStore) -> None:
        """Attach a durable store and load the persisted snapshot from it.

        Calling this again points the cache at a different store and loads
        from it; entries already in memory are kept unless overwritten.

        Args:
            store: Handle exposing ``get(key, default)`` and ``update(key, value)``.
        """
        self._store = store
        self._load_from_store()

    def close(self) -> None:
        """Flush any pending snapshot write. Call once on shutdown."""
        self._save.flush()

    def flush(self) -> None:
        """Write the snapshot now if a debounced write is pending."""
        self._save.flush()

    def save(self) -> None:
        """Write the snapshot now, whether or not a write is pending."""
        self._save.cancel()
        self._save_to_store()

    def lookup(self, ecosystem: str, name: str, version: str) -> Optional[LicenseInfo]:
        """Return the cached license record for a package.

        Args:
            ecosystem: Ecosystem identifier (e.g., "npm").
            name: Package name.
            version: Package version string.

        Returns:
            The cached LicenseInfo, or None if caching is disabled, the
            entry is missing, or it is older than ``max_age`` (in which case
            it is also removed).
        """
        config = self.config.get_cache_config()
        if not config.enabled:
            return None

        key = make_cache_key(str(ecosystem), name, version)
        entry = self._info.get(key)
        if entry is None:
            return None

        if self._is_expired(entry.fetched_at, config):
            del self._info[key]
            return None

        return entry.data

    def store(
        self, ecosystem: str, name: str, version: str, value: LicenseInfo
    ) -> None:
        """Insert or replace the license record for a package.

        Sentinel records ("Unknown", "Timeout") are stored like any other so
        repeated failures are not refetched within the TTL window.
        """
        config = self.config.get_cache_config()
        if not config.enabled:
            return

        key = make_cache_key(str(ecosystem), name, version)
        if len(self._info) >= config.max_size:
            self._evict_oldest(self._info, config.max_size)

        self._info.pop(key, None)
        self._info[key] = LicenseInfoEntry(
            data=value,
            fetched_at=self.clock(),
            ecosystem=str(ecosystem),
        )
        self._save.schedule()

    def lookup_text(self, license_name: str) -> Optional[str]:
        """Return the cached full text of a license, or None."""
        config = self.config.get_cache_config()
        if not config.enabled:
            return None

        entry = self._text.get(license_name)
        if entry is None:
            return None

        if self._is_expired(entry.fetched_at, config):
            del self._text[license_name]
            return None

        return entry.text

    def store_text(
        self, license_name: str, text: str, source: Optional[str] = None
    ) -> None:
        """Insert or replace the full text of a license."""
        config = self.config.get_cache_config()
        if not config.enabled:
            return

        if len(self._text) >= config.max_size:
            self._evict_oldest(self._text, config.max_size)

        self._text.pop(license_name, None)
        self._text[license_name] = LicenseTextEntry(
            text=text,
            fetched_at=self.clock(),
            source=source,
        )
        self._save.schedule()

    def clear_all(self) -> None:
        """Empty both keyspaces and overwrite the snapshot immediately."""
        self._info.clear()
        self._text.clear()
        self._save.cancel()

        if self._store is None:
            return

        try:
            self._store.update(LICENSE_INFO_KEY, {})
            self._store.update(LICENSE_TEXT_KEY, {})
        except Exception as e:
            logger.warning("Failed to clear persisted license cache: %s", e)

    def clear_expired(self) -> int:
        """Remove entries older than ``max_age`` from both keyspaces.

        Does not write the snapshot; the next debounced flush or ``close()``
        persists the result.

        Returns:
            Number of entries removed.
        """
        config = self.config.get_cache_config()
        removed = 0

        for keyspace in (self._info, self._text):
            expired = [
                key
                for key, entry in keyspace.items()
                if self._is_expired(entry.fetched_at, config)
            ]
            for key in expired:
                del keyspace[key]
            removed += len(expired)

        return removed

    def get_stats(self) -> CacheStats:
        """Return entry counts, a rough byte size and the timestamp range."""
        size = 0
        for entry in self._info.values():
            size += len(json.dumps(self._serialize_info(entry)).encode("utf-8"))
        for entry in self._text.values():
            size += len(entry.text.encode("utf-8"))

        timestamps = [e.fetched_at for e in self._info.values()]
        timestamps.extend(e.fetched_at for e in self._text.values())

        return CacheStats(
            license_info_entries=len(self._info),
            license_text_entries=len(self._text),
            approximate_size_bytes=size,
            oldest_entry=min(timestamps) if timestamps else None,
            newest_entry=max(timestamps) if timestamps else None,
        )

    def export_snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Dump every entry with its age, for inspection and export.

        Returns:
            Dictionary with ``license_info`` and ``license_text`` lists. Text
            entries report the text length rather than the text itself.
        """
        now = self.clock()

        license_info = [
            {
                "key": key,
                "data": asdict(entry.data),
                "fetched_at": entry.fetched_at.isoformat(),
                "age_ms": self._age_ms(now, entry.fetched_at),
            }
            for key, entry in self._info.items()
        ]
        license_text = [
            {
                "license_name": name,
                "text_length": len(entry.text),
                "fetched_at": entry.fetched_at.isoformat(),
                "age_ms": self._age_ms(now, entry.fetched_at),
                "source": entry.source,
            }
            for name, entry in self._text.items()
        ]

        return {"license_info": license_info, "license_text": license_text}

    def _is_expired(self, fetched_at: datetime, config: CacheConfig) -> bool:
        return self.clock() - fetched_at > timedelta(milliseconds=config.max_age_ms)

    @staticmethod
    def _age_ms(now: datetime, fetched_at: datetime) -> int:
        return int((now - fetched_at).total_seconds() * 1000)

    @staticmethod
    def _evict_oldest(keyspace: dict, max_size: int) -> None:
        """Remove the oldest tenth of a full keyspace, by fetch time.

        Always frees at least enough room for one insertion, which matters
        for small limits and for a limit lowered below the current size.
        """
        count = max(
            int(max_size * EVICTION_FRACTION),
            len(keyspace) - max_size + 1,
        )
        oldest = sorted(keyspace.items(), key=lambda item: item[1].fetched_at)
        for key, _ in oldest[: min(count, len(oldest))]:
            del keyspace[key]

        logger.debug("Evicted %d cache entries", min(count, len(oldest)))

    @staticmethod
    def _serialize_info(entry: LicenseInfoEntry) -> dict[str, Any]:
        return {
            "data": asdict(entry.data),
            "fetched_at": entry.fetched_at.isoformat(),
            "ecosystem": entry.ecosystem,
        }

    @staticmethod
    def _serialize_text(entry: LicenseTextEntry) -> dict[str, Any]:
        return {
            "text": entry.text,
            "fetched_at": entry.fetched_at.isoformat(),
            "source": entry.source,
        }

    def _load_from_store(self) -> None:
        """Load both keyspaces from the store.

        A keyspace whose blob cannot be decoded is left empty; the next
        flush overwrites the bad blob.
        """
        if self._store is None:
            return

        try:
            stored_info = self._store.get(LICENSE_INFO_KEY, {}) or {}
            info: dict[str, LicenseInfoEntry] = {}
            for key, value in stored_info.items():
                info[key] = LicenseInfoEntry(
                    data=LicenseInfo(**value["data"]),
                    fetched_at=_parse_timestamp(value["fetched_at"]),
                    ecosystem=value["ecosystem"],
                )
            self._info.update(info)
        except Exception as e:
            logger.warning("Failed to load license info cache: %s", e)

        try:
            stored_text = self._store.get(LICENSE_TEXT_KEY, {}) or {}
            text: dict[str, LicenseTextEntry] = {}
            for name, value in stored_text.items():
                text[name] = LicenseTextEntry(
                    text=value["text"],
                    fetched_at=_parse_timestamp(value["fetched_at"]),
                    source=value.get("source"),
                )
            self._text.update(text)
        except Exception as e:
            logger.warning("Failed to load license text cache: %s", e)

        logger.info(
            "Loaded %d license info entries and %d license text entries from cache",
            len(self._info),
            len(self._text),
        )

    def _save_to_store(self) -> None:
        """Write the full current state of both keyspaces."""
        if self._store is None:
            return

        try:
            self._store.update(
                LICENSE_INFO_KEY,
                {key: self._serialize_info(e) for key, e in self._info.items()},
            )
            self._store.update(
                LICENSE_TEXT_KEY,
                {name: self._serialize_text(e) for name, e in self._text.items()},
            )
        except Exception as e:
            logger.warning("Failed to save license cache: %s", e)
