"""Unit tests for the two-keyspace license cache."""

import asyncio

import pytest

from license_lens.cache import (
    LICENSE_INFO_KEY,
    LICENSE_TEXT_KEY,
    LicenseCache,
    make_cache_key,
)
from license_lens.models import Ecosystem, LicenseInfo
from license_lens.state import MemoryStateStore, SqliteStateStore


def _info(name: str, license: str = "MIT") -> LicenseInfo:
    return LicenseInfo(name=name, version="1.0.0", license=license)


class TestCacheKey:
    """Test license record key construction."""

    def test_key_format(self):
        """Key joins ecosystem, name and version with colons."""
        assert make_cache_key("npm", "lodash", "4.17.21") == "npm:lodash:4.17.21"

    def test_key_is_case_sensitive(self):
        """Keys differing only in case are distinct."""
        assert make_cache_key("npm", "React", "1") != make_cache_key("npm", "react", "1")


class TestLookupAndStore:
    """Test basic storage and retrieval."""

    def test_store_and_lookup(self, cache, sample_license_info):
        """A stored record is returned for the same key."""
        cache.store("npm", "lodash", "4.17.21", sample_license_info)

        assert cache.lookup("npm", "lodash", "4.17.21") == sample_license_info

    def test_lookup_missing(self, cache):
        """A key that was never stored misses."""
        assert cache.lookup("npm", "missing", "1.0.0") is None

    def test_enum_and_string_ecosystems_share_keys(self, cache, sample_license_info):
        """Ecosystem enums and their string values address the same entry."""
        cache.store(Ecosystem.NPM, "lodash", "4.17.21", sample_license_info)

        assert cache.lookup("npm", "lodash", "4.17.21") == sample_license_info

    def test_store_replaces_existing(self, cache):
        """Storing an existing key replaces the record."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg", "MIT"))
        cache.store("npm", "pkg", "1.0.0", _info("pkg", "ISC"))

        assert cache.lookup("npm", "pkg", "1.0.0").license == "ISC"
        assert cache.get_stats().license_info_entries == 1

    def test_sentinels_are_cached(self, cache):
        """Failed lookups are cached like any other record."""
        cache.store("pypi", "broken", "0.1", _info("broken", "Timeout"))

        assert cache.lookup("pypi", "broken", "0.1").license == "Timeout"

    def test_text_store_and_lookup(self, cache):
        """License texts live in their own keyspace."""
        cache.store_text("MIT", "MIT License text", "Multiple sources")

        assert cache.lookup_text("MIT") == "MIT License text"
        assert cache.lookup("npm", "MIT", "") is None

    def test_keyspaces_are_independent(self, cache):
        """Records and texts are counted separately."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        cache.store_text("pkg", "text")

        stats = cache.get_stats()
        assert stats.license_info_entries == 1
        assert stats.license_text_entries == 1


class TestExpiry:
    """Test TTL expiry on read."""

    def test_entry_valid_at_exact_max_age(self, cache, clock):
        """An entry exactly max_age old is still served."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        clock.advance(hours=24)

        assert cache.lookup("npm", "pkg", "1.0.0") is not None

    def test_entry_expires_after_max_age(self, cache, clock):
        """An entry older than max_age misses and is removed."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        clock.advance(hours=24, milliseconds=1)

        assert cache.lookup("npm", "pkg", "1.0.0") is None
        assert cache.get_stats().license_info_entries == 0

    def test_text_expires_after_max_age(self, cache, clock):
        """License texts share the same TTL."""
        cache.store_text("MIT", "text")
        clock.advance(hours=25)

        assert cache.lookup_text("MIT") is None

    def test_max_age_change_applies_immediately(self, cache, clock, config):
        """Shortening max_age expires existing entries on the next read."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        clock.advance(hours=2)
        config.update("cache.max_age", 1)

        assert cache.lookup("npm", "pkg", "1.0.0") is None

    def test_clear_expired_counts_both_keyspaces(self, cache, clock):
        """clear_expired removes stale entries everywhere and reports the count."""
        cache.store("npm", "old", "1.0.0", _info("old"))
        cache.store_text("OLD", "text")
        clock.advance(hours=23)
        cache.store("npm", "new", "1.0.0", _info("new"))
        clock.advance(hours=2)

        assert cache.clear_expired() == 2
        stats = cache.get_stats()
        assert stats.license_info_entries == 1
        assert stats.license_text_entries == 0


class TestDisabledCache:
    """Test the cache.enabled switch."""

    def test_disabled_lookup_misses(self, cache, config):
        """Reads miss while the cache is disabled."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        config.update("cache.enabled", False)

        assert cache.lookup("npm", "pkg", "1.0.0") is None

    def test_disabled_store_is_noop(self, cache, config):
        """Writes are dropped while the cache is disabled."""
        config.update("cache.enabled", False)
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        cache.store_text("MIT", "text")
        config.update("cache.enabled", True)

        assert cache.lookup("npm", "pkg", "1.0.0") is None
        assert cache.lookup_text("MIT") is None

    def test_reenabling_restores_entries(self, cache, config):
        """Entries stored before disabling are served again after re-enabling."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        config.update("cache.enabled", False)
        config.update("cache.enabled", True)

        assert cache.lookup("npm", "pkg", "1.0.0") is not None


class TestEviction:
    """Test size-bounded eviction of the oldest entries."""

    def test_evicts_oldest_tenth_when_full(self, cache, clock, config):
        """Inserting into a full keyspace removes the oldest 10%."""
        config.update("cache.max_size", 20)
        for i in range(20):
            cache.store("npm", f"pkg{i}", "1.0.0", _info(f"pkg{i}"))
            clock.advance(seconds=1)

        cache.store("npm", "newcomer", "1.0.0", _info("newcomer"))

        assert cache.lookup("npm", "pkg0", "1.0.0") is None
        assert cache.lookup("npm", "pkg1", "1.0.0") is None
        assert cache.lookup("npm", "pkg2", "1.0.0") is not None
        assert cache.lookup("npm", "newcomer", "1.0.0") is not None
        assert cache.get_stats().license_info_entries == 19

    def test_small_limit_never_exceeded(self, cache, clock, config):
        """Limits below ten still evict at least one entry."""
        config.update("cache.max_size", 3)
        for i in range(10):
            cache.store("npm", f"pkg{i}", "1.0.0", _info(f"pkg{i}"))
            clock.advance(seconds=1)
            assert cache.get_stats().license_info_entries <= 3

        assert cache.lookup("npm", "pkg9", "1.0.0") is not None
        assert cache.lookup("npm", "pkg6", "1.0.0") is None

    def test_lowered_limit_shrinks_on_next_insert(self, cache, clock, config):
        """Lowering max_size below the current size is honored on insert."""
        for i in range(10):
            cache.store("npm", f"pkg{i}", "1.0.0", _info(f"pkg{i}"))
            clock.advance(seconds=1)
        config.update("cache.max_size", 5)

        cache.store("npm", "newcomer", "1.0.0", _info("newcomer"))

        assert cache.get_stats().license_info_entries == 5
        assert cache.lookup("npm", "pkg5", "1.0.0") is None
        assert cache.lookup("npm", "pkg6", "1.0.0") is not None

    def test_text_keyspace_has_own_bound(self, cache, clock, config):
        """Text eviction counts only text entries."""
        config.update("cache.max_size", 2)
        cache.store("npm", "a", "1", _info("a"))
        cache.store("npm", "b", "1", _info("b"))
        for name in ("MIT", "ISC", "BSD"):
            cache.store_text(name, f"{name} text")
            clock.advance(seconds=1)

        stats = cache.get_stats()
        assert stats.license_info_entries == 2
        assert stats.license_text_entries == 2
        assert cache.lookup_text("MIT") is None


class TestPersistence:
    """Test snapshot writes and loads."""

    def test_writes_are_deferred_without_event_loop(self, cache, store):
        """Outside an event loop nothing is written until close()."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        assert store.writes == []

        cache.close()

        assert [key for key, _ in store.writes] == [LICENSE_INFO_KEY, LICENSE_TEXT_KEY]

    def test_close_without_changes_writes_nothing(self, cache, store):
        """close() only writes when a save is pending."""
        cache.close()

        assert store.writes == []

    @pytest.mark.asyncio
    async def test_burst_of_writes_is_debounced(self, cache, store):
        """Several quick stores produce a single snapshot write."""
        for i in range(5):
            cache.store("npm", f"pkg{i}", "1.0.0", _info(f"pkg{i}"))
            cache.store_text(f"L{i}", "text")

        assert store.writes == []
        await asyncio.sleep(0.1)

        assert len(store.writes) == 2
        info_blob = store.get(LICENSE_INFO_KEY)
        assert len(info_blob) == 5
        assert len(store.get(LICENSE_TEXT_KEY)) == 5

    @pytest.mark.asyncio
    async def test_close_flushes_pending_write(self, cache, store):
        """close() writes a pending snapshot before the timer fires."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))

        cache.close()
        await asyncio.sleep(0.05)

        assert len(store.writes) == 2

    def test_clear_all_writes_immediately(self, cache, store):
        """clear_all empties memory and overwrites both blobs at once."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        cache.store_text("MIT", "text")

        cache.clear_all()

        assert store.get(LICENSE_INFO_KEY) == {}
        assert store.get(LICENSE_TEXT_KEY) == {}
        assert cache.get_stats().license_info_entries == 0

        # The pending save was cancelled
        store.writes.clear()
        cache.close()
        assert store.writes == []

    def test_clear_expired_is_not_written_by_close(self, cache, store, clock):
        """Sweeping expired entries leaves the snapshot to the next save."""
        cache.store("npm", "old", "1.0.0", _info("old"))
        cache.close()
        store.writes.clear()

        clock.advance(hours=25)
        assert cache.clear_expired() == 1
        cache.close()

        assert store.writes == []
        assert "npm:old:1.0.0" in store.get(LICENSE_INFO_KEY)

    def test_save_writes_swept_state(self, cache, store, clock):
        """save() persists the current state even with nothing pending."""
        cache.store("npm", "old", "1.0.0", _info("old"))
        cache.close()

        clock.advance(hours=25)
        cache.clear_expired()
        cache.save()

        assert store.get(LICENSE_INFO_KEY) == {}

    def test_save_replaces_pending_write(self, cache, store):
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))

        cache.save()
        assert len(store.writes) == 2

        cache.close()
        assert len(store.writes) == 2

    def test_round_trip_through_sqlite(self, config, clock, tmp_path, sample_license_info):
        """A snapshot written by one cache is loaded by the next."""
        db_path = tmp_path / "state.db"
        first = LicenseCache(config, clock=clock)
        first.init(SqliteStateStore(db_path))
        first.store("npm", "lodash", "4.17.21", sample_license_info)
        first.store_text("MIT", "MIT License text", "Multiple sources")
        first.close()

        second = LicenseCache(config, clock=clock)
        second.init(SqliteStateStore(db_path))

        assert second.lookup("npm", "lodash", "4.17.21") == sample_license_info
        assert second.lookup_text("MIT") == "MIT License text"
        snapshot = second.export_snapshot()
        assert snapshot["license_text"][0]["source"] == "Multiple sources"

    def test_loaded_entries_keep_their_age(self, config, clock):
        """Timestamps survive the round trip, so TTL keeps counting."""
        store = MemoryStateStore()
        first = LicenseCache(config, clock=clock)
        first.init(store)
        first.store("npm", "pkg", "1.0.0", _info("pkg"))
        first.close()

        clock.advance(hours=25)
        second = LicenseCache(config, clock=clock)
        second.init(store)

        assert second.lookup("npm", "pkg", "1.0.0") is None

    def test_corrupt_info_blob_is_ignored(self, config, clock):
        """An undecodable keyspace starts empty; the other still loads."""
        store = MemoryStateStore()
        store.update(LICENSE_INFO_KEY, {"npm:pkg:1.0.0": {"unexpected": True}})
        store.update(
            LICENSE_TEXT_KEY,
            {"MIT": {"text": "MIT text", "fetched_at": "2025-01-01T11:00:00+00:00"}},
        )

        license_cache = LicenseCache(config, clock=clock)
        license_cache.init(store)

        assert license_cache.get_stats().license_info_entries == 0
        assert license_cache.lookup_text("MIT") == "MIT text"

    def test_corrupt_json_in_sqlite_is_ignored(self, config, clock, tmp_path):
        """Garbage in the database does not prevent startup."""
        db_path = tmp_path / "state.db"
        state = SqliteStateStore(db_path)
        with state._connect() as conn:
            conn.execute(
                "REPLACE INTO state (key, value) VALUES (?, ?)",
                (LICENSE_INFO_KEY, "{not json"),
            )
            conn.commit()

        license_cache = LicenseCache(config, clock=clock)
        license_cache.init(state)

        assert license_cache.get_stats().license_info_entries == 0

    def test_store_failure_is_logged_not_raised(self, cache, mocker, caplog):
        """A failing store never breaks the caller."""
        mocker.patch.object(MemoryStateStore, "update", side_effect=OSError("disk full"))
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))

        cache.close()

        assert "Failed to save license cache" in caplog.text


class TestStatsAndExport:
    """Test cache statistics and snapshot export."""

    def test_empty_stats(self, cache):
        """An empty cache reports zero entries and no timestamps."""
        stats = cache.get_stats()

        assert stats.license_info_entries == 0
        assert stats.license_text_entries == 0
        assert stats.approximate_size_bytes == 0
        assert stats.oldest_entry is None
        assert stats.newest_entry is None

    def test_stats_track_timestamps_and_size(self, cache, clock):
        """Stats report the timestamp range and a growing size."""
        start = clock.now
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        first_size = cache.get_stats().approximate_size_bytes
        clock.advance(minutes=5)
        cache.store_text("MIT", "x" * 500)

        stats = cache.get_stats()
        assert first_size > 0
        assert stats.approximate_size_bytes >= first_size + 500
        assert stats.oldest_entry == start
        assert stats.newest_entry == clock.now

    def test_export_snapshot(self, cache, clock):
        """The export lists every entry with its age."""
        cache.store("npm", "pkg", "1.0.0", _info("pkg"))
        cache.store_text("MIT", "MIT text", "Multiple sources")
        clock.advance(seconds=2)

        snapshot = cache.export_snapshot()

        info = snapshot["license_info"][0]
        assert info["key"] == "npm:pkg:1.0.0"
        assert info["data"]["license"] == "MIT"
        assert info["age_ms"] == 2000
        text = snapshot["license_text"][0]
        assert text["license_name"] == "MIT"
        assert text["text_length"] == len("MIT text")
        assert text["source"] == "Multiple sources"
