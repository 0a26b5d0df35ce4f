"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from license_lens.cache import LicenseCache
from license_lens.config import ConfigurationManager
from license_lens.models import Dependency, Ecosystem, LicenseInfo
from license_lens.state import MemoryStateStore


class FakeClock:
    """Manually advanced clock for TTL and eviction tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingStore(MemoryStateStore):
    """Memory store that records every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, Any]] = []

    def update(self, key: str, value: Any) -> None:
        self.writes.append((key, value))
        super().update(key, value)


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock fixed at a known instant."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def config() -> ConfigurationManager:
    """Return an in-memory configuration with default settings."""
    return ConfigurationManager()


@pytest.fixture
def store() -> RecordingStore:
    """Return a memory state store that records writes."""
    return RecordingStore()


@pytest.fixture
def cache(config: ConfigurationManager, clock: FakeClock, store: RecordingStore) -> LicenseCache:
    """Return a cache on the fake clock, attached to the recording store."""
    license_cache = LicenseCache(config, clock=clock, debounce_delay=0.01)
    license_cache.init(store)
    return license_cache


@pytest.fixture
def sample_dependency() -> Dependency:
    """Sample npm dependency."""
    return Dependency(name="lodash", version="4.17.21", ecosystem=Ecosystem.NPM)


@pytest.fixture
def sample_license_info() -> LicenseInfo:
    """Sample resolved license record."""
    return LicenseInfo(
        name="lodash",
        version="4.17.21",
        license="MIT",
        repository="https://github.com/lodash/lodash",
        homepage="https://lodash.com/",
        description="Lodash modular utilities.",
    )
