"""Tests for shared fetcher helpers and failure handling."""

import asyncio
from typing import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses

from license_lens.fetchers import (
    FETCHERS,
    CratesFetcher,
    NpmFetcher,
    coerce_license,
    exact_version,
    get_fetcher,
)
from license_lens.models import Dependency, Ecosystem

LODASH_URL = "https://registry.npmjs.org/lodash"


@pytest.fixture
async def npm_fetcher() -> AsyncGenerator[NpmFetcher, None]:
    """Return an npm fetcher that retries twice without waiting."""
    fetcher = NpmFetcher(retry_attempts=2, backoff=0)
    yield fetcher
    await fetcher.close()


class TestCoerceLicense:
    """Test flattening of registry license fields."""

    def test_string(self):
        assert coerce_license(" MIT ") == "MIT"

    def test_empty_and_missing(self):
        assert coerce_license(None) == "Unknown"
        assert coerce_license("") == "Unknown"

    def test_object_with_type(self):
        assert coerce_license({"type": "ISC", "url": "https://x"}) == "ISC"

    def test_object_with_name(self):
        assert coerce_license({"name": "BSD-3-Clause"}) == "BSD-3-Clause"

    def test_list_joined_with_or(self):
        value = [{"type": "MIT"}, "Apache-2.0", {"type": "MIT"}]

        assert coerce_license(value) == "MIT OR Apache-2.0"

    def test_list_of_nothing(self):
        assert coerce_license([{}, None]) == "Unknown"


class TestExactVersion:
    """Test version extraction from specifiers."""

    @pytest.mark.parametrize(
        "spec,expected",
        [
            ("4.17.21", "4.17.21"),
            ("^1.2.3", "1.2.3"),
            ("~0.4", "0.4"),
            (">=2.0,<3", "2.0"),
            ("v1.9.0", "1.9.0"),
            ("1.0.0-beta.1", "1.0.0-beta.1"),
        ],
    )
    def test_extracts_version(self, spec: str, expected: str):
        assert exact_version(spec) == expected

    @pytest.mark.parametrize("spec", ["Unknown", "*", "latest", ""])
    def test_no_version(self, spec: str):
        assert exact_version(spec) is None


class TestGetFetcher:
    """Test fetcher lookup by ecosystem."""

    def test_every_ecosystem_has_a_fetcher(self):
        assert set(FETCHERS) == set(Ecosystem)

    def test_accepts_string_values(self):
        assert isinstance(get_fetcher("crates"), CratesFetcher)

    def test_passes_retry_attempts(self):
        assert get_fetcher(Ecosystem.NPM, retry_attempts=7).retry_attempts == 7

    def test_unknown_ecosystem(self):
        with pytest.raises(ValueError, match="No fetcher"):
            get_fetcher("maven")


class TestFailureHandling:
    """Test retries and sentinel results."""

    @pytest.mark.asyncio
    async def test_retries_transient_status(self, npm_fetcher: NpmFetcher):
        """A 503 followed by a 200 resolves normally."""
        with aioresponses() as m:
            m.get(LODASH_URL, status=503)
            m.get(LODASH_URL, payload={"license": "MIT"})

            info = await npm_fetcher.fetch(
                Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=5000
            )

        assert info.license == "MIT"

    @pytest.mark.asyncio
    async def test_exhausted_retries_give_unknown(self, npm_fetcher: NpmFetcher):
        with aioresponses() as m:
            m.get(LODASH_URL, status=500, repeat=True)

            info = await npm_fetcher.fetch(
                Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=5000
            )

        assert info.license == "Unknown"

    @pytest.mark.asyncio
    async def test_connection_error_gives_unknown(self, npm_fetcher: NpmFetcher):
        with aioresponses() as m:
            m.get(LODASH_URL, exception=aiohttp.ClientConnectionError("refused"), repeat=True)

            info = await npm_fetcher.fetch(
                Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=5000
            )

        assert info.license == "Unknown"
        assert info.name == "lodash"
        assert info.version == "4.17.21"

    @pytest.mark.asyncio
    async def test_connection_error_then_success(self, npm_fetcher: NpmFetcher):
        with aioresponses() as m:
            m.get(LODASH_URL, exception=aiohttp.ClientConnectionError("reset"))
            m.get(LODASH_URL, payload={"license": "MIT"})

            info = await npm_fetcher.fetch(
                Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=5000
            )

        assert info.license == "MIT"

    @pytest.mark.asyncio
    async def test_malformed_json_gives_unknown(self, npm_fetcher: NpmFetcher):
        with aioresponses() as m:
            m.get(LODASH_URL, body="<html>not json</html>")

            info = await npm_fetcher.fetch(
                Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=5000
            )

        assert info.license == "Unknown"

    @pytest.mark.asyncio
    async def test_slow_lookup_gives_timeout(self, npm_fetcher: NpmFetcher, mocker):
        async def slow_fetch(dependency):
            await asyncio.sleep(1)

        mocker.patch.object(npm_fetcher, "_fetch", side_effect=slow_fetch)

        info = await npm_fetcher.fetch(
            Dependency("lodash", "4.17.21", Ecosystem.NPM), timeout_ms=10
        )

        assert info.license == "Timeout"
        assert info.is_sentinel

    @pytest.mark.asyncio
    async def test_session_reused_and_closed(self):
        fetcher = NpmFetcher()
        session = await fetcher._get_session()

        assert await fetcher._get_session() is session

        await fetcher.close()
        assert session.closed

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self):
        async with NpmFetcher() as fetcher:
            session = await fetcher._get_session()

        assert session.closed
