"""License analysis orchestrator.

Resolves license records for a batch of dependencies: cache hits are
returned directly, misses are fetched concurrently from the ecosystem's
registry, and every result is written back to the cache, failures included.
"""

import asyncio
import logging
from typing import Optional

from license_lens.cache import LicenseCache, make_cache_key
from license_lens.config import ConfigurationManager
from license_lens.fetchers import BaseFetcher, get_fetcher
from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

PROBLEMATIC_LICENSES = ["GPL-2.0", "GPL-3.0", "AGPL-3.0", "LGPL-2.1", "LGPL-3.0"]


class LicenseAnalyzer:
    """Cache-backed license lookup for dependencies.

    Fetchers are created on first use per ecosystem and closed by ``close()``.
    Pre-built fetchers can be passed in; they are closed the same way.

    Example:
        >>> async with LicenseAnalyzer(cache, config) as analyzer:
        ...     records = await analyzer.analyze(deps, Ecosystem.NPM)
    """

    def __init__(
        self,
        cache: LicenseCache,
        config: ConfigurationManager,
        fetchers: Optional[dict[Ecosystem, BaseFetcher]] = None,
    ) -> None:
        self.cache = cache
        self.config = config
        self._fetchers: dict[Ecosystem, BaseFetcher] = dict(fetchers or {})

    async def __aenter__(self) -> "LicenseAnalyzer":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close every fetcher's HTTP session."""
        for fetcher in self._fetchers.values():
            await fetcher.close()

    async def analyze(
        self, dependencies: list[Dependency], ecosystem: Ecosystem
    ) -> list[LicenseInfo]:
        """Resolve license records for dependencies of one ecosystem.

        Args:
            dependencies: Dependencies to resolve.
            ecosystem: Registry to query for cache misses.

        Returns:
            One LicenseInfo per dependency, in input order. Never raises;
            failures come back as "Unknown" or "Timeout" records.
        """
        results: dict[str, LicenseInfo] = {}
        misses: dict[str, Dependency] = {}

        for dep in dependencies:
            key = make_cache_key(str(ecosystem), dep.name, dep.version)
            if key in results or key in misses:
                continue
            cached = self.cache.lookup(ecosystem, dep.name, dep.version)
            if cached is not None:
                results[key] = cached
            else:
                misses[key] = dep

        logger.info(
            "%d of %d %s dependencies served from cache",
            len(results),
            len(results) + len(misses),
            ecosystem,
        )

        if misses:
            fetched = await asyncio.gather(
                *(self._fetch(dep, ecosystem) for dep in misses.values()),
                return_exceptions=True,
            )
            for (key, dep), outcome in zip(misses.items(), fetched):
                if isinstance(outcome, BaseException):
                    logger.error("Error fetching license for %s: %s", dep.name, outcome)
                    outcome = LicenseInfo(
                        name=dep.name, version=dep.version, license=UNKNOWN_LICENSE
                    )
                self.cache.store(ecosystem, dep.name, dep.version, outcome)
                results[key] = outcome

        return [
            results[make_cache_key(str(ecosystem), dep.name, dep.version)]
            for dep in dependencies
        ]

    async def _fetch(self, dependency: Dependency, ecosystem: Ecosystem) -> LicenseInfo:
        fetcher = self._get_fetcher(ecosystem)
        if fetcher is None:
            return LicenseInfo(
                name=dependency.name,
                version=dependency.version,
                license=UNKNOWN_LICENSE,
            )
        timeout_ms = self.config.get_fetching_config().timeout_ms
        return await fetcher.fetch(dependency, timeout_ms)

    def _get_fetcher(self, ecosystem: Ecosystem) -> Optional[BaseFetcher]:
        if ecosystem not in self._fetchers:
            try:
                retry_attempts = self.config.get_fetching_config().retry_attempts
                self._fetchers[ecosystem] = get_fetcher(ecosystem, retry_attempts)
            except ValueError:
                logger.warning("Unsupported ecosystem: %s", ecosystem)
                return None
        return self._fetchers[ecosystem]

    @staticmethod
    def group_licenses_by_type(
        dependencies: list[LicenseInfo],
    ) -> dict[str, list[LicenseInfo]]:
        """Group records by license string, in first-seen order."""
        groups: dict[str, list[LicenseInfo]] = {}
        for dep in dependencies:
            groups.setdefault(dep.license or UNKNOWN_LICENSE, []).append(dep)
        return groups

    @staticmethod
    def identify_problematic_licenses(
        dependencies: list[LicenseInfo],
    ) -> list[LicenseInfo]:
        """Return records whose license mentions a copyleft license family.

        Matching is a case-insensitive substring test, so "LGPL-2.1-only"
        and "GPL-3.0-or-later" are both flagged.
        """
        return [
            dep
            for dep in dependencies
            if any(
                problematic.lower() in (dep.license or "").lower()
                for problematic in PROBLEMATIC_LICENSES
            )
        ]
