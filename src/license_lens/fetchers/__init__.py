"""Registry fetchers that look up license metadata for dependencies."""

from license_lens.fetchers.base import BaseFetcher, coerce_license, exact_version
from license_lens.fetchers.crates import CratesFetcher
from license_lens.fetchers.go import GoFetcher
from license_lens.fetchers.npm import NpmFetcher
from license_lens.fetchers.nuget import NuGetFetcher
from license_lens.fetchers.pypi import PyPIFetcher
from license_lens.models import Ecosystem

FETCHERS: dict[Ecosystem, type[BaseFetcher]] = {
    Ecosystem.NPM: NpmFetcher,
    Ecosystem.PYPI: PyPIFetcher,
    Ecosystem.CRATES: CratesFetcher,
    Ecosystem.NUGET: NuGetFetcher,
    Ecosystem.GO: GoFetcher,
}


def get_fetcher(ecosystem: Ecosystem, retry_attempts: int = 3) -> BaseFetcher:
    """Create the fetcher for an ecosystem.

    Raises:
        ValueError: If no fetcher handles the ecosystem.
    """
    try:
        fetcher_class = FETCHERS[Ecosystem(ecosystem)]
    except (KeyError, ValueError) as e:
        raise ValueError(f"No fetcher for ecosystem: {ecosystem}") from e
    return fetcher_class(retry_attempts=retry_attempts)


__all__ = [
    "BaseFetcher",
    "CratesFetcher",
    "FETCHERS",
    "GoFetcher",
    "NpmFetcher",
    "NuGetFetcher",
    "PyPIFetcher",
    "coerce_license",
    "exact_version",
    "get_fetcher",
]
