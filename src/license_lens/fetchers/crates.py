"""crates.io fetcher."""

import logging

from license_lens.fetchers.base import BaseFetcher, coerce_license, exact_version
from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

CRATES_API_URL = "https://crates.io/api/v1/crates"
CRATES_PAGE_URL = "https://crates.io/crates"

LICENSE_FILE_ONLY = "See license file"
DEFAULT_DESCRIPTION = "Rust crate"


class CratesFetcher(BaseFetcher):
    """Fetcher for crates published to crates.io.

    The crates.io API rejects requests without a User-Agent, which the
    shared session always sends.
    """

    ecosystem = Ecosystem.CRATES

    @property
    def name(self) -> str:
        return "crates.io"

    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        url = f"{CRATES_API_URL}/{dependency.name}"
        logger.debug("Fetching crates.io metadata from %s", url)

        status, data = await self._get(url)
        if status == 404:
            logger.warning("Crate %s not found on crates.io", dependency.name)
            return self._sentinel(dependency, UNKNOWN_LICENSE)
        if status != 200 or not isinstance(data, dict):
            logger.error(
                "crates.io returned status %d for %s", status, dependency.name
            )
            return self._sentinel(dependency, UNKNOWN_LICENSE)

        crate = data.get("crate") or {}
        versions = data.get("versions") or []

        # Versions are listed newest first
        wanted = exact_version(dependency.version)
        release = next(
            (v for v in versions if v.get("num") == wanted),
            versions[0] if versions else {},
        )

        license = coerce_license(release.get("license") or crate.get("license"))
        if license == UNKNOWN_LICENSE and (
            release.get("license_file") or crate.get("license_file")
        ):
            license = LICENSE_FILE_ONLY

        repository = crate.get("repository") or f"{CRATES_PAGE_URL}/{dependency.name}"

        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=license,
            repository=repository,
            homepage=crate.get("homepage") or repository,
            description=crate.get("description") or DEFAULT_DESCRIPTION,
        )
