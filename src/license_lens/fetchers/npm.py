"""npm registry fetcher.

Reads the package document from the public npm registry and takes the
license from the requested version, falling back to the ``latest`` dist-tag.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

from license_lens.fetchers.base import BaseFetcher, coerce_license, exact_version
from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

NPM_REGISTRY_URL = "https://registry.npmjs.org"


def _repository_url(repository: Any) -> Optional[str]:
    """Extract a browsable URL from an npm ``repository`` field."""
    if isinstance(repository, dict):
        repository = repository.get("url")
    if not isinstance(repository, str) or not repository:
        return None
    url = repository.removeprefix("git+")
    if url.startswith("git://"):
        url = "https://" + url.removeprefix("git://")
    return url.removesuffix(".git")


class NpmFetcher(BaseFetcher):
    """Fetcher for packages published to registry.npmjs.org."""

    ecosystem = Ecosystem.NPM

    @property
    def name(self) -> str:
        return "npm"

    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        # Scoped packages keep the "@" but encode the slash
        url = f"{NPM_REGISTRY_URL}/{quote(dependency.name, safe='@')}"
        logger.debug("Fetching npm metadata from %s", url)

        status, data = await self._get(url)
        if status == 404:
            logger.warning("Package %s not found on npm", dependency.name)
            return self._sentinel(dependency, UNKNOWN_LICENSE)
        if status != 200 or not isinstance(data, dict):
            logger.error(
                "npm registry returned status %d for %s", status, dependency.name
            )
            return self._sentinel(dependency, UNKNOWN_LICENSE)

        versions = data.get("versions") or {}
        latest = (data.get("dist-tags") or {}).get("latest")
        version_info = versions.get(exact_version(dependency.version)) or versions.get(
            latest
        ) or {}

        license = coerce_license(
            version_info.get("license")
            or version_info.get("licenses")
            or data.get("license")
        )

        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=license,
            repository=_repository_url(
                version_info.get("repository") or data.get("repository")
            ),
            homepage=version_info.get("homepage") or data.get("homepage"),
            description=version_info.get("description") or data.get("description"),
        )
