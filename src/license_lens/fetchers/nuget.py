"""NuGet fetcher.

Resolves the version list from the flat-container index, then reads license
metadata from the package's ``.nuspec`` manifest.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from license_lens.fetchers.base import BaseFetcher, exact_version
from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

NUGET_FLAT_CONTAINER_URL = "https://api.nuget.org/v3-flatcontainer"
NUGET_GALLERY_URL = "https://www.nuget.org/packages"

GALLERY_FALLBACK_LICENSE = "See NuGet Gallery"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_text(root: ET.Element, name: str) -> Optional[str]:
    """Return the text of the first element with a local name, any namespace."""
    element = _find(root, name)
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _find(root: ET.Element, name: str) -> Optional[ET.Element]:
    for element in root.iter():
        if _local_name(element.tag) == name:
            return element
    return None


class NuGetFetcher(BaseFetcher):
    """Fetcher for packages published to nuget.org."""

    ecosystem = Ecosystem.NUGET

    @property
    def name(self) -> str:
        return "NuGet"

    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        package_id = dependency.name.lower()
        index_url = f"{NUGET_FLAT_CONTAINER_URL}/{package_id}/index.json"
        logger.debug("Fetching NuGet versions from %s", index_url)

        status, index = await self._get(index_url)
        if status == 404:
            logger.warning("Package %s not found on NuGet", dependency.name)
            return self._sentinel(dependency, UNKNOWN_LICENSE)
        if status != 200 or not isinstance(index, dict):
            logger.error("NuGet returned status %d for %s", status, dependency.name)
            return self._sentinel(dependency, UNKNOWN_LICENSE)

        versions = [v.lower() for v in index.get("versions") or []]
        if not versions:
            return self._gallery_fallback(dependency)

        wanted = exact_version(dependency.version)
        version = wanted.lower() if wanted and wanted.lower() in versions else versions[-1]

        nuspec_url = (
            f"{NUGET_FLAT_CONTAINER_URL}/{package_id}/{version}/{package_id}.nuspec"
        )
        status, nuspec = await self._get(nuspec_url, as_json=False)
        if status != 200 or not nuspec:
            logger.warning(
                "No nuspec for %s %s, using gallery link", dependency.name, version
            )
            return self._gallery_fallback(dependency)

        try:
            root = ET.fromstring(nuspec)
        except ET.ParseError as e:
            logger.warning("Malformed nuspec for %s: %s", dependency.name, e)
            return self._gallery_fallback(dependency)

        return self._parse_nuspec(root, dependency)

    def _parse_nuspec(self, root: ET.Element, dependency: Dependency) -> LicenseInfo:
        license_element = _find(root, "license")
        license = None
        if license_element is not None and license_element.text:
            if license_element.get("type") == "file":
                license = f"See {license_element.text.strip()}"
            else:
                license = license_element.text.strip()
        if not license:
            license_url = _find_text(root, "licenseUrl")
            license = license_url or GALLERY_FALLBACK_LICENSE

        repository_element = _find(root, "repository")
        repository = None
        if repository_element is not None:
            repository = repository_element.get("url") or None

        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=license,
            repository=repository or _find_text(root, "projectUrl"),
            homepage=_find_text(root, "projectUrl")
            or f"{NUGET_GALLERY_URL}/{dependency.name}",
            description=_find_text(root, "description"),
        )

    def _gallery_fallback(self, dependency: Dependency) -> LicenseInfo:
        gallery = f"{NUGET_GALLERY_URL}/{dependency.name}"
        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=GALLERY_FALLBACK_LICENSE,
            repository=gallery,
            homepage=gallery,
        )
