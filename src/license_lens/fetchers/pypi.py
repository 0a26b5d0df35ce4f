"""PyPI fetcher for license metadata from the PyPI JSON API.

The license is taken from the PEP 639 ``license_expression`` field, then the
free-text ``license`` field, then the trove classifiers. Free text is
normalized to SPDX identifiers with the license-expression library.
"""

import logging
from functools import lru_cache
from typing import Optional

from license_expression import get_spdx_licensing

from license_lens.fetchers.base import BaseFetcher, exact_version
from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

PYPI_URL = "https://pypi.org/pypi"

SPDX = get_spdx_licensing()

# Common license aliases and classifier names
LICENSE_MAP = {
    "Apache 2.0": "Apache-2.0",
    "Apache License 2.0": "Apache-2.0",
    "Apache Software License": "Apache-2.0",
    "Apache License, Version 2.0": "Apache-2.0",
    "MIT License": "MIT",
    "BSD License": "BSD-3-Clause",
    "BSD 3-Clause License": "BSD-3-Clause",
    "BSD 2-Clause License": "BSD-2-Clause",
    "GNU General Public License v3": "GPL-3.0",
    "GNU General Public License v3 (GPLv3)": "GPL-3.0",
    "GNU General Public License v2": "GPL-2.0",
    "GNU General Public License v2 (GPLv2)": "GPL-2.0",
    "GNU Lesser General Public License v3": "LGPL-3.0",
    "GNU Lesser General Public License v3 (LGPLv3)": "LGPL-3.0",
    "GNU Lesser General Public License v2 (LGPLv2)": "LGPL-2.1",
    "GNU Affero General Public License v3": "AGPL-3.0",
    "Mozilla Public License 2.0": "MPL-2.0",
    "Mozilla Public License 2.0 (MPL 2.0)": "MPL-2.0",
    "ISC License": "ISC",
    "ISC License (ISCL)": "ISC",
    "The Unlicense (Unlicense)": "Unlicense",
    "Python Software Foundation License": "PSF-2.0",
}

# Checked as substrings, longest first so "LGPL-3.0" wins over "GPL-3.0"
COMMON_SPDX = [
    "BSD-3-Clause", "BSD-2-Clause", "Apache-2.0", "AGPL-3.0", "LGPL-3.0",
    "LGPL-2.1", "GPL-3.0", "GPL-2.0", "MPL-2.0", "PSF-2.0", "MIT", "ISC",
]

# Free text longer than this is treated as a full license text
MAX_LICENSE_NAME_LENGTH = 100


@lru_cache(maxsize=1024)
def _normalize_license_text(license_text: str) -> Optional[str]:
    """Normalize a license string to an SPDX identifier.

    Args:
        license_text: Raw license string from PyPI.

    Returns:
        SPDX identifier, or None if not recognized.
    """
    if not license_text or license_text.upper() == "UNKNOWN":
        return None

    license_text = license_text.strip()
    if license_text in LICENSE_MAP:
        return LICENSE_MAP[license_text]

    try:
        parsed = SPDX.parse(license_text, validate=True)
        if parsed is not None:
            return str(parsed).strip().removesuffix("-only")
    except Exception as e:
        logger.debug("SPDX parse failed for %r: %s", license_text, e)

    license_upper = license_text.upper()
    squashed = license_upper.replace("-", "").replace(" ", "")
    for spdx_id in COMMON_SPDX:
        if spdx_id.upper() in license_upper or spdx_id.upper().replace("-", "") in squashed:
            return spdx_id

    logger.debug("Could not normalize license: %s", license_text)
    return None


def _license_from_classifiers(classifiers: list[str]) -> Optional[str]:
    """Join the licenses named by ``License ::`` classifiers with " OR "."""
    licenses = []
    for classifier in classifiers:
        if not classifier.startswith("License :: "):
            continue
        # "License :: OSI Approved :: MIT License" -> "MIT License"
        parts = classifier.split(" :: ")
        if len(parts) < 3:
            continue
        spdx_id = _normalize_license_text(parts[-1].strip())
        if spdx_id:
            licenses.append(spdx_id)

    if not licenses:
        return None
    return " OR ".join(dict.fromkeys(licenses))


class PyPIFetcher(BaseFetcher):
    """Fetcher for packages published to pypi.org.

    Requests the pinned release when the manifest names a version and falls
    back to the project's latest release if that release is not found.
    """

    ecosystem = Ecosystem.PYPI

    @property
    def name(self) -> str:
        return "PyPI"

    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        version = exact_version(dependency.version)
        urls = [f"{PYPI_URL}/{dependency.name}/json"]
        if version:
            urls.insert(0, f"{PYPI_URL}/{dependency.name}/{version}/json")

        data = None
        for url in urls:
            logger.debug("Fetching PyPI metadata from %s", url)
            status, data = await self._get(url)
            if status == 200:
                break
            if status != 404:
                logger.error(
                    "PyPI API returned status %d for %s", status, dependency.name
                )
                return self._sentinel(dependency, UNKNOWN_LICENSE)

        if not isinstance(data, dict):
            logger.warning("Package %s not found on PyPI", dependency.name)
            return self._sentinel(dependency, UNKNOWN_LICENSE)

        info = data.get("info") or {}
        license, license_text = self._extract_license(info)
        project_urls = info.get("project_urls") or {}

        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=license,
            license_text=license_text,
            repository=self._extract_repository_url(project_urls),
            homepage=info.get("home_page") or project_urls.get("Homepage"),
            description=info.get("summary") or None,
        )

    def _extract_license(self, info: dict) -> tuple[str, Optional[str]]:
        """Return the license identifier and, if embedded, the full text."""
        expression = (info.get("license_expression") or "").strip()
        if expression:
            return expression, None

        license_field = (info.get("license") or "").strip()
        license_text = None
        if license_field and license_field.upper() != "UNKNOWN":
            if len(license_field) > MAX_LICENSE_NAME_LENGTH or "\n" in license_field:
                # Some projects paste the whole license into this field
                license_text = license_field
            else:
                return _normalize_license_text(license_field) or license_field, None

        from_classifiers = _license_from_classifiers(info.get("classifiers") or [])
        if from_classifiers:
            return from_classifiers, license_text

        if license_text:
            return _normalize_license_text(license_text) or UNKNOWN_LICENSE, license_text
        return UNKNOWN_LICENSE, None

    def _extract_repository_url(self, project_urls: dict) -> Optional[str]:
        """Extract a repository URL from ``project_urls``.

        Tries common keys like "Source" and "Repository", accepting only
        known Git hosting URLs.
        """
        repo_keys = [
            "Source",
            "Repository",
            "Source Code",
            "source",
            "repository",
            "Code",
            "GitHub",
            "GitLab",
        ]

        for key in repo_keys:
            url = project_urls.get(key)
            if url and any(
                host in url.lower()
                for host in ["github.com", "gitlab.com", "bitbucket.org"]
            ):
                return url

        return None
