"""Full license text lookup with a cache in front.

Texts are looked up in the cache first, then fetched from the SPDX license
list, the GitHub licenses API and choosealicense.com in that order. The
first text that looks like a real license wins; otherwise a built-in
fallback is used. Whatever is returned is cached.
"""

import asyncio
import logging
import re
from typing import Optional

import aiohttp

from license_lens.cache import LicenseCache
from license_lens.fetchers.base import HttpClient

logger = logging.getLogger(__name__)

SPDX_TEXT_URL = "https://raw.githubusercontent.com/spdx/license-list-data/main/text"
GITHUB_LICENSES_URL = "https://api.github.com/licenses"
CHOOSEALICENSE_URL = (
    "https://raw.githubusercontent.com/github/choosealicense.com/gh-pages/_licenses"
)

CACHE_SOURCE = "Multiple sources"

# Texts this short are error pages or stubs, not licenses
MIN_TEXT_LENGTH = 100

# Seconds allowed per source
SOURCE_TIMEOUT = 5

# License list names for licenses commonly reported without a suffix
SPDX_NAMES = {
    "GPL-3.0": "GPL-3.0-only",
    "GPL-2.0": "GPL-2.0-only",
    "LGPL-2.1": "LGPL-2.1-only",
    "LGPL-3.0": "LGPL-3.0-only",
}

# Licenses the GitHub API and choosealicense.com know about
GITHUB_KEYS = {
    "MIT": "mit",
    "Apache-2.0": "apache-2.0",
    "GPL-3.0": "gpl-3.0",
    "GPL-2.0": "gpl-2.0",
    "BSD-3-Clause": "bsd-3-clause",
    "BSD-2-Clause": "bsd-2-clause",
    "LGPL-2.1": "lgpl-2.1",
    "LGPL-3.0": "lgpl-3.0",
    "MPL-2.0": "mpl-2.0",
    "ISC": "isc",
}

_FRONT_MATTER = re.compile(r"^---.*?---", re.DOTALL)

FALLBACK_TEXTS = {
    "MIT": """MIT License

Copyright (c) [year] [fullname]

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.""",
    "Apache-2.0": """Apache License
Version 2.0, January 2004
http://www.apache.org/licenses/

TERMS AND CONDITIONS FOR USE, REPRODUCTION, AND DISTRIBUTION

1. Definitions.

"License" shall mean the terms and conditions for use, reproduction,
and distribution as defined by Sections 1 through 9 of this document.

See http://www.apache.org/licenses/LICENSE-2.0 for the full text.""",
}


def fallback_text(license_name: str) -> str:
    """Return the built-in text for a license, or a not-found notice."""
    return FALLBACK_TEXTS.get(
        license_name,
        f'License "{license_name}" text could not be retrieved from any source.\n\n'
        "Please visit the license provider or package documentation for the "
        "full license text.",
    )


class LicenseTextFetcher(HttpClient):
    """Fetches and caches full license texts.

    Attributes:
        cache: Cache consulted before and updated after each fetch.
    """

    def __init__(
        self,
        cache: LicenseCache,
        retry_attempts: int = 1,
        backoff: float = 0.5,
    ) -> None:
        super().__init__(retry_attempts=retry_attempts, backoff=backoff)
        self.cache = cache

    @property
    def name(self) -> str:
        return "license text"

    async def fetch_license_text(self, license_name: str) -> str:
        """Return the full text of a license.

        Args:
            license_name: Canonical license name (e.g., "MIT").

        Returns:
            The license text. Never raises; unknown licenses get a notice.
        """
        cached = self.cache.lookup_text(license_name)
        if cached is not None:
            logger.debug("License text cache hit for %s", license_name)
            return cached

        sources = [
            ("SPDX", self._fetch_from_spdx),
            ("GitHub", self._fetch_from_github),
            ("choosealicense.com", self._fetch_from_choosealicense),
        ]

        text = None
        for source_name, source in sources:
            try:
                async with asyncio.timeout(SOURCE_TIMEOUT):
                    candidate = await source(license_name)
            except (TimeoutError, aiohttp.ClientError, ValueError) as e:
                logger.warning(
                    "%s lookup failed for %s: %s", source_name, license_name, e
                )
                continue

            if candidate and len(candidate) > MIN_TEXT_LENGTH:
                logger.debug("Found %s text on %s", license_name, source_name)
                text = candidate
                break

        if text is None:
            logger.info("Using fallback text for %s", license_name)
            text = fallback_text(license_name)

        self.cache.store_text(license_name, text, CACHE_SOURCE)
        return text

    async def _fetch_from_spdx(self, license_name: str) -> Optional[str]:
        spdx_name = SPDX_NAMES.get(license_name, license_name)
        status, text = await self._get(f"{SPDX_TEXT_URL}/{spdx_name}.txt", as_json=False)
        return text if status == 200 else None

    async def _fetch_from_github(self, license_name: str) -> Optional[str]:
        key = GITHUB_KEYS.get(license_name)
        if key is None:
            return None
        status, data = await self._get(
            f"{GITHUB_LICENSES_URL}/{key}",
            headers={"Accept": "application/vnd.github.v3+json"},
        )
        if status != 200 or not isinstance(data, dict):
            return None
        return data.get("body")

    async def _fetch_from_choosealicense(self, license_name: str) -> Optional[str]:
        key = GITHUB_KEYS.get(license_name)
        if key is None:
            return None
        status, text = await self._get(f"{CHOOSEALICENSE_URL}/{key}.txt", as_json=False)
        if status != 200 or text is None:
            return None
        return _FRONT_MATTER.sub("", text, count=1).strip()
