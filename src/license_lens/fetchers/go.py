"""Go module fetcher.

There is no JSON license API for Go modules, so the license and repository
are scraped from the module's pkg.go.dev page. When the module lives on
GitHub the LICENSE file is fetched from the repository as well.
"""

import asyncio
import logging
import re
from typing import Optional

import aiohttp
from bs4 import BeautifulSoup

from license_lens.fetchers.base import BaseFetcher
from license_lens.models import Dependency, Ecosystem, LicenseInfo

logger = logging.getLogger(__name__)

PKG_GO_DEV_URL = "https://pkg.go.dev"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"

PKG_GO_DEV_FALLBACK_LICENSE = "See pkg.go.dev"

# Elements whose text names the module license, most specific first
LICENSE_SELECTORS = [
    '[data-test-id="UnitHeader-license"]',
    '[data-test-id="UnitHeader-licenses"] a',
    ".License-name",
    'a[href*="tab=licenses"]',
    'a[href*="LICENSE"]',
    ".UnitMeta-detail span",
]

REPOSITORY_HOSTS = re.compile(r"^https://(github\.com|gitlab\.com|bitbucket\.org)/")

GITHUB_REPO_PATTERN = re.compile(r"github\.com/([^/]+/[^/]+)")

LICENSE_FILES = ["LICENSE", "LICENSE.txt", "LICENSE.md", "COPYING", "license"]
BRANCHES = ["main", "master"]

# Seconds allowed for the whole LICENSE file search
LICENSE_TEXT_TIMEOUT = 10


def scrape_license(soup: BeautifulSoup) -> Optional[str]:
    """Return the license named on a pkg.go.dev page, if any."""
    for selector in LICENSE_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            text = element.get_text(strip=True)
            if text:
                return text

    titled = soup.find(title=re.compile(r"^License: "))
    if titled is not None:
        return titled["title"].removeprefix("License: ").strip() or None
    return None


def scrape_repository(soup: BeautifulSoup) -> Optional[str]:
    """Return the source repository linked from a pkg.go.dev page.

    The repository box is preferred; otherwise the first GitHub, GitLab or
    Bitbucket link on the page is used. GitHub tree and blob suffixes are
    stripped.
    """
    link = soup.select_one(".UnitMeta-repo a[href]")
    if link is None or not REPOSITORY_HOSTS.match(link["href"]):
        link = soup.find("a", href=REPOSITORY_HOSTS)
    if link is None:
        return None

    repository = link["href"]
    if "github.com" in repository:
        repository = re.sub(r"/(tree|blob)/.*$", "", repository)
    return repository


class GoFetcher(BaseFetcher):
    """Fetcher for Go modules, via pkg.go.dev and GitHub.

    Attributes:
        fetch_license_text: Also download the LICENSE file for GitHub modules.
    """

    ecosystem = Ecosystem.GO

    def __init__(
        self,
        retry_attempts: int = 3,
        backoff: float = 0.5,
        fetch_license_text: bool = True,
    ) -> None:
        super().__init__(retry_attempts=retry_attempts, backoff=backoff)
        self.fetch_license_text = fetch_license_text

    @property
    def name(self) -> str:
        return "pkg.go.dev"

    async def fetch(self, dependency: Dependency, timeout_ms: int) -> LicenseInfo:
        """Fetch module metadata, then the LICENSE text outside the budget.

        The text download is best-effort and never turns a resolved license
        into a failure.
        """
        info = await super().fetch(dependency, timeout_ms)
        if self.fetch_license_text and not info.is_sentinel:
            try:
                async with asyncio.timeout(LICENSE_TEXT_TIMEOUT):
                    info.license_text = await self._fetch_license_text(
                        info.repository or dependency.name
                    )
            except TimeoutError:
                logger.debug("Timed out fetching LICENSE for %s", dependency.name)
        return info

    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        page_url = f"{PKG_GO_DEV_URL}/{dependency.name}"
        logger.debug("Fetching Go module page %s", page_url)

        status, html = await self._get(page_url, as_json=False)
        if status != 200 or not html:
            logger.warning(
                "pkg.go.dev returned status %d for %s", status, dependency.name
            )
            return LicenseInfo(
                name=dependency.name,
                version=dependency.version,
                license=PKG_GO_DEV_FALLBACK_LICENSE,
                repository=page_url,
                homepage=page_url,
                description="Go module - check pkg.go.dev for license details",
            )

        soup = BeautifulSoup(html, "html.parser")

        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=scrape_license(soup) or PKG_GO_DEV_FALLBACK_LICENSE,
            repository=scrape_repository(soup) or page_url,
            homepage=page_url,
            description="Go module",
        )

    async def _fetch_license_text(self, repo_url_or_module: str) -> Optional[str]:
        """Download the first LICENSE-like file found on a GitHub repository."""
        match = GITHUB_REPO_PATTERN.search(repo_url_or_module)
        if not match:
            return None

        repo_path = match.group(1)
        for file_name in LICENSE_FILES:
            for branch in BRANCHES:
                url = f"{GITHUB_RAW_URL}/{repo_path}/{branch}/{file_name}"
                try:
                    status, text = await self._get(url, as_json=False)
                except aiohttp.ClientError as e:
                    logger.debug("Failed to fetch %s: %s", url, e)
                    continue
                if status == 200 and text:
                    return text

        return None
