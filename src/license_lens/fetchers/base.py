"""Base classes for registry license fetchers.

Fetchers query one package registry each and return a ``LicenseInfo`` for a
dependency. They never raise: timeouts produce the "Timeout" sentinel and
every other failure produces "Unknown", so callers can cache the outcome.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from license_lens.models import (
    TIMEOUT_LICENSE,
    UNKNOWN_LICENSE,
    Dependency,
    Ecosystem,
    LicenseInfo,
)

logger = logging.getLogger(__name__)

USER_AGENT = "license-lens (https://github.com/license-lens/license-lens)"

# Statuses worth retrying; anything else is returned to the caller as-is
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})

_VERSION_PATTERN = re.compile(r"\d+(?:\.[0-9A-Za-z]+)*(?:[-+][0-9A-Za-z.-]+)?")


def coerce_license(value: Any) -> str:
    """Flatten a registry license field into a single string.

    Registries report licenses as strings, lists of strings, objects with a
    ``type`` or ``name`` key, or not at all. Lists are joined with " OR ".

    Args:
        value: Raw license field from a registry response.

    Returns:
        License string, or "Unknown" when nothing usable is present.
    """
    if value is None:
        return UNKNOWN_LICENSE
    if isinstance(value, str):
        return value.strip() or UNKNOWN_LICENSE
    if isinstance(value, dict):
        return coerce_license(value.get("type") or value.get("name"))
    if isinstance(value, (list, tuple)):
        parts = [coerce_license(item) for item in value]
        parts = [part for part in parts if part != UNKNOWN_LICENSE]
        return " OR ".join(dict.fromkeys(parts)) if parts else UNKNOWN_LICENSE
    return str(value)


def exact_version(version: str) -> Optional[str]:
    """Extract a concrete version from a manifest version specifier.

    Examples: "^1.2.3" -> "1.2.3", ">=2.0,<3" -> "2.0", "v0.4.1" -> "0.4.1".

    Returns:
        The first version-looking token, or None for "Unknown", "*",
        "latest" and other specifiers without one.
    """
    if not version or version == UNKNOWN_LICENSE:
        return None
    match = _VERSION_PATTERN.search(version)
    return match.group(0) if match else None


class HttpClient:
    """Shared aiohttp session with retrying GET requests.

    Manages one session for connection reuse. Use as an async context
    manager or call ``close()`` when done.

    Attributes:
        retry_attempts: Extra attempts for transient failures.
        backoff: Base delay in seconds for exponential backoff between retries.
    """

    def __init__(self, retry_attempts: int = 3, backoff: float = 0.5) -> None:
        self.retry_attempts = retry_attempts
        self.backoff = backoff
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        """Return the source name used in log messages."""
        return type(self).__name__

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ttl_dns_cache=300)
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _get(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        as_json: bool = True,
    ) -> tuple[int, Any]:
        """GET a URL, retrying transient failures with exponential backoff.

        Args:
            url: URL to request.
            headers: Optional extra request headers.
            as_json: Decode the body as JSON when True, else return text.

        Returns:
            Tuple of (status, body). The body is None for non-200 statuses.

        Raises:
            aiohttp.ClientConnectionError: If every attempt failed to connect.
        """
        session = await self._get_session()

        for attempt in range(self.retry_attempts + 1):
            last_attempt = attempt >= self.retry_attempts
            try:
                async with session.get(url, headers=headers) as response:
                    if response.status in RETRY_STATUSES and not last_attempt:
                        logger.debug(
                            "%s returned %d for %s, retrying",
                            self.name,
                            response.status,
                            url,
                        )
                    elif response.status != 200:
                        return response.status, None
                    elif as_json:
                        return 200, await response.json(content_type=None)
                    else:
                        return 200, await response.text()
            except aiohttp.ClientConnectionError as e:
                if last_attempt:
                    raise
                logger.debug("Connection error for %s, retrying: %s", url, e)

            await asyncio.sleep(self.backoff * 2**attempt)

        # Unreachable: the last attempt always returns or raises
        raise aiohttp.ClientConnectionError(f"Retries exhausted for {url}")


class BaseFetcher(HttpClient, ABC):
    """Abstract base for registry fetchers.

    Subclasses implement ``_fetch`` for one registry; ``fetch`` applies the
    time budget and turns every failure into a sentinel record.
    """

    ecosystem: Ecosystem

    async def fetch(self, dependency: Dependency, timeout_ms: int) -> LicenseInfo:
        """Fetch license information for a dependency.

        Args:
            dependency: Dependency to look up.
            timeout_ms: Budget for the whole lookup, retries included.

        Returns:
            LicenseInfo from the registry, or one carrying the "Timeout" or
            "Unknown" sentinel on failure.
        """
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                return await self._fetch(dependency)
        except TimeoutError:
            logger.warning(
                "Timed out fetching %s metadata for %s", self.name, dependency.name
            )
            return self._sentinel(dependency, TIMEOUT_LICENSE)
        except aiohttp.ClientError as e:
            logger.error(
                "Network error fetching %s metadata for %s: %s",
                self.name,
                dependency.name,
                e,
            )
            return self._sentinel(dependency, UNKNOWN_LICENSE)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(
                "Failed to parse %s metadata for %s: %s",
                self.name,
                dependency.name,
                e,
            )
            return self._sentinel(dependency, UNKNOWN_LICENSE)

    @abstractmethod
    async def _fetch(self, dependency: Dependency) -> LicenseInfo:
        """Registry-specific lookup. May raise; ``fetch`` handles failures."""
        ...

    @staticmethod
    def _sentinel(dependency: Dependency, license: str) -> LicenseInfo:
        return LicenseInfo(
            name=dependency.name,
            version=dependency.version,
            license=license,
        )
