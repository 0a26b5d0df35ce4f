"""Core data models for license_lens.

This module defines the data structures shared by the scanners, fetchers,
cache, compatibility engine and reporters: dependency identities, license
records, cache entries and compatibility results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

# Sentinel license values for failed or inconclusive fetches. They are cached
# like any other result.
UNKNOWN_LICENSE = "Unknown"
TIMEOUT_LICENSE = "Timeout"

SENTINEL_LICENSES = frozenset({UNKNOWN_LICENSE, TIMEOUT_LICENSE})


class Ecosystem(str, Enum):
    """Package-manager universe a dependency belongs to."""

    NPM = "npm"
    NUGET = "nuget"
    CRATES = "crates"
    GO = "go"
    PYPI = "pypi"

    def __str__(self) -> str:
        return self.value


class RiskLevel(str, Enum):
    """Coarse licensing exposure of a set of licenses."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Dependency:
    """Immutable identity of a declared dependency.

    Frozen for hashability so it can key result dictionaries.

    Attributes:
        name: Package name as written in the manifest (e.g., "lodash").
        version: Version or version range as written, or "Unknown".
        ecosystem: Registry the package is published to.
    """

    name: str
    version: str
    ecosystem: Ecosystem


@dataclass
class LicenseInfo:
    """License record for one package, as returned by a fetcher.

    The license field is always a single canonical string; registry quirks
    (lists, objects, missing values) are flattened by the fetchers.

    Attributes:
        name: Package name.
        version: Package version.
        license: License identifier or a sentinel value.
        license_text: Optional full license text.
        repository: Optional source repository URL.
        homepage: Optional homepage URL.
        description: Optional package description.
    """

    name: str
    version: str
    license: str = UNKNOWN_LICENSE
    license_text: Optional[str] = None
    repository: Optional[str] = None
    homepage: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_sentinel(self) -> bool:
        """Return True if the license is a failed-fetch placeholder."""
        return self.license in SENTINEL_LICENSES


@dataclass(frozen=True)
class LicenseInfoEntry:
    """Cached license record keyed by ecosystem, name and version."""

    data: LicenseInfo
    fetched_at: datetime
    ecosystem: str


@dataclass(frozen=True)
class LicenseTextEntry:
    """Cached full text of a license, keyed by license name."""

    text: str
    fetched_at: datetime
    source: Optional[str] = None


@dataclass(frozen=True)
class CompatibilityPair:
    """Compatibility verdict for two normalized license names."""

    license_a: str
    license_b: str
    compatible: bool
    reason: Optional[str] = None


@dataclass
class ProjectCompatibility:
    """Result of analyzing every pair in a set of licenses.

    Attributes:
        compatible: True when no incompatible pair exists.
        issues: Incompatible pairs, each reported once (row < column).
        matrix: Square grid over ``licenses``; ``matrix[i][j]`` compares
            ``licenses[i]`` with ``licenses[j]``.
        licenses: Distinct normalized licenses in first-seen order.
    """

    compatible: bool
    issues: list[CompatibilityPair] = field(default_factory=list)
    matrix: list[list[CompatibilityPair]] = field(default_factory=list)
    licenses: list[str] = field(default_factory=list)


@dataclass
class CacheStats:
    """Snapshot of cache occupancy.

    Attributes:
        license_info_entries: Number of cached license records.
        license_text_entries: Number of cached license texts.
        approximate_size_bytes: Rough serialized size of both keyspaces.
        oldest_entry: Oldest fetch timestamp across both keyspaces.
        newest_entry: Newest fetch timestamp across both keyspaces.
    """

    license_info_entries: int
    license_text_entries: int
    approximate_size_bytes: int
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None


@dataclass
class ProjectInfo:
    """A project found in a workspace, with its scanned dependencies.

    Attributes:
        name: Display name, usually the directory name.
        ecosystem: Ecosystem of the manifest.
        path: Directory containing the manifest.
        dependency_file: Path to the manifest file.
        dependencies: License records, filled in by the analyzer.
    """

    name: str
    ecosystem: Ecosystem
    path: Path
    dependency_file: Path
    dependencies: list[LicenseInfo] = field(default_factory=list)
