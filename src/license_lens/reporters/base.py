"""Base interface for report exporters.

Reporters render scanned projects and their resolved licenses to a report
document (JSON, CSV, HTML). The summary helpers here are shared by every
format so the numbers agree across them.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Optional

from license_lens.compatibility import (
    analyze_project_compatibility,
    get_recommendations,
    get_risk_level,
)
from license_lens.models import SENTINEL_LICENSES, UNKNOWN_LICENSE, ProjectInfo


def default_filename(extension: str, today: Optional[date] = None) -> str:
    """Return ``license-report-<YYYY-MM-DD><extension>``."""
    today = today or datetime.now(UTC).date()
    return f"license-report-{today.isoformat()}{extension}"


def format_datetime(value: datetime, date_format: str = "international") -> str:
    """Format a timestamp for display.

    "international" gives "17 July 2025, 18:22"; "us" gives
    "July 17, 2025, 6:22 PM".
    """
    if date_format == "us":
        hour = value.hour % 12 or 12
        return f"{value:%B} {value.day}, {value.year}, {hour}:{value:%M %p}"
    return f"{value.day} {value:%B %Y}, {value:%H:%M}"


def license_distribution(projects: list[ProjectInfo]) -> dict[str, int]:
    """Count dependencies per license string, in first-seen order."""
    distribution: dict[str, int] = {}
    for project in projects:
        for dep in project.dependencies:
            license = dep.license or UNKNOWN_LICENSE
            distribution[license] = distribution.get(license, 0) + 1
    return distribution


def project_summary(project: ProjectInfo) -> dict[str, Any]:
    distribution = license_distribution([project])
    return {
        "totalDependencies": len(project.dependencies),
        "licenseDistribution": distribution,
        "uniqueLicenses": len(distribution),
    }


def overall_summary(projects: list[ProjectInfo]) -> dict[str, Any]:
    distribution = license_distribution(projects)
    return {
        "totalProjects": len(projects),
        "totalDependencies": sum(len(p.dependencies) for p in projects),
        "uniqueLicenses": len(distribution),
        "licenseDistribution": distribution,
    }


def compatibility_summary(licenses: list[str]) -> dict[str, Any]:
    """Analyze a set of licenses for reporting.

    Sentinel values are left out: an unresolved license says nothing about
    compatibility.

    Returns:
        Dictionary with ``compatible``, ``riskLevel``, ``licenses``,
        ``issues`` and ``recommendations``.
    """
    known = [lic for lic in licenses if lic and lic not in SENTINEL_LICENSES]
    analysis = analyze_project_compatibility(known)
    return {
        "compatible": analysis.compatible,
        "riskLevel": str(get_risk_level(known)),
        "licenses": analysis.licenses,
        "issues": [
            {
                "licenseA": issue.license_a,
                "licenseB": issue.license_b,
                "reason": issue.reason,
            }
            for issue in analysis.issues
        ],
        "recommendations": get_recommendations(known),
    }


class BaseReporter(ABC):
    """Abstract base class for report exporters."""

    @abstractmethod
    def render(
        self,
        projects: list[ProjectInfo],
        generated_at: Optional[datetime] = None,
    ) -> str:
        """Render projects to a report document.

        Args:
            projects: Projects with resolved dependency licenses.
            generated_at: Report timestamp; defaults to now.

        Returns:
            Rendered output as a string.
        """
        ...

    def write(
        self,
        projects: list[ProjectInfo],
        output_path: Path,
        generated_at: Optional[datetime] = None,
    ) -> None:
        """Render and write output to a file.

        Args:
            projects: Projects with resolved dependency licenses.
            output_path: Path to write the output file.
            generated_at: Report timestamp; defaults to now.
        """
        content = self.render(projects, generated_at)
        output_path.write_text(content, encoding="utf-8")

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the output format name.

        Returns:
            Format name like "json", "csv" or "html".
        """
        ...

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Return the default file extension for this format.

        Returns:
            Extension like ".json", ".csv" or ".html".
        """
        ...

    def default_filename(self, today: Optional[date] = None) -> str:
        """Return the dated default file name for this format."""
        return default_filename(self.default_extension, today)
