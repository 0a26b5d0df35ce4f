"""JSON report exporter."""

import json
from datetime import UTC, datetime
from typing import Any, Optional

from license_lens.models import LicenseInfo, ProjectInfo
from license_lens.reporters.base import (
    BaseReporter,
    compatibility_summary,
    license_distribution,
    overall_summary,
    project_summary,
)


def _dependency_dict(dep: LicenseInfo) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": dep.name,
        "version": dep.version,
        "license": dep.license,
    }
    for key, value in (
        ("repository", dep.repository),
        ("homepage", dep.homepage),
        ("description", dep.description),
        ("licenseText", dep.license_text),
    ):
        if value is not None:
            data[key] = value
    return data


class JsonReporter(BaseReporter):
    """Reporter that writes a machine-readable JSON report.

    Layout: ``{generatedAt, projects: [...], summary, compatibility}``, with
    per-project summaries and compatibility analyses.
    """

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def render(
        self,
        projects: list[ProjectInfo],
        generated_at: Optional[datetime] = None,
    ) -> str:
        generated_at = generated_at or datetime.now(UTC)
        report = {
            "generatedAt": generated_at.isoformat(),
            "projects": [
                {
                    "name": project.name,
                    "type": str(project.ecosystem),
                    "path": str(project.path),
                    "dependencyFile": str(project.dependency_file),
                    "dependencies": [_dependency_dict(d) for d in project.dependencies],
                    "summary": project_summary(project),
                    "compatibility": compatibility_summary(
                        list(license_distribution([project]))
                    ),
                }
                for project in projects
            ],
            "summary": overall_summary(projects),
            "compatibility": compatibility_summary(
                list(license_distribution(projects))
            ),
        }
        return json.dumps(report, indent=self.indent)

    @property
    def format_name(self) -> str:
        return "json"

    @property
    def default_extension(self) -> str:
        return ".json"
