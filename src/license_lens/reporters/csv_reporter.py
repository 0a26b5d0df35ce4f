"""CSV report exporter. One row per dependency per project."""

import csv
import io
from datetime import datetime
from typing import Optional

from license_lens.models import ProjectInfo
from license_lens.reporters.base import BaseReporter

HEADERS = [
    "Project",
    "Project Type",
    "Package Name",
    "Version",
    "License",
    "Repository",
    "Homepage",
]


class CsvReporter(BaseReporter):
    """Reporter that writes a flat CSV table.

    Fields containing commas, quotes or newlines are quoted, with embedded
    quotes doubled. The timestamp is not part of the output.
    """

    def render(
        self,
        projects: list[ProjectInfo],
        generated_at: Optional[datetime] = None,
    ) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(HEADERS)
        for project in projects:
            for dep in project.dependencies:
                writer.writerow([
                    project.name,
                    str(project.ecosystem),
                    dep.name,
                    dep.version,
                    dep.license,
                    dep.repository or "",
                    dep.homepage or "",
                ])
        return buffer.getvalue()

    @property
    def format_name(self) -> str:
        return "csv"

    @property
    def default_extension(self) -> str:
        return ".csv"
