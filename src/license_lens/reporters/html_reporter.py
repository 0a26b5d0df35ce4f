"""HTML report exporter.

Renders a standalone HTML page with Jinja2. Autoescaping is on, so package
metadata from registries cannot inject markup into the report.
"""

from datetime import UTC, datetime
from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from license_lens.models import ProjectInfo
from license_lens.reporters.base import (
    BaseReporter,
    compatibility_summary,
    format_datetime,
    license_distribution,
    overall_summary,
    project_summary,
)


def license_class(license: str) -> str:
    """Return the CSS class used to color a license row."""
    lower = (license or "").lower()
    if "mit" in lower:
        return "license-mit"
    if "apache" in lower:
        return "license-apache"
    if "bsd" in lower:
        return "license-bsd"
    if "gpl" in lower:
        return "license-gpl"
    if "unknown" in lower:
        return "license-unknown"
    return ""


class HtmlReporter(BaseReporter):
    """Reporter that generates an HTML license report.

    Attributes:
        template: The Jinja2 template to use for rendering.
        date_format: "international" or "us", for the generated-on line.
    """

    def __init__(
        self,
        template_path: Optional[Path] = None,
        date_format: str = "international",
    ) -> None:
        """Initialize the HTML reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the bundled template.
            date_format: Display format for the report timestamp.
        """
        self.date_format = date_format
        if template_path:
            env = Environment(
                loader=FileSystemLoader(template_path.parent),
                autoescape=select_autoescape(default=True),
            )
            self.template = env.get_template(template_path.name)
        else:
            self.template = self._load_default_template()

    def _load_default_template(self) -> Template:
        template_content = (
            files("license_lens.templates")
            .joinpath("report.html.j2")
            .read_text(encoding="utf-8")
        )
        env = Environment(autoescape=True)
        return env.from_string(template_content)

    def render(
        self,
        projects: list[ProjectInfo],
        generated_at: Optional[datetime] = None,
    ) -> str:
        generated_at = generated_at or datetime.now(UTC)
        return self.template.render(
            projects=[
                {
                    "project": project,
                    "summary": project_summary(project),
                    "compatibility": compatibility_summary(
                        list(license_distribution([project]))
                    ),
                }
                for project in projects
            ],
            summary=overall_summary(projects),
            compatibility=compatibility_summary(list(license_distribution(projects))),
            generated_at=format_datetime(generated_at, self.date_format),
            license_class=license_class,
        )

    @property
    def format_name(self) -> str:
        return "html"

    @property
    def default_extension(self) -> str:
        return ".html"
