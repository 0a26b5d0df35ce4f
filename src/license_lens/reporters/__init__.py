"""Report exporters for scanned projects.

This module provides reporters for rendering projects and their resolved
licenses to JSON, CSV and HTML.
"""

from license_lens.reporters.base import BaseReporter, default_filename
from license_lens.reporters.csv_reporter import CsvReporter
from license_lens.reporters.html_reporter import HtmlReporter
from license_lens.reporters.json_reporter import JsonReporter

REPORTERS: dict[str, type[BaseReporter]] = {
    "json": JsonReporter,
    "csv": CsvReporter,
    "html": HtmlReporter,
}

__all__ = [
    "BaseReporter",
    "CsvReporter",
    "HtmlReporter",
    "JsonReporter",
    "REPORTERS",
    "default_filename",
]
