"""Scanner for requirements.txt files.

Parses pip requirements files line by line. Comments, blank lines, pip
options and VCS URLs are skipped; extras are stripped from package names.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from license_lens.models import Dependency, Ecosystem
from license_lens.scanners.base import BaseScanner

logger = logging.getLogger(__name__)


class RequirementsScanner(BaseScanner):
    """Scanner for requirements.txt format files.

    The version is whatever follows the first comparison operator, as
    written. For example:
    - "package==1.0.0" -> version "1.0.0"
    - "package>=1.0.0,<2.0.0" -> version "1.0.0,<2.0.0"
    - "package[extra]~=1.0" -> name "package", version "1.0"
    - "package" -> version "Unknown"
    """

    ecosystem = Ecosystem.PYPI

    # Longest first so "===" is not read as "=="
    OPERATOR_PATTERN = re.compile(r"===|==|>=|<=|!=|~=|>|<")

    # Pattern to detect git URLs
    GIT_URL_PATTERN = re.compile(r"(^git\+|\.git[@#]|^-e\s+git\+)")

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        """Handle ``requirements*.txt`` and ``*requirements*.txt`` files."""
        filename = path.name.lower()
        return "requirements" in filename and filename.endswith(".txt")

    @property
    def source_name(self) -> str:
        return "requirements.txt"

    def scan(self) -> list[Dependency]:
        """Scan the requirements file and extract dependencies.

        Returns:
            List of Dependency objects in file order.

        Raises:
            FileNotFoundError: If the source file does not exist.
            ValueError: If the source path was not provided.
        """
        packages = []

        for line_num, line in enumerate(self._read_source().splitlines(), start=1):
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if " #" in line:
                line = line.split(" #", 1)[0].strip()

            if self.GIT_URL_PATTERN.search(line):
                logger.warning("Skipping git URL on line %d: %s", line_num, line[:50])
                continue

            # Skip editable installs and options
            if line.startswith("-"):
                continue

            dependency = self._parse_line(line)
            if dependency:
                packages.append(dependency)
            else:
                logger.debug("Could not parse line %d: %s", line_num, line)

        return packages

    def _parse_line(self, line: str) -> Optional[Dependency]:
        # Environment markers are not versions
        line = line.split(";", 1)[0].strip()

        name, version = line, None
        match = self.OPERATOR_PATTERN.search(line)
        if match:
            name = line[: match.start()]
            version = line[match.end() :].strip() or None

        name = name.split("[", 1)[0].strip()
        if not name:
            return None

        return self._dependency(name, version)
