"""Scanner for npm package.json manifests."""

import json
import logging
from pathlib import Path

from license_lens.models import Dependency, Ecosystem
from license_lens.scanners.base import BaseScanner

logger = logging.getLogger(__name__)


class PackageJsonScanner(BaseScanner):
    """Scanner for package.json files.

    Reports ``dependencies`` followed by ``devDependencies``. Version ranges
    are kept as written (e.g., "^4.17.21").
    """

    ecosystem = Ecosystem.NPM

    SECTIONS = ("dependencies", "devDependencies")

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.name == "package.json"

    @property
    def source_name(self) -> str:
        return "package.json"

    def scan(self) -> list[Dependency]:
        try:
            data = json.loads(self._read_source())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid package.json format: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Invalid package.json format: expected an object")

        packages = []
        for section in self.SECTIONS:
            entries = data.get(section) or {}
            for name, version in entries.items():
                packages.append(
                    self._dependency(name, version if isinstance(version, str) else None)
                )

        logger.debug("Found %d dependencies in %s", len(packages), self.source_path)
        return packages
