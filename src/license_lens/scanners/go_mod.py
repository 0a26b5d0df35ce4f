"""Scanner for Go go.mod files."""

from pathlib import Path

from license_lens.models import Dependency, Ecosystem
from license_lens.scanners.base import BaseScanner


class GoModScanner(BaseScanner):
    """Scanner for go.mod files.

    Reads single-line ``require`` directives and ``require ( ... )`` blocks.
    Requirements marked ``// indirect`` are skipped.
    """

    ecosystem = Ecosystem.GO

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.name == "go.mod"

    @property
    def source_name(self) -> str:
        return "go.mod"

    def scan(self) -> list[Dependency]:
        packages = []
        in_require_block = False

        for line in self._read_source().splitlines():
            line = line.strip()

            if line == "require (" or line == "require(":
                in_require_block = True
                continue
            if line == ")" and in_require_block:
                in_require_block = False
                continue

            if line.startswith("require "):
                line = line.removeprefix("require ").strip()
            elif not in_require_block:
                continue

            if "// indirect" in line:
                continue

            line = line.split("//", 1)[0].strip()
            parts = line.split()
            if len(parts) >= 2:
                packages.append(self._dependency(parts[0], parts[1]))

        return packages
