"""Scanner for Rust Cargo.toml manifests."""

import tomllib
from pathlib import Path
from typing import Any, Optional

from license_lens.models import Dependency, Ecosystem
from license_lens.scanners.base import BaseScanner


class CargoScanner(BaseScanner):
    """Scanner for Cargo.toml files.

    Reads ``[dependencies]`` and ``[dev-dependencies]``. A dependency may be
    declared as a version string or as a table; tables without a ``version``
    key (path or git dependencies) get version "Unknown".
    """

    ecosystem = Ecosystem.CRATES

    SECTIONS = ("dependencies", "dev-dependencies")

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.name == "Cargo.toml"

    @property
    def source_name(self) -> str:
        return "Cargo.toml"

    def scan(self) -> list[Dependency]:
        try:
            data = tomllib.loads(self._read_source())
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid Cargo.toml format: {e}") from e

        packages = []
        for section in self.SECTIONS:
            for name, spec in (data.get(section) or {}).items():
                packages.append(self._dependency(name, self._version(spec)))

        return packages

    @staticmethod
    def _version(spec: Any) -> Optional[str]:
        if isinstance(spec, str):
            return spec
        if isinstance(spec, dict) and isinstance(spec.get("version"), str):
            return spec["version"]
        return None
