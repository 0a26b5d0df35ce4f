"""Dependency scanners for package manifests.

This module provides scanners for extracting declared dependencies from
each supported ecosystem's manifest format.
"""

from pathlib import Path

from license_lens.scanners.base import BaseScanner
from license_lens.scanners.cargo import CargoScanner
from license_lens.scanners.go_mod import GoModScanner
from license_lens.scanners.nuget import CsprojScanner, PackagesConfigScanner
from license_lens.scanners.package_json import PackageJsonScanner
from license_lens.scanners.requirements import RequirementsScanner

__all__ = [
    "BaseScanner",
    "CargoScanner",
    "CsprojScanner",
    "GoModScanner",
    "PackageJsonScanner",
    "PackagesConfigScanner",
    "RequirementsScanner",
    "SCANNERS",
    "get_scanner",
]

# Registry of available scanners in priority order
SCANNERS: list[type[BaseScanner]] = [
    PackageJsonScanner,
    CsprojScanner,
    PackagesConfigScanner,
    CargoScanner,
    GoModScanner,
    RequirementsScanner,
]


def get_scanner(path: Path) -> BaseScanner:
    """Get the appropriate scanner for a given manifest path.

    Args:
        path: Path to the manifest file.

    Returns:
        Scanner instance configured for the given file.

    Raises:
        ValueError: If no scanner can handle the given file.
    """
    for scanner_cls in SCANNERS:
        if scanner_cls.can_handle(path):
            return scanner_cls(path)

    raise ValueError(
        f"No scanner available for '{path.name}'. Supported files: package.json, "
        "*.csproj, packages.config, Cargo.toml, go.mod, requirements*.txt"
    )
