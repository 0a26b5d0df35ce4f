"""Scanners for NuGet references in .csproj and packages.config files."""

import xml.etree.ElementTree as ET
from pathlib import Path

from license_lens.models import Dependency, Ecosystem
from license_lens.scanners.base import BaseScanner


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class _XmlScanner(BaseScanner):
    ecosystem = Ecosystem.NUGET

    def _parse(self) -> ET.Element:
        try:
            return ET.fromstring(self._read_source())
        except ET.ParseError as e:
            raise ValueError(f"Invalid {self.source_name} format: {e}") from e


class CsprojScanner(_XmlScanner):
    """Scanner for SDK-style project files.

    Reads ``<PackageReference Include="..." Version="..."/>`` elements. The
    version may also be given as a child ``<Version>`` element.
    """

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.suffix.lower() == ".csproj"

    @property
    def source_name(self) -> str:
        return ".csproj"

    def scan(self) -> list[Dependency]:
        packages = []
        for element in self._parse().iter():
            if _local_name(element.tag) != "PackageReference":
                continue
            name = element.get("Include")
            if not name:
                continue
            version = element.get("Version")
            if version is None:
                for child in element:
                    if _local_name(child.tag) == "Version" and child.text:
                        version = child.text.strip()
            packages.append(self._dependency(name, version))
        return packages


class PackagesConfigScanner(_XmlScanner):
    """Scanner for legacy packages.config files (``<package id version/>``)."""

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.name.lower() == "packages.config"

    @property
    def source_name(self) -> str:
        return "packages.config"

    def scan(self) -> list[Dependency]:
        packages = []
        for element in self._parse().iter():
            if _local_name(element.tag) != "package":
                continue
            name = element.get("id")
            if name:
                packages.append(self._dependency(name, element.get("version")))
        return packages
