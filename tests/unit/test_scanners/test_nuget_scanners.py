"""Tests for the .csproj and packages.config scanners."""

from pathlib import Path

import pytest

from license_lens.models import Ecosystem
from license_lens.scanners.nuget import CsprojScanner, PackagesConfigScanner

CSPROJ = """\
<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="13.0.3" />
    <PackageReference Include="Serilog">
      <Version>3.1.1</Version>
    </PackageReference>
    <PackageReference Include="Floating" />
    <ProjectReference Include="..\\Core\\Core.csproj" />
  </ItemGroup>
</Project>
"""

PACKAGES_CONFIG = """\
<?xml version="1.0" encoding="utf-8"?>
<packages>
  <package id="EntityFramework" version="6.4.4" targetFramework="net48" />
  <package id="log4net" version="2.0.15" targetFramework="net48" />
</packages>
"""


class TestCsprojScanner:
    """Test suite for CsprojScanner."""

    def test_can_handle(self):
        assert CsprojScanner.can_handle(Path("App.csproj"))
        assert not CsprojScanner.can_handle(Path("App.sln"))

    def test_scan(self, tmp_path: Path):
        path = tmp_path / "App.csproj"
        path.write_text(CSPROJ)

        packages = CsprojScanner(path).scan()

        assert [(p.name, p.version) for p in packages] == [
            ("Newtonsoft.Json", "13.0.3"),
            ("Serilog", "3.1.1"),
            ("Floating", "Unknown"),
        ]
        assert packages[0].ecosystem == Ecosystem.NUGET

    def test_invalid_xml(self, tmp_path: Path):
        path = tmp_path / "App.csproj"
        path.write_text("<Project><ItemGroup>")

        with pytest.raises(ValueError, match="Invalid .csproj"):
            CsprojScanner(path).scan()


class TestPackagesConfigScanner:
    """Test suite for PackagesConfigScanner."""

    def test_can_handle(self):
        assert PackagesConfigScanner.can_handle(Path("packages.config"))
        assert not PackagesConfigScanner.can_handle(Path("web.config"))

    def test_scan(self, tmp_path: Path):
        path = tmp_path / "packages.config"
        path.write_text(PACKAGES_CONFIG)

        packages = PackagesConfigScanner(path).scan()

        assert [(p.name, p.version) for p in packages] == [
            ("EntityFramework", "6.4.4"),
            ("log4net", "2.0.15"),
        ]
