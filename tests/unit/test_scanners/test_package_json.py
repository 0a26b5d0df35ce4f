"""Tests for the PackageJsonScanner."""

import json
from pathlib import Path

import pytest

from license_lens.models import Ecosystem
from license_lens.scanners.package_json import PackageJsonScanner


class TestPackageJsonScanner:
    """Test suite for PackageJsonScanner."""

    def _write(self, tmp_path: Path, content: str) -> Path:
        path = tmp_path / "package.json"
        path.write_text(content)
        return path

    def test_can_handle(self):
        assert PackageJsonScanner.can_handle(Path("web/package.json"))
        assert not PackageJsonScanner.can_handle(Path("package-lock.json"))

    def test_scan_dependencies_then_dev(self, tmp_path: Path):
        path = self._write(
            tmp_path,
            json.dumps(
                {
                    "name": "web",
                    "devDependencies": {"jest": "^29.0.0"},
                    "dependencies": {"react": "^18.2.0", "lodash": "4.17.21"},
                }
            ),
        )

        packages = PackageJsonScanner(path).scan()

        assert [(p.name, p.version) for p in packages] == [
            ("react", "^18.2.0"),
            ("lodash", "4.17.21"),
            ("jest", "^29.0.0"),
        ]
        assert packages[0].ecosystem == Ecosystem.NPM

    def test_no_dependencies(self, tmp_path: Path):
        path = self._write(tmp_path, '{"name": "empty"}')

        assert PackageJsonScanner(path).scan() == []

    def test_non_string_version(self, tmp_path: Path):
        path = self._write(tmp_path, '{"dependencies": {"odd": {"version": "1"}}}')

        assert PackageJsonScanner(path).scan()[0].version == "Unknown"

    def test_invalid_json(self, tmp_path: Path):
        path = self._write(tmp_path, "{not json")

        with pytest.raises(ValueError, match="Invalid package.json"):
            PackageJsonScanner(path).scan()

    def test_non_object_json(self, tmp_path: Path):
        path = self._write(tmp_path, "[1, 2]")

        with pytest.raises(ValueError, match="expected an object"):
            PackageJsonScanner(path).scan()
