"""Shared fixtures for reporter tests."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from license_lens.models import Ecosystem, LicenseInfo, ProjectInfo


@pytest.fixture
def generated_at() -> datetime:
    return datetime(2025, 7, 17, 18, 22, tzinfo=UTC)


@pytest.fixture
def projects() -> list[ProjectInfo]:
    """Two projects: a permissive npm app and a Python service with a GPL conflict."""
    web = ProjectInfo(
        name="web",
        ecosystem=Ecosystem.NPM,
        path=Path("/work/web"),
        dependency_file=Path("/work/web/package.json"),
        dependencies=[
            LicenseInfo(
                name="react",
                version="^18.2.0",
                license="MIT",
                repository="https://github.com/facebook/react",
                homepage="https://react.dev",
                description="React is a JavaScript library for building user interfaces.",
            ),
            LicenseInfo(name="lodash", version="4.17.21", license="MIT"),
            LicenseInfo(name="mystery", version="1.0.0", license="Unknown"),
        ],
    )
    api = ProjectInfo(
        name="api",
        ecosystem=Ecosystem.PYPI,
        path=Path("/work/api"),
        dependency_file=Path("/work/api/requirements.txt"),
        dependencies=[
            LicenseInfo(name="requests", version="2.31.0", license="Apache-2.0"),
            LicenseInfo(name="gpl-lib", version="1.0", license="GPL-2.0"),
        ],
    )
    return [web, api]
