"""Workspace project detection.

Walks a directory tree looking for package manifests and returns one
``ProjectInfo`` per manifest found.
"""

import logging
from pathlib import Path

from license_lens.models import Ecosystem, ProjectInfo

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({
    "node_modules",
    ".git",
    ".vscode",
    "dist",
    "build",
    "out",
    "target",
    "bin",
    "obj",
    ".next",
    ".nuxt",
    "vendor",
    "__pycache__",
    ".pytest_cache",
})

# Fixed-name manifests checked in every directory
MANIFESTS = [
    ("package.json", Ecosystem.NPM),
    ("packages.config", Ecosystem.NUGET),
    ("Cargo.toml", Ecosystem.CRATES),
    ("go.mod", Ecosystem.GO),
    ("requirements.txt", Ecosystem.PYPI),
]


def should_skip_directory(name: str) -> bool:
    """Return True for vendored, build output and hidden directories."""
    return name in SKIP_DIRS or name.startswith(".")


class ProjectDetector:
    """Finds projects in a workspace by their manifest files."""

    def detect_projects(self, root: Path, max_depth: int = 3) -> list[ProjectInfo]:
        """Detect projects in ``root`` and its subdirectories.

        Args:
            root: Workspace directory to search.
            max_depth: How many directory levels below the root to search.

        Returns:
            Projects in discovery order, one per manifest file.

        Raises:
            FileNotFoundError: If ``root`` is not a directory.
        """
        root = Path(root)
        if not root.is_dir():
            raise FileNotFoundError(f"Not a directory: {root}")

        projects: list[ProjectInfo] = []
        self._detect_in_directory(root, projects)
        self._detect_recursively(root, projects, 0, max_depth)
        return self._deduplicate(projects)

    def _detect_recursively(
        self,
        directory: Path,
        projects: list[ProjectInfo],
        depth: int,
        max_depth: int,
    ) -> None:
        if depth >= max_depth:
            return

        try:
            subdirs = sorted(p for p in directory.iterdir() if p.is_dir())
        except OSError as e:
            logger.warning("Could not read directory %s: %s", directory, e)
            return

        for subdir in subdirs:
            if should_skip_directory(subdir.name):
                continue
            self._detect_in_directory(subdir, projects)
            self._detect_recursively(subdir, projects, depth + 1, max_depth)

    def _detect_in_directory(self, directory: Path, projects: list[ProjectInfo]) -> None:
        for filename, ecosystem in MANIFESTS:
            manifest = directory / filename
            if not manifest.is_file():
                continue
            name = directory.name
            if filename == "packages.config":
                name = f"{directory.name} (packages.config)"
            projects.append(
                ProjectInfo(
                    name=name,
                    ecosystem=ecosystem,
                    path=directory,
                    dependency_file=manifest,
                )
            )

        try:
            csproj_files = sorted(directory.glob("*.csproj"))
        except OSError as e:
            logger.warning("Could not list %s: %s", directory, e)
            return

        for csproj in csproj_files:
            projects.append(
                ProjectInfo(
                    name=csproj.stem,
                    ecosystem=Ecosystem.NUGET,
                    path=directory,
                    dependency_file=csproj,
                )
            )

    @staticmethod
    def _deduplicate(projects: list[ProjectInfo]) -> list[ProjectInfo]:
        unique: dict[Path, ProjectInfo] = {}
        for project in projects:
            unique.setdefault(project.dependency_file.resolve(), project)
        logger.info("Detected %d projects", len(unique))
        return list(unique.values())
