"""Base interface for dependency scanners.

Scanners read one manifest format (package.json, Cargo.toml, go.mod, ...)
and return the dependencies it declares, without installing anything.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from license_lens.models import UNKNOWN_LICENSE, Dependency, Ecosystem


class BaseScanner(ABC):
    """Abstract base class for manifest scanners.

    Attributes:
        source_path: Path to the manifest being scanned.
        ecosystem: Registry the declared dependencies belong to.
    """

    ecosystem: Ecosystem

    def __init__(self, source_path: Optional[Path] = None) -> None:
        """Initialize the scanner.

        Args:
            source_path: Path to the manifest file.
        """
        self.source_path = source_path

    @abstractmethod
    def scan(self) -> list[Dependency]:
        """Scan the manifest and extract declared dependencies.

        Returns:
            Dependencies in declaration order. A missing version is
            reported as "Unknown".

        Raises:
            FileNotFoundError: If the manifest does not exist.
            ValueError: If the manifest is malformed or no path was given.
        """
        ...

    @classmethod
    @abstractmethod
    def can_handle(cls, path: Path) -> bool:
        """Check if this scanner can handle the given file.

        Args:
            path: Path to check.

        Returns:
            True if this scanner can process the file, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a human-readable name for this scanner's source type.

        Returns:
            Name like "package.json", "go.mod", etc.
        """
        ...

    def _read_source(self) -> str:
        """Return the manifest contents, checking the path first."""
        if not self.source_path:
            raise ValueError("source_path must be provided")

        if not self.source_path.exists():
            raise FileNotFoundError(
                f"{self.source_name} not found: {self.source_path}"
            )

        return self.source_path.read_text(encoding="utf-8")

    def _dependency(self, name: str, version: Optional[str]) -> Dependency:
        return Dependency(
            name=name,
            version=version or UNKNOWN_LICENSE,
            ecosystem=self.ecosystem,
        )
