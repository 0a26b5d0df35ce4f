"""License Lens - dependency license inventory and compatibility checker.

This package scans npm, NuGet, Cargo, Go and Python manifests, resolves
each dependency's license from its registry through a persistent cache, and
flags license combinations that may not be compatible.
"""

__version__ = "0.1.0"

from license_lens.models import (
    Dependency,
    Ecosystem,
    LicenseInfo,
    ProjectInfo,
    RiskLevel,
)

__all__ = [
    "__version__",
    "Dependency",
    "Ecosystem",
    "LicenseInfo",
    "ProjectInfo",
    "RiskLevel",
]
