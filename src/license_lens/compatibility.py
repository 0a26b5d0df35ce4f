"""License compatibility analysis over a fixed knowledge base.

Compatibility between two licenses is looked up in a hand-maintained table
of which licenses each license may be combined with. A pair is compatible
only if each license lists the other, so an asymmetric edit to the table
makes the pair incompatible rather than silently compatible. Licenses that
are not in the table are incompatible with everything except themselves.

These are heuristics for flagging combinations worth a closer look, not a
legal determination.
"""

from functools import lru_cache

from license_lens.models import (
    SENTINEL_LICENSES,
    CompatibilityPair,
    ProjectCompatibility,
    RiskLevel,
)

# Licenses each license may be combined with
COMPATIBILITY_MATRIX: dict[str, frozenset[str]] = {
    "MIT": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "BSD-2-Clause": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "BSD-3-Clause": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "Apache-2.0": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-3.0",
        "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "GPL-2.0": frozenset({"GPL-2.0", "LGPL-2.1"}),
    "GPL-3.0": frozenset({"GPL-2.0", "GPL-3.0", "LGPL-2.1", "LGPL-3.0"}),
    "LGPL-2.1": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "LGPL-3.0": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-3.0",
        "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "MPL-2.0": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-3.0",
        "LGPL-2.1", "LGPL-3.0", "MPL-2.0",
    }),
    "ISC": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0", "ISC",
    }),
    "Unlicense": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0", "ISC", "Unlicense",
    }),
    "CC0-1.0": frozenset({
        "MIT", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "GPL-2.0",
        "GPL-3.0", "LGPL-2.1", "LGPL-3.0", "MPL-2.0", "ISC", "Unlicense",
        "CC0-1.0",
    }),
}

# Curated explanations for known incompatible pairs; looked up in both orders
INCOMPATIBLE_REASONS: dict[tuple[str, str], str] = {
    ("GPL-2.0", "Apache-2.0"): (
        "GPL 2.0 is incompatible with Apache 2.0 due to patent and "
        "termination clause differences"
    ),
    ("GPL-2.0", "GPL-3.0"): (
        "GPL 2.0 cannot be upgraded to GPL 3.0 without explicit permission"
    ),
}

GENERIC_INCOMPATIBLE_REASON = "Licenses may have incompatible terms and conditions"
SAME_LICENSE_REASON = "Same license"

# Lower-cased aliases to canonical names
LICENSE_ALIASES: dict[str, str] = {
    "mit": "MIT",
    "bsd": "BSD-3-Clause",
    "bsd-2": "BSD-2-Clause",
    "bsd-3": "BSD-3-Clause",
    "apache": "Apache-2.0",
    "apache-2": "Apache-2.0",
    "gpl-2": "GPL-2.0",
    "gpl-3": "GPL-3.0",
    "lgpl-2.1": "LGPL-2.1",
    "lgpl-3": "LGPL-3.0",
    "mpl-2": "MPL-2.0",
    "mozilla": "MPL-2.0",
    "isc": "ISC",
}

# Normalized licenses that restrict closed-source commercial distribution
COMMERCIALLY_RISKY = frozenset({"GPL-3.0", "AGPL-3.0", "GPL-2.0"})


@lru_cache(maxsize=1024)
def normalize_license(license: str) -> str:
    """Map a license name to its canonical form.

    Matching is case-insensitive against ``LICENSE_ALIASES``. Unrecognized
    names and the sentinel values pass through unchanged.

    Args:
        license: License name as reported by a registry.

    Returns:
        Canonical license name (e.g., "apache-2" -> "Apache-2.0").
    """
    if not license or license in SENTINEL_LICENSES:
        return license
    return LICENSE_ALIASES.get(license.lower(), license)


def check_compatibility(license_a: str, license_b: str) -> CompatibilityPair:
    """Check whether two licenses can be combined.

    Both directions of the table must agree for the pair to be compatible.

    Args:
        license_a: First license name (normalized here).
        license_b: Second license name (normalized here).

    Returns:
        CompatibilityPair over the normalized names. Incompatible pairs carry
        a curated reason when one exists, otherwise a generic one.
    """
    a = normalize_license(license_a)
    b = normalize_license(license_b)

    if a == b:
        return CompatibilityPair(a, b, compatible=True, reason=SAME_LICENSE_REASON)

    a_allows_b = b in COMPATIBILITY_MATRIX.get(a, frozenset())
    b_allows_a = a in COMPATIBILITY_MATRIX.get(b, frozenset())

    if a_allows_b and b_allows_a:
        return CompatibilityPair(a, b, compatible=True)

    reason = (
        INCOMPATIBLE_REASONS.get((a, b))
        or INCOMPATIBLE_REASONS.get((b, a))
        or GENERIC_INCOMPATIBLE_REASON
    )
    return CompatibilityPair(a, b, compatible=False, reason=reason)


def analyze_project_compatibility(licenses: list[str]) -> ProjectCompatibility:
    """Compare every pair of distinct licenses used by a project.

    Args:
        licenses: License names, possibly repeated or unnormalized.

    Returns:
        ProjectCompatibility with the full square matrix (self-pairs
        included) and each incompatible pair listed once.
    """
    unique = list(dict.fromkeys(normalize_license(lic) for lic in licenses))

    matrix: list[list[CompatibilityPair]] = []
    issues: list[CompatibilityPair] = []
    for i, row_license in enumerate(unique):
        row = []
        for j, column_license in enumerate(unique):
            pair = check_compatibility(row_license, column_license)
            row.append(pair)
            if i < j and not pair.compatible:
                issues.append(pair)
        matrix.append(row)

    return ProjectCompatibility(
        compatible=not issues,
        issues=issues,
        matrix=matrix,
        licenses=unique,
    )


def get_risk_level(licenses: list[str]) -> RiskLevel:
    """Classify the licensing exposure of a set of licenses.

    The checks run in a fixed order: any AGPL license is high risk; a GPL
    license together with a commercially risky license is high; a
    commercially risky license alone is medium; anything else is low.
    """
    has_gpl = any("gpl" in lic.lower() for lic in licenses)
    has_agpl = any("agpl" in lic.lower() for lic in licenses)
    has_commercially_risky = any(
        normalize_license(lic) in COMMERCIALLY_RISKY for lic in licenses
    )

    if has_agpl:
        return RiskLevel.HIGH
    if has_gpl and has_commercially_risky:
        return RiskLevel.HIGH
    if has_commercially_risky:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def get_recommendations(licenses: list[str]) -> list[str]:
    """Return advisory messages for an incompatible license set.

    Returns an empty list when every pair is compatible.
    """
    analysis = analyze_project_compatibility(licenses)
    if analysis.compatible:
        return []

    recommendations = ["Review incompatible licenses in your dependencies"]

    if any("gpl" in lic.lower() for lic in licenses):
        recommendations.append(
            "Consider if GPL licenses are compatible with your project's "
            "distribution model"
        )

    if any("agpl" in lic.lower() for lic in licenses):
        recommendations.append(
            "AGPL requires source code disclosure even for web services - "
            "ensure compliance"
        )

    if analysis.issues:
        recommendations.append(
            "Consider replacing dependencies with incompatible licenses"
        )
        recommendations.append("Consult with legal counsel for commercial projects")

    return recommendations
