"""District and school type classification from free-text names."""

import re
from typing import Final

UNKNOWN: Final[str] = "unknown"

DISTRICT_TYPES: Final[list[str]] = [
    "cyber_charter",
    "charter",
    "intermediate_unit",
    "career_technical",
    "public",
    UNKNOWN,
]

SCHOOL_TYPES: Final[list[str]] = [
    "cyber_charter",
    "charter",
    "career_technical",
    "elementary",
    "middle",
    "high",
    UNKNOWN,
]

# Keywords to type mapping (order matters - first match wins)
DISTRICT_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    # Cyber charters (before plain charter)
    ("cyber_charter", [
        r"\bcyber\b",
        r"\bvirtual\b.*\bcharter\b",
    ]),

    ("charter", [
        r"\bcharter\b",
        r"\bcs\b$",
    ]),

    ("intermediate_unit", [
        r"\bintermediate unit\b",
        r"\biu\s*\d*\b",
    ]),

    ("career_technical", [
        r"\bcareer\b",
        r"\btechnical\b",
        r"\bvo[-\s]?tech\b",
        r"\bctc\b",
        r"\bavts\b",
    ]),

    ("public", [
        r"\bsd\b",
        r"\bschool district\b",
        r"\bschool dist\b",
        r"\bsch dist\b",
        r"\barea sd\b",
    ]),
]

SCHOOL_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    ("cyber_charter", [
        r"\bcyber\b",
    ]),

    ("charter", [
        r"\bcharter\b",
        r"\bcs\b",
    ]),

    ("career_technical", [
        r"\bcareer\b",
        r"\btechnical\b",
        r"\bvo[-\s]?tech\b",
        r"\bctc\b",
        r"\bavts\b",
    ]),

    ("elementary", [
        r"\belementary\b",
        r"\belem\b",
        r"\bel\b",
        r"\bes\b",
        r"\bprimary\b",
        r"\bintermediate\b",
    ]),

    ("middle", [
        r"\bmiddle\b",
        r"\bms\b",
        r"\bjunior high\b",
        r"\bjr\.?\s*high\b",
    ]),

    ("high", [
        r"\bhigh school\b",
        r"\bsenior high\b",
        r"\bsr\.?\s*high\b",
        r"\bhs\b",
        r"\bshs\b",
    ]),
]


def _classify(name: str | None, patterns: list[tuple[str, list[str]]]) -> str:
    if not name:
        return UNKNOWN
    text = name.lower()
    for kind, kind_patterns in patterns:
        for pattern in kind_patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return kind
    return UNKNOWN


def classify_district(name: str | None) -> str:
    """Derive a district type from its name.

    Examples:
        'Central Bucks SD' -> 'public'
        'Commonwealth Charter Academy CS' -> 'charter'
        'PA Cyber CS' -> 'cyber_charter'
        'Bucks County IU 22' -> 'intermediate_unit'
    """
    return _classify(name, DISTRICT_PATTERNS)


def classify_school(name: str | None) -> str:
    """Derive a school type from its name; unmatched names are 'unknown'."""
    return _classify(name, SCHOOL_PATTERNS)


def is_charter(name: str | None) -> bool:
    return classify_school(name) in ("charter", "cyber_charter")
