"""Curated Pennsylvania county reference list.

Usage:
    from padata.services.county_reference import get_counties, canonical_county_name

    counties = get_counties()          # {"101": "Adams", ...}
    name = canonical_county_name("BUCKS COUNTY")  # "Bucks"
"""

import json
from pathlib import Path

_COUNTIES_PATH = Path(__file__).parent.parent / "data" / "pa_counties.json"
_counties: dict[str, str] | None = None
_counties_by_name: dict[str, tuple[str, str]] | None = None  # lower name -> (code, name)


def clean_county_name(name: str | None) -> str | None:
    """Strip a trailing 'County' suffix and collapse whitespace."""
    if not name:
        return None
    text = " ".join(str(name).split())
    if text.lower().endswith(" county"):
        text = text[: -len(" county")].strip()
    return text or None


def _load() -> tuple[dict[str, str], dict[str, tuple[str, str]]]:
    """Lazy-load the county list (code -> name) and a lowercase name index."""
    global _counties, _counties_by_name
    if _counties is None:
        with open(_COUNTIES_PATH) as f:
            _counties = json.load(f)
        _counties_by_name = {name.lower(): (code, name) for code, name in _counties.items()}
    return _counties, _counties_by_name


def get_counties() -> dict[str, str]:
    counties, _ = _load()
    return dict(counties)


def lookup_county(name: str | None) -> tuple[str, str] | None:
    """Return (code, canonical name) for a county label, case-insensitive."""
    cleaned = clean_county_name(name)
    if not cleaned:
        return None
    _, by_name = _load()
    return by_name.get(cleaned.lower())


def canonical_county_name(name: str | None) -> str | None:
    match = lookup_county(name)
    if match:
        return match[1]
    return clean_county_name(name)
