"""Format registry - maps a source file identity to its column layout.

Publishers changed header wording and position every few years, so layouts
are curated per (program, level, year range, filename pattern) rather than
inferred. Rules are checked in table order; the first match wins.
"""

import logging
from dataclasses import dataclass, fields

from padata.importers.errors import ConfigNotFound
from padata.importers.readers import year_from_filename

logger = logging.getLogger(__name__)

PROGRAMS = ("pssa", "keystone")
LEVELS = ("school", "district", "state")


@dataclass(frozen=True)
class LayoutDescriptor:
    """Column layout of one family of source files.

    Every logical field is either the header text of a source column or
    None when the layout doesn't carry it. ``header_row`` is 0-based.
    """

    header_row: int

    # Entity identity
    county: str | None = None
    district_name: str | None = None
    school_name: str | None = None
    aun: str | None = None
    school_number: str | None = None

    # Result dimensions
    year: str | None = None
    grade: str | None = None
    subject: str | None = None
    group: str | None = None

    # Measures
    total_tested: str | None = None
    advanced_count: str | None = None
    proficient_count: str | None = None
    basic_count: str | None = None
    below_basic_count: str | None = None
    advanced: str | None = None
    proficient: str | None = None
    basic: str | None = None
    below_basic: str | None = None
    proficient_or_above: str | None = None

    # Grade used when the layout has no grade column (end-of-course exams)
    default_grade: int | None = None

    def columns(self) -> dict[str, str]:
        """Logical field -> source column, for the fields this layout names."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("header_row", "default_grade") and getattr(self, f.name)
        }

    def missing_columns(self, header_index: dict[str, int]) -> list[str]:
        """Source columns the layout names but the header row lacks."""
        return [column for column in self.columns().values() if column not in header_index]


@dataclass(frozen=True)
class FormatRule:
    program: str
    level: str
    patterns: tuple[str, ...]
    descriptor: LayoutDescriptor
    first_year: int | None = None
    last_year: int | None = None
    notes: str = ""

    def matches(self, file_name: str, program: str, level: str) -> bool:
        if program != self.program or level != self.level:
            return False
        lower = file_name.lower()
        if not all(pattern in lower for pattern in self.patterns):
            return False
        if self.first_year is None and self.last_year is None:
            return True
        year = year_from_filename(file_name)
        if year is None:
            return False
        if self.first_year is not None and year < self.first_year:
            return False
        if self.last_year is not None and year > self.last_year:
            return False
        return True


class FormatRegistry:
    """Pure lookup over a static table of format rules."""

    def __init__(self, rules: list[FormatRule] | tuple[FormatRule, ...]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[FormatRule, ...]:
        return self._rules

    def lookup(self, file_name: str, program: str, level: str) -> LayoutDescriptor | None:
        for rule in self._rules:
            if rule.matches(file_name, program, level):
                return rule.descriptor
        return None

    def require(self, file_name: str, program: str, level: str) -> LayoutDescriptor:
        descriptor = self.lookup(file_name, program, level)
        if descriptor is None:
            raise ConfigNotFound(file_name, program, level)
        return descriptor

    def rules_for(self, program: str, level: str) -> list[FormatRule]:
        return [r for r in self._rules if r.program == program and r.level == level]


# Column families shared across layouts
_SCHOOL_ENTITY = {
    "county": "County",
    "district_name": "District Name",
    "school_name": "School Name",
    "aun": "AUN",
    "school_number": "School Number",
}
_DISTRICT_ENTITY = {
    "county": "County",
    "district_name": "District Name",
    "aun": "AUN",
}
_RESULT = {
    "subject": "Subject",
    "grade": "Grade",
    "group": "Group",
    "total_tested": "Number Scored",
}
_KEYSTONE_RESULT = {
    "subject": "Subject",
    "group": "Group",
    "total_tested": "Number Scored",
}
_PCT_SYMBOL = {
    "advanced": "% Advanced",
    "proficient": "% Proficient",
    "basic": "% Basic",
    "below_basic": "% Below Basic",
}
_PCT_WORD = {
    "advanced": "Percent Advanced",
    "proficient": "Percent Proficient",
    "basic": "Percent Basic",
    "below_basic": "Percent Below Basic",
}
_PCT_ABBREV = {
    "advanced": "Pct. Advanced",
    "proficient": "Pct. Proficient",
    "basic": "Pct. Basic",
    "below_basic": "Pct. Below Basic",
}
_COMBINED_SYMBOL = {"proficient_or_above": "% Advanced/Proficient"}
_COMBINED_WORD = {"proficient_or_above": "Percent Proficient and above"}

KEYSTONE_GRADE = 11


def _layout(header_row: int, *parts: dict, **overrides) -> LayoutDescriptor:
    merged: dict = {}
    for part in parts:
        merged.update(part)
    merged.update(overrides)
    return LayoutDescriptor(header_row=header_row, **merged)


DEFAULT_RULES: tuple[FormatRule, ...] = (
    # ===== PSSA =====
    FormatRule(
        "pssa", "school", ("pssa", "school"), first_year=2015, last_year=2015,
        descriptor=_layout(6, _SCHOOL_ENTITY, _RESULT, _PCT_SYMBOL),
    ),
    FormatRule(
        "pssa", "school", ("pssa", "school"), first_year=2016, last_year=2023,
        descriptor=_layout(4, _SCHOOL_ENTITY, _RESULT, _PCT_SYMBOL, aun="District AUN"),
        notes="No 2020 administration",
    ),
    FormatRule(
        "pssa", "school", ("pssa", "school"), first_year=2024, last_year=2024,
        descriptor=_layout(4, _SCHOOL_ENTITY, _RESULT, _PCT_WORD, _COMBINED_WORD, year="Year"),
    ),
    FormatRule(
        "pssa", "district", ("pssa", "district"), first_year=2015, last_year=2015,
        descriptor=_layout(6, _DISTRICT_ENTITY, _RESULT, _PCT_SYMBOL),
    ),
    FormatRule(
        "pssa", "district", ("pssa", "district"), first_year=2016, last_year=2023,
        descriptor=_layout(4, _DISTRICT_ENTITY, _RESULT, _PCT_SYMBOL, aun="District AUN"),
    ),
    FormatRule(
        "pssa", "district", ("pssa", "district"), first_year=2024, last_year=2024,
        descriptor=_layout(4, _DISTRICT_ENTITY, _RESULT, _PCT_WORD, _COMBINED_WORD, year="Year"),
    ),
    FormatRule(
        "pssa", "state", ("pssa", "state"), first_year=2015, last_year=2015,
        descriptor=_layout(6, _RESULT, _PCT_SYMBOL),
    ),
    FormatRule(
        "pssa", "state", ("pssa", "state"), first_year=2016, last_year=2023,
        descriptor=_layout(4, _RESULT, _PCT_SYMBOL),
    ),
    FormatRule(
        "pssa", "state", ("pssa", "state"), first_year=2024, last_year=2024,
        descriptor=_layout(4, _RESULT, _PCT_WORD, _COMBINED_WORD),
    ),

    # ===== KEYSTONE =====
    FormatRule(
        "keystone", "school", ("keystone", "school"), first_year=2015, last_year=2015,
        descriptor=_layout(
            7,
            _PCT_ABBREV,
            district_name="District Name",
            school_name="School Name",
            aun="AUN",
            school_number="Schl",
            subject="Subject",
            group="Student_Group_Name",
            total_tested="N Scored",
            default_grade=KEYSTONE_GRADE,
        ),
        notes="Only layout without a county column",
    ),
    FormatRule(
        "keystone", "school", ("keystone", "school"), first_year=2016, last_year=2023,
        descriptor=_layout(4, _SCHOOL_ENTITY, _KEYSTONE_RESULT, _PCT_WORD, default_grade=KEYSTONE_GRADE),
        notes="2016-2019 files say 'exams'; 2021-2023 say 'keystone school level'",
    ),
    FormatRule(
        "keystone", "school", ("keystone", "school"), first_year=2024, last_year=2024,
        descriptor=_layout(
            3, _SCHOOL_ENTITY, _RESULT, _PCT_WORD, _COMBINED_WORD,
            year="Year", default_grade=KEYSTONE_GRADE,
        ),
    ),
    FormatRule(
        "keystone", "district", ("keystone", "district"), first_year=2015, last_year=2022,
        descriptor=_layout(
            4, _DISTRICT_ENTITY, _RESULT, _PCT_WORD, _COMBINED_WORD,
            year="Year", default_grade=KEYSTONE_GRADE,
        ),
    ),
    FormatRule(
        "keystone", "district", ("keystone", "district"), first_year=2023, last_year=2024,
        descriptor=_layout(
            3, _DISTRICT_ENTITY, _RESULT, _PCT_WORD, _COMBINED_WORD,
            year="Year", default_grade=KEYSTONE_GRADE,
        ),
    ),
    FormatRule(
        "keystone", "state", ("keystone", "state"), first_year=2015, last_year=2024,
        descriptor=_layout(3, _RESULT, _PCT_SYMBOL, _COMBINED_SYMBOL, default_grade=KEYSTONE_GRADE),
    ),
)


def default_registry() -> FormatRegistry:
    return FormatRegistry(DEFAULT_RULES)
