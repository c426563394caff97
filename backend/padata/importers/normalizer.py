"""Row normalization - raw spreadsheet row + layout -> typed, cleaned record.

Everything here is pure (no store access). Missing values stay None;
they are never coerced to zero.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Final

from padata.importers.registry import LayoutDescriptor
from padata.services.county_reference import clean_county_name

# Cell tokens meaning "no value" (suppressed or not reported)
MISSING_TOKENS: Final[frozenset[str]] = frozenset({"", "N/A", "*"})

AGGREGATE_GRADE_TOKEN: Final[str] = "total"
DEFAULT_GROUP: Final[str] = "All Students"

# Subject keywords to canonical subject (order matters - first match wins)
SUBJECT_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    # Keystone end-of-course subjects
    ("Algebra I", [
        r"\balgebra\b",
    ]),
    ("Biology", [
        r"\bbiology\b",
        r"\bbio\b",
    ]),
    ("Literature", [
        r"\bliterature\b",
    ]),

    # PSSA subjects
    ("Mathematics", [
        r"\bmath",
    ]),
    ("English Language Arts", [
        r"\bela\b",
        r"\benglish\b",
        r"\blang(?:uage|\.)?\s+arts\b",
    ]),
    ("Science", [
        r"\bscience\b",
    ]),
]

# Demographic group keywords to canonical label (order matters - first match wins)
GROUP_PATTERNS: Final[list[tuple[str, list[str]]]] = [
    ("All Students", [
        r"\ball\s+students?\b",
    ]),
    ("Female", [
        r"^female$",
    ]),
    ("Male", [
        r"^male$",
    ]),
    ("White", [
        r"\bwhite\b",
    ]),
    ("Black/African American", [
        r"\bblack\b",
        r"\bafrican\b",
    ]),
    ("Hispanic/Latino", [
        r"\bhispanic\b",
        r"\blatino\b",
    ]),
    ("Asian", [
        r"\basian\b",
    ]),
    ("Native American", [
        r"\bnative american\b",
        r"\bamerican indian\b",
        r"\balaska(?:n)? native\b",
    ]),
    ("Pacific Islander", [
        r"\bpacific\b",
        r"\bhawaiian\b",
    ]),
    ("Multi-Racial", [
        r"\bmulti",
        r"\btwo or more\b",
    ]),
    ("IEP", [
        r"\biep\b",
        r"\bstudents? with disabilities\b",
    ]),
    ("Economically Disadvantaged", [
        r"\beconomically\b",
    ]),
    ("English Learners", [
        r"\benglish learners?\b",
        r"\bell\b",
        r"\blep\b",
    ]),
]

# "Not Economically Disadvantaged", "Non-IEP" etc. are their own groups
_NEGATED_GROUP_RE = re.compile(r"^(?:not|non)[\s-]", re.IGNORECASE)
_INTEGER_FLOAT_RE = re.compile(r"^\d+\.0+$")
_FIRST_NUMBER_RE = re.compile(r"\d+")


def clean_text(value: Any) -> str | None:
    """Collapse whitespace; sentinel tokens become None."""
    if value is None:
        return None
    text = " ".join(str(value).split())
    if text in MISSING_TOKENS:
        return None
    return text


def parse_number(value: Any) -> float | None:
    """Parse a numeric or percentage cell.

    Handles '1,234', '45.6%', numeric cells, and the sentinel tokens
    '', 'N/A' and '*' (-> None). Non-numeric residue yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if text in MISSING_TOKENS:
            return None
        text = text.replace(",", "").replace("%", "").replace(" ", "")
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def parse_count(value: Any) -> int | None:
    number = parse_number(value)
    if number is None:
        return None
    return int(round(number))


def normalize_grade(value: Any) -> int | None:
    """Grade cell -> integer grade. 'Total' (aggregate rows) -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if text in MISSING_TOKENS or text.lower() == AGGREGATE_GRADE_TOKEN:
        return None
    match = _FIRST_NUMBER_RE.search(text)
    return int(match.group(0)) if match else None


def is_aggregate_grade(value: Any) -> bool:
    """True for the grade token marking an all-grades aggregate row."""
    return isinstance(value, str) and value.strip().lower() == AGGREGATE_GRADE_TOKEN


def canonical_subject(value: Any) -> str | None:
    """Fold a free-text subject label into a canonical subject.

    Unmatched labels pass through (cleaned) so they can fail the
    allow-list check downstream instead of being silently coerced.
    """
    text = clean_text(value)
    if not text:
        return None
    for subject, patterns in SUBJECT_PATTERNS:
        for pattern in patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return subject
    return text


def canonical_group(value: Any) -> str:
    """Fold a demographic group label into a canonical label.

    Blank -> 'All Students'. Unrecognized labels are kept verbatim.
    """
    text = clean_text(value)
    if not text:
        return DEFAULT_GROUP
    if _NEGATED_GROUP_RE.match(text):
        return text
    for group, patterns in GROUP_PATTERNS:
        for pattern in patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return group
    return text


def derive_proficient_or_above(advanced: float | None, proficient: float | None) -> float | None:
    """advanced% + proficient%, only when both are present."""
    if advanced is None or proficient is None:
        return None
    return round(advanced + proficient, 4)


def normalize_identifier(value: Any, width: int) -> str | None:
    """Zero-pad numeric identifiers (AUN, school number) to a fixed width.

    Some exports drop leading zeros or store the id as a float; both
    forms of the same id must produce the same key.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        text = str(int(value))
    else:
        text = str(value).strip()
        if text in MISSING_TOKENS:
            return None
        if _INTEGER_FLOAT_RE.match(text):
            text = text.split(".", 1)[0]
    if text.isdigit():
        return text.zfill(width)
    return text


@dataclass
class NormalizedRecord:
    """One cleaned result row."""

    year: int
    subject: str
    demographic_group: str
    grade: int | None = None
    # Grade cell held the aggregate token rather than being blank
    is_aggregate: bool = False

    county: str | None = None
    district_name: str | None = None
    school_name: str | None = None
    aun: str | None = None
    school_number: str | None = None

    total_tested: int | None = None
    advanced_count: int | None = None
    proficient_count: int | None = None
    basic_count: int | None = None
    below_basic_count: int | None = None
    advanced_percent: float | None = None
    proficient_percent: float | None = None
    basic_percent: float | None = None
    below_basic_percent: float | None = None
    proficient_or_above_percent: float | None = None


@dataclass(frozen=True)
class Skip:
    """A row that produced no record, with the reason."""

    reason: str


class RowNormalizer:
    def __init__(self, aun_width: int = 9, school_number_width: int = 4):
        self.aun_width = aun_width
        self.school_number_width = school_number_width

    def normalize(
        self,
        raw_row: list[Any] | tuple[Any, ...],
        descriptor: LayoutDescriptor,
        header_index: dict[str, int],
        file_year: int | None = None,
    ) -> NormalizedRecord | Skip:
        if not raw_row or all(clean_text(cell) is None for cell in raw_row):
            return Skip("empty row")

        def cell(field: str) -> Any:
            column = getattr(descriptor, field)
            if not column:
                return None
            index = header_index.get(column)
            if index is None or index >= len(raw_row):
                return None
            return raw_row[index]

        def has_column(field: str) -> bool:
            column = getattr(descriptor, field)
            return bool(column) and column in header_index

        subject = canonical_subject(cell("subject"))
        if not subject:
            return Skip("missing subject")

        year = parse_count(cell("year")) if has_column("year") else None
        if year is None:
            year = file_year
        if year is None:
            return Skip("missing year")

        is_aggregate = False
        if has_column("grade"):
            grade = normalize_grade(cell("grade"))
            is_aggregate = is_aggregate_grade(cell("grade"))
            if grade is None and not is_aggregate:
                grade = descriptor.default_grade
        else:
            grade = descriptor.default_grade

        advanced = parse_number(cell("advanced"))
        proficient = parse_number(cell("proficient"))
        if has_column("proficient_or_above"):
            proficient_or_above = parse_number(cell("proficient_or_above"))
        else:
            proficient_or_above = derive_proficient_or_above(advanced, proficient)

        return NormalizedRecord(
            year=year,
            subject=subject,
            demographic_group=canonical_group(cell("group")),
            grade=grade,
            is_aggregate=is_aggregate,
            county=clean_county_name(clean_text(cell("county"))),
            district_name=clean_text(cell("district_name")),
            school_name=clean_text(cell("school_name")),
            aun=normalize_identifier(cell("aun"), self.aun_width),
            school_number=normalize_identifier(cell("school_number"), self.school_number_width),
            total_tested=parse_count(cell("total_tested")),
            advanced_count=parse_count(cell("advanced_count")),
            proficient_count=parse_count(cell("proficient_count")),
            basic_count=parse_count(cell("basic_count")),
            below_basic_count=parse_count(cell("below_basic_count")),
            advanced_percent=advanced,
            proficient_percent=proficient,
            basic_percent=parse_number(cell("basic")),
            below_basic_percent=parse_number(cell("below_basic")),
            proficient_or_above_percent=proficient_or_above,
        )
