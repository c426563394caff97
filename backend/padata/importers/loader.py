"""Fact loading - validation plus idempotent persistence of result rows."""

import hashlib
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from padata.db import insert_do_nothing
from padata.importers.normalizer import NormalizedRecord
from padata.models.results import RESULT_MODELS

logger = logging.getLogger(__name__)

# Which resolved id a fact must carry at each level
LEVEL_ENTITY = {
    "school": "school",
    "district": "district",
    "state": None,
}


@dataclass
class ResolvedIds:
    county_id: uuid.UUID | None = None
    district_id: uuid.UUID | None = None
    school_id: uuid.UUID | None = None


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading one record: 'inserted', 'existing' or 'skipped'."""

    status: str
    reason: str | None = None


def fact_key(
    level: str,
    entity_id: uuid.UUID | None,
    year: int,
    subject: str,
    grade: int | None,
    demographic_group: str,
) -> str:
    """Hash the fact's natural key. Null parts hash as empty strings."""
    parts = [
        level,
        str(entity_id) if entity_id else "",
        str(year),
        subject,
        str(grade) if grade is not None else "",
        demographic_group,
    ]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()


class FactLoader:
    """Validate normalized records and insert them once per natural key.

    A record whose natural key is already stored is reported as
    'existing'; the stored measures are left untouched.
    """

    def __init__(self, session: Session, allowed_subjects: dict[str, frozenset[str]]):
        self.session = session
        self.allowed_subjects = allowed_subjects

    def load(
        self,
        record: NormalizedRecord,
        program: str,
        level: str,
        ids: ResolvedIds,
        source_file: str,
    ) -> LoadResult:
        if program not in RESULT_MODELS:
            raise ValueError(f"Unknown test program: {program}")
        if level not in LEVEL_ENTITY:
            raise ValueError(f"Unknown level: {level}")

        if record.subject not in self.allowed_subjects.get(program, frozenset()):
            return LoadResult("skipped", f"subject not allowed: {record.subject}")

        # Aggregate "Total" rows are valid district facts, never school facts
        if level != "state" and record.grade is None and not (level == "district" and record.is_aggregate):
            return LoadResult("skipped", f"grade required for {level}")

        entity = LEVEL_ENTITY[level]
        entity_id = None
        if entity == "school":
            entity_id = ids.school_id
        elif entity == "district":
            entity_id = ids.district_id
        if entity and entity_id is None:
            return LoadResult("skipped", f"unresolved {entity} reference")

        values = {
            "id": uuid.uuid4(),
            "fact_key": fact_key(
                level, entity_id, record.year, record.subject, record.grade, record.demographic_group,
            ),
            "level": level,
            "school_id": ids.school_id if level == "school" else None,
            "district_id": ids.district_id if level != "state" else None,
            "county_id": ids.county_id if level != "state" else None,
            "year": record.year,
            "grade": record.grade,
            "subject": record.subject,
            "demographic_group": record.demographic_group,
            "total_tested": record.total_tested,
            "advanced_count": record.advanced_count,
            "proficient_count": record.proficient_count,
            "basic_count": record.basic_count,
            "below_basic_count": record.below_basic_count,
            "advanced_percent": record.advanced_percent,
            "proficient_percent": record.proficient_percent,
            "basic_percent": record.basic_percent,
            "below_basic_percent": record.below_basic_percent,
            "proficient_or_above_percent": record.proficient_or_above_percent,
            "source_file": source_file,
        }

        stmt = insert_do_nothing(self.session, RESULT_MODELS[program], values, index_elements=["fact_key"])
        result = self.session.execute(stmt)
        if result.rowcount:
            return LoadResult("inserted")
        return LoadResult("existing")
