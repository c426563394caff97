"""Entity resolution - resolve-or-create counties, districts and schools by natural key.

Natural keys:
    County   -> name (case-insensitive), code from the reference list
    District -> AUN
    School   -> (school number, district id)

An in-run cache (natural key -> surrogate id) avoids repeated store
lookups. The cache only holds ids that were flushed in the current
transaction or read from the store, so it must be cleared whenever the
session is rolled back.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from padata.db import insert_do_nothing
from padata.importers.errors import EntityResolutionFailure
from padata.models.geography import County, District, School
from padata.services.classification import UNKNOWN, classify_district, classify_school, is_charter
from padata.services.county_reference import clean_county_name, get_counties, lookup_county

logger = logging.getLogger(__name__)

# Codes handed to counties missing from the reference list start here
SURROGATE_COUNTY_CODE_BASE = 900


@dataclass
class _DistrictEntry:
    id: uuid.UUID
    name: str | None
    county_id: uuid.UUID | None


@dataclass
class _SchoolEntry:
    id: uuid.UUID
    name: str | None


class EntityResolver:
    """Resolve natural keys to surrogate ids, creating rows on first reference."""

    def __init__(self, session: Session):
        self.session = session
        self._counties: dict[str, uuid.UUID] = {}
        self._districts: dict[str, _DistrictEntry] = {}
        self._schools: dict[tuple[str, uuid.UUID], _SchoolEntry] = {}

    def bootstrap_counties(self) -> int:
        """Insert the reference county list (idempotent) and prime the cache.

        Returns the number of counties created.
        """
        created = 0
        for code, name in get_counties().items():
            stmt = insert_do_nothing(
                self.session,
                County,
                {
                    "id": uuid.uuid4(),
                    "county_code": code,
                    "name": name,
                    "full_name": f"{name} County",
                    "is_canonical": True,
                },
                index_elements=["county_code"],
            )
            created += self.session.execute(stmt).rowcount or 0
        self.session.flush()

        for county in self.session.scalars(select(County)):
            self._counties[county.name.lower()] = county.id

        if created:
            logger.info(f"Created {created} reference counties")
        return created

    def ensure_county(self, name: str | None) -> uuid.UUID | None:
        """Resolve a county label to its id. Returns None for a blank label."""
        cleaned = clean_county_name(name)
        if not cleaned:
            return None

        reference = lookup_county(cleaned)
        canonical_name = reference[1] if reference else cleaned
        key = canonical_name.lower()

        if key in self._counties:
            return self._counties[key]

        county = self.session.scalars(
            select(County).where(func.lower(County.name) == key)
        ).first()

        if not county:
            if reference:
                code, is_canonical = reference[0], True
            else:
                code, is_canonical = self._next_surrogate_code(), False
                logger.warning(f"County '{canonical_name}' not in reference list, assigned code {code}")
            county = County(
                id=uuid.uuid4(),
                county_code=code,
                name=canonical_name,
                full_name=f"{canonical_name} County",
                is_canonical=is_canonical,
            )
            self.session.add(county)
            self.session.flush()

        self._counties[key] = county.id
        return county.id

    def ensure_district(
        self,
        aun: str | None,
        name: str | None = None,
        county_id: uuid.UUID | None = None,
    ) -> uuid.UUID:
        """Resolve a district by AUN.

        A missing county link or name is backfilled from later rows; an
        existing county link is never overwritten.
        """
        if not aun:
            raise EntityResolutionFailure("missing AUN")

        entry = self._districts.get(aun)
        if entry is None:
            district = self.session.scalars(select(District).where(District.aun == aun)).first()
            if not district:
                district = District(
                    id=uuid.uuid4(),
                    aun=aun,
                    name=name,
                    district_type=classify_district(name),
                    county_id=county_id,
                )
                self.session.add(district)
                self.session.flush()
            entry = _DistrictEntry(id=district.id, name=district.name, county_id=district.county_id)
            self._districts[aun] = entry

        needs_county = entry.county_id is None and county_id is not None
        needs_name = not entry.name and bool(name)
        if needs_county or needs_name:
            district = self.session.get(District, entry.id)
            if needs_county:
                district.county_id = county_id
                entry.county_id = county_id
            if needs_name:
                district.name = name
                entry.name = name
                if district.district_type == UNKNOWN:
                    district.district_type = classify_district(name)
            self.session.flush()

        return entry.id

    def ensure_school(
        self,
        school_number: str | None,
        district_id: uuid.UUID | None,
        name: str | None = None,
    ) -> uuid.UUID:
        """Resolve a school by (school number, district). The district must already exist."""
        if not school_number:
            raise EntityResolutionFailure("missing school number")
        if district_id is None:
            raise EntityResolutionFailure("school without district")

        key = (school_number, district_id)
        entry = self._schools.get(key)
        if entry is None:
            school = self.session.scalars(
                select(School).where(
                    School.school_number == school_number,
                    School.district_id == district_id,
                )
            ).first()
            if not school:
                school = School(
                    id=uuid.uuid4(),
                    school_number=school_number,
                    district_id=district_id,
                    name=name,
                    school_type=classify_school(name),
                    is_charter=is_charter(name),
                )
                self.session.add(school)
                self.session.flush()
            entry = _SchoolEntry(id=school.id, name=school.name)
            self._schools[key] = entry

        if name and name != entry.name:
            school = self.session.get(School, entry.id)
            school.name = name
            school.school_type = classify_school(name)
            school.is_charter = is_charter(name)
            entry.name = name
            self.session.flush()

        return entry.id

    def clear_cache(self) -> None:
        self._counties.clear()
        self._districts.clear()
        self._schools.clear()

    def stats(self) -> dict[str, int]:
        return {
            "counties": len(self._counties),
            "districts": len(self._districts),
            "schools": len(self._schools),
        }

    def _next_surrogate_code(self) -> str:
        generated = self.session.scalar(
            select(func.count()).select_from(County).where(County.is_canonical.is_(False))
        ) or 0
        return str(SURROGATE_COUNTY_CODE_BASE + generated + 1)
