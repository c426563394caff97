import uuid

import pytest
from sqlalchemy import select

from padata.config import Settings
from padata.importers.loader import FactLoader, ResolvedIds, fact_key
from padata.importers.normalizer import NormalizedRecord
from padata.importers.resolver import EntityResolver
from padata.models import KeystoneResult, PssaResult


@pytest.fixture
def loader(session):
    return FactLoader(session, Settings().allowed_subjects())


@pytest.fixture
def school_ids(session):
    resolver = EntityResolver(session)
    resolver.bootstrap_counties()
    county_id = resolver.ensure_county("Bucks")
    district_id = resolver.ensure_district("109420803", "Central Bucks SD", county_id)
    school_id = resolver.ensure_school("6962", district_id, "Butler El Sch")
    return ResolvedIds(county_id=county_id, district_id=district_id, school_id=school_id)


def _record(**overrides):
    values = dict(
        year=2019,
        subject="Mathematics",
        demographic_group="All Students",
        grade=3,
        total_tested=100,
        advanced_percent=12.3,
        proficient_percent=45.6,
        proficient_or_above_percent=57.9,
    )
    values.update(overrides)
    return NormalizedRecord(**values)


class TestFactKey:
    def test_deterministic(self):
        entity = uuid.uuid4()
        assert fact_key("school", entity, 2019, "Mathematics", 3, "All Students") == fact_key(
            "school", entity, 2019, "Mathematics", 3, "All Students",
        )

    def test_distinguishes_each_part(self):
        entity = uuid.uuid4()
        base = fact_key("district", entity, 2019, "Mathematics", 3, "All Students")

        assert base != fact_key("district", entity, 2019, "Mathematics", None, "All Students")
        assert base != fact_key("district", entity, 2018, "Mathematics", 3, "All Students")
        assert base != fact_key("district", entity, 2019, "Science", 3, "All Students")
        assert base != fact_key("district", entity, 2019, "Mathematics", 3, "Female")
        assert base != fact_key("district", uuid.uuid4(), 2019, "Mathematics", 3, "All Students")

    def test_null_parts_are_stable(self):
        assert fact_key("state", None, 2019, "Science", None, "All Students") == fact_key(
            "state", None, 2019, "Science", None, "All Students",
        )


class TestLoad:
    def test_insert_then_existing(self, loader, school_ids, session):
        first = loader.load(_record(), "pssa", "school", school_ids, "2019 PSSA School.xlsx")
        second = loader.load(_record(advanced_percent=99.0), "pssa", "school", school_ids, "again.xlsx")

        assert first.status == "inserted"
        assert second.status == "existing"
        rows = session.scalars(select(PssaResult)).all()
        assert len(rows) == 1
        assert rows[0].advanced_percent == 12.3
        assert rows[0].school_id == school_ids.school_id
        assert rows[0].district_id == school_ids.district_id
        assert rows[0].county_id == school_ids.county_id

    def test_state_aggregate_grade_deduplicates(self, loader, session):
        record = _record(grade=None, subject="Science")

        assert loader.load(record, "pssa", "state", ResolvedIds(), "a.csv").status == "inserted"
        assert loader.load(record, "pssa", "state", ResolvedIds(), "b.csv").status == "existing"

        row = session.scalars(select(PssaResult)).one()
        assert row.school_id is None
        assert row.district_id is None
        assert row.county_id is None
        assert row.grade is None

    def test_programs_use_separate_tables(self, loader, school_ids, session):
        loader.load(_record(subject="Algebra I", grade=11), "keystone", "school", school_ids, "k.xlsx")

        assert session.scalars(select(KeystoneResult)).one().subject == "Algebra I"
        assert session.scalars(select(PssaResult)).first() is None

    def test_subject_not_allowed(self, loader, school_ids):
        result = loader.load(_record(subject="Writing"), "pssa", "school", school_ids, "f.xlsx")

        assert result.status == "skipped"
        assert result.reason == "subject not allowed: Writing"

    def test_keystone_subject_not_allowed_for_pssa(self, loader, school_ids):
        result = loader.load(_record(subject="Biology"), "pssa", "school", school_ids, "f.xlsx")

        assert result.reason == "subject not allowed: Biology"

    def test_school_level_requires_grade(self, loader, school_ids):
        result = loader.load(_record(grade=None), "pssa", "school", school_ids, "f.xlsx")

        assert result.status == "skipped"
        assert result.reason == "grade required for school"

    def test_district_level_requires_grade(self, loader, school_ids):
        result = loader.load(_record(grade=None), "pssa", "district", school_ids, "f.xlsx")

        assert result.reason == "grade required for district"

    def test_district_aggregate_row_accepted(self, loader, school_ids, session):
        record = _record(grade=None, is_aggregate=True)

        assert loader.load(record, "pssa", "district", school_ids, "d.xlsx").status == "inserted"
        assert session.scalars(select(PssaResult)).one().grade is None

    def test_school_aggregate_row_rejected(self, loader, school_ids):
        record = _record(grade=None, is_aggregate=True)

        assert loader.load(record, "pssa", "school", school_ids, "s.xlsx").reason == "grade required for school"

    def test_unresolved_entity(self, loader):
        result = loader.load(_record(), "pssa", "school", ResolvedIds(), "f.xlsx")

        assert result.status == "skipped"
        assert result.reason == "unresolved school reference"

    def test_unknown_program_or_level(self, loader):
        with pytest.raises(ValueError):
            loader.load(_record(), "sat", "school", ResolvedIds(), "f.xlsx")
        with pytest.raises(ValueError):
            loader.load(_record(), "pssa", "county", ResolvedIds(), "f.xlsx")
