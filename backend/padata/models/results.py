"""Assessment result facts - one table per test program."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import declared_attr

from padata.models.base import Base, UUIDMixin


class ResultFactMixin:
    # SHA-256 over the natural key; nullable key parts still collide here
    fact_key = Column(String(64), nullable=False)

    level = Column(String(20), nullable=False, index=True)  # school, district, state
    year = Column(Integer, nullable=False, index=True)
    grade = Column(Integer)  # null for aggregate rows
    subject = Column(String(100), nullable=False)
    demographic_group = Column(String(100), nullable=False, default="All Students")

    total_tested = Column(Integer)
    advanced_count = Column(Integer)
    proficient_count = Column(Integer)
    basic_count = Column(Integer)
    below_basic_count = Column(Integer)

    advanced_percent = Column(Float)
    proficient_percent = Column(Float)
    basic_percent = Column(Float)
    below_basic_percent = Column(Float)
    proficient_or_above_percent = Column(Float)

    source_file = Column(String(255))
    imported_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @declared_attr
    def school_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("schools.id"), index=True)

    @declared_attr
    def district_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("districts.id"), index=True)

    @declared_attr
    def county_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("counties.id"), index=True)


class PssaResult(UUIDMixin, ResultFactMixin, Base):
    __tablename__ = "pssa_results"

    __table_args__ = (
        UniqueConstraint("fact_key", name="uq_pssa_fact_key"),
        Index("idx_pssa_composite", "year", "subject", "grade", "level", "demographic_group"),
    )


class KeystoneResult(UUIDMixin, ResultFactMixin, Base):
    __tablename__ = "keystone_results"

    __table_args__ = (
        UniqueConstraint("fact_key", name="uq_keystone_fact_key"),
        Index("idx_keystone_composite", "year", "subject", "level", "demographic_group"),
    )


RESULT_MODELS = {
    "pssa": PssaResult,
    "keystone": KeystoneResult,
}
