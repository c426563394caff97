"""County, district and school models - the administrative entity graph."""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from padata.models.base import Base, TimestampMixin, UUIDMixin


class County(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "counties"

    county_code = Column(String(10), unique=True, nullable=False)  # "109" for Bucks
    name = Column(String(100), nullable=False, index=True)  # "Bucks"
    full_name = Column(String(150))  # "Bucks County"

    # False for counties created from an unseen name (generated 9xx code)
    is_canonical = Column(Boolean, default=True, nullable=False)

    districts = relationship("District", back_populates="county")


class District(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "districts"

    aun = Column(String(9), unique=True, nullable=False, index=True)
    name = Column(String(255))
    district_type = Column(String(50), nullable=False, default="unknown")

    # Nullable until a file supplies a county; never overwritten once set
    county_id = Column(Uuid(as_uuid=True), ForeignKey("counties.id"), index=True)

    county = relationship("County", back_populates="districts")
    schools = relationship("School", back_populates="district")

    __table_args__ = (
        Index("idx_district_name", "name"),
    )


class School(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "schools"

    school_number = Column(String(10), nullable=False)
    district_id = Column(Uuid(as_uuid=True), ForeignKey("districts.id"), nullable=False, index=True)
    name = Column(String(255))
    school_type = Column(String(50), nullable=False, default="unknown")
    is_charter = Column(Boolean, default=False, nullable=False)

    district = relationship("District", back_populates="schools")

    __table_args__ = (
        UniqueConstraint("school_number", "district_id", name="uq_school_number_district"),
        Index("idx_school_name", "name"),
    )
