"""Import run model - audit log, one row per source file."""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, func

from padata.models.base import Base, UUIDMixin


class ImportRun(UUIDMixin, Base):
    __tablename__ = "import_runs"

    file_name = Column(String(255), nullable=False, index=True)
    file_path = Column(Text, nullable=False)
    program = Column(String(20), nullable=False)  # pssa, keystone
    level = Column(String(20), nullable=False)  # school, district, state
    year = Column(Integer)

    total_rows = Column(Integer, default=0)
    processed_rows = Column(Integer, default=0)
    inserted_rows = Column(Integer, default=0)
    existing_rows = Column(Integer, default=0)
    skipped_rows = Column(Integer, default=0)

    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed, failed, skipped
    error_message = Column(Text)

    started_at = Column(DateTime(timezone=True))
    finished_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_import_run_status", "status"),
    )
