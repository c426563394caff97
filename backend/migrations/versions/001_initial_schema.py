"""Initial schema - counties, districts, schools, result facts, import_runs.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _result_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("fact_key", sa.String(64), nullable=False),
        sa.Column("level", sa.String(20), nullable=False, index=True),
        sa.Column("school_id", sa.Uuid(as_uuid=True), sa.ForeignKey("schools.id"), index=True),
        sa.Column("district_id", sa.Uuid(as_uuid=True), sa.ForeignKey("districts.id"), index=True),
        sa.Column("county_id", sa.Uuid(as_uuid=True), sa.ForeignKey("counties.id"), index=True),
        sa.Column("year", sa.Integer, nullable=False, index=True),
        sa.Column("grade", sa.Integer),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("demographic_group", sa.String(100), nullable=False),
        sa.Column("total_tested", sa.Integer),
        sa.Column("advanced_count", sa.Integer),
        sa.Column("proficient_count", sa.Integer),
        sa.Column("basic_count", sa.Integer),
        sa.Column("below_basic_count", sa.Integer),
        sa.Column("advanced_percent", sa.Float),
        sa.Column("proficient_percent", sa.Float),
        sa.Column("basic_percent", sa.Float),
        sa.Column("below_basic_percent", sa.Float),
        sa.Column("proficient_or_above_percent", sa.Float),
        sa.Column("source_file", sa.String(255)),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Counties
    op.create_table(
        "counties",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("county_code", sa.String(10), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False, index=True),
        sa.Column("full_name", sa.String(150)),
        sa.Column("is_canonical", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Districts (keyed by AUN)
    op.create_table(
        "districts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("aun", sa.String(9), unique=True, nullable=False, index=True),
        sa.Column("name", sa.String(255)),
        sa.Column("district_type", sa.String(50), nullable=False, server_default="unknown"),
        sa.Column("county_id", sa.Uuid(as_uuid=True), sa.ForeignKey("counties.id"), index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_district_name", "districts", ["name"])

    # Schools (keyed by school number within a district)
    op.create_table(
        "schools",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("school_number", sa.String(10), nullable=False),
        sa.Column("district_id", sa.Uuid(as_uuid=True), sa.ForeignKey("districts.id"), nullable=False, index=True),
        sa.Column("name", sa.String(255)),
        sa.Column("school_type", sa.String(50), nullable=False, server_default="unknown"),
        sa.Column("is_charter", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("school_number", "district_id", name="uq_school_number_district"),
    )
    op.create_index("idx_school_name", "schools", ["name"])

    # Result facts
    op.create_table(
        "pssa_results",
        *_result_columns(),
        sa.UniqueConstraint("fact_key", name="uq_pssa_fact_key"),
    )
    op.create_index(
        "idx_pssa_composite", "pssa_results",
        ["year", "subject", "grade", "level", "demographic_group"],
    )

    op.create_table(
        "keystone_results",
        *_result_columns(),
        sa.UniqueConstraint("fact_key", name="uq_keystone_fact_key"),
    )
    op.create_index(
        "idx_keystone_composite", "keystone_results",
        ["year", "subject", "level", "demographic_group"],
    )

    # Import audit log
    op.create_table(
        "import_runs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("file_name", sa.String(255), nullable=False, index=True),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("program", sa.String(20), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("year", sa.Integer),
        sa.Column("total_rows", sa.Integer, server_default=sa.text("0")),
        sa.Column("processed_rows", sa.Integer, server_default=sa.text("0")),
        sa.Column("inserted_rows", sa.Integer, server_default=sa.text("0")),
        sa.Column("existing_rows", sa.Integer, server_default=sa.text("0")),
        sa.Column("skipped_rows", sa.Integer, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_import_run_status", "import_runs", ["status"])


def downgrade() -> None:
    op.drop_table("import_runs")
    op.drop_table("keystone_results")
    op.drop_table("pssa_results")
    op.drop_table("schools")
    op.drop_table("districts")
    op.drop_table("counties")
