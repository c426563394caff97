import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from padata.models import Base

MIGRATION = Path(__file__).resolve().parent.parent / "migrations" / "versions" / "001_initial_schema.py"


@pytest.fixture
def migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrated_engine(migration):
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
    yield engine
    engine.dispose()


class TestInitialSchema:
    def test_tables_match_models(self, migrated_engine):
        inspector = inspect(migrated_engine)

        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == set(table.columns.keys()), name

    def test_natural_key_constraints(self, migrated_engine):
        inspector = inspect(migrated_engine)

        unique = {c["name"] for c in inspector.get_unique_constraints("pssa_results")}
        assert "uq_pssa_fact_key" in unique
        unique = {c["name"] for c in inspector.get_unique_constraints("schools")}
        assert "uq_school_number_district" in unique
        indexes = {i["name"] for i in inspector.get_indexes("import_runs")}
        assert "idx_import_run_status" in indexes

    def test_downgrade_drops_everything(self, migration, migrated_engine):
        with migrated_engine.begin() as conn:
            with Operations.context(MigrationContext.configure(conn)):
                migration.downgrade()

        assert inspect(migrated_engine).get_table_names() == []
