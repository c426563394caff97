"""Shared fixtures: in-memory SQLite store, settings and source-file builders."""

import csv
from pathlib import Path

import pytest
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from padata.config import Settings
from padata.db import create_schema

PSSA_SCHOOL_HEADER = [
    "County", "District Name", "School Name", "District AUN", "School Number",
    "Subject", "Grade", "Group", "Number Scored",
    "% Advanced", "% Proficient", "% Basic", "% Below Basic",
]
PSSA_DISTRICT_HEADER = [
    "County", "District Name", "District AUN",
    "Subject", "Grade", "Group", "Number Scored",
    "% Advanced", "% Proficient", "% Basic", "% Below Basic",
]
PSSA_STATE_HEADER = [
    "Subject", "Grade", "Group", "Number Scored",
    "% Advanced", "% Proficient", "% Basic", "% Below Basic",
]
KEYSTONE_SCHOOL_HEADER = [
    "County", "District Name", "School Name", "AUN", "School Number",
    "Subject", "Group", "Number Scored",
    "Percent Advanced", "Percent Proficient", "Percent Basic", "Percent Below Basic",
]


def _preamble(header_row: int) -> list[list]:
    return [[f"Pennsylvania Department of Education report line {i + 1}"] for i in range(header_row)]


def write_xlsx(path: Path, header: list, rows: list[list], header_row: int = 4) -> Path:
    """Write a workbook with title lines above the header, like the published files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    for line in _preamble(header_row):
        ws.append(line)
    ws.append(header)
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def write_csv(path: Path, header: list, rows: list[list], header_row: int = 4, encoding: str = "utf-8") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding=encoding) as f:
        writer = csv.writer(f)
        writer.writerows(_preamble(header_row))
        writer.writerow(header)
        writer.writerows(rows)
    return path


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def source_dir(tmp_path) -> Path:
    path = tmp_path / "sources"
    path.mkdir()
    return path


@pytest.fixture
def settings(source_dir) -> Settings:
    return Settings(
        database_url="sqlite://",
        redis_url="redis://localhost:6379/15",
        source_dir=str(source_dir),
        import_batch_size=2,
    )


class FakeRedis:
    """Just enough of the redis client for progress and claim tests."""

    def __init__(self):
        self.store: dict[str, bytes] = {}
        self.expiry: dict[str, int] = {}
        self.published: list[tuple[str, str]] = []

    def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value.encode() if isinstance(value, str) else value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
