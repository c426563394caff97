"""Database models - importing this package registers every table on Base.metadata."""

from padata.models.base import Base, TimestampMixin, UUIDMixin
from padata.models.geography import County, District, School
from padata.models.import_run import ImportRun
from padata.models.results import KeystoneResult, PssaResult, RESULT_MODELS

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "County",
    "District",
    "School",
    "ImportRun",
    "PssaResult",
    "KeystoneResult",
    "RESULT_MODELS",
]
