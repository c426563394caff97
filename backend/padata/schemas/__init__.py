"""Pydantic schemas package."""

from padata.schemas.import_run import (
    FileError,
    FileResult,
    ImportRunRead,
    ImportStats,
    ImportStartRequest,
    ImportStartResponse,
    ProgressUpdate,
    RunSummary,
)

__all__ = [
    "FileError",
    "FileResult",
    "ImportRunRead",
    "ImportStats",
    "ImportStartRequest",
    "ImportStartResponse",
    "ProgressUpdate",
    "RunSummary",
]
