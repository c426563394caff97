"""Pydantic schemas for import runs, run summaries and progress updates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ImportRunRead(BaseModel):
    """Audit log entry for one source file."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    file_path: str
    program: str
    level: str
    year: int | None = None
    total_rows: int = 0
    processed_rows: int = 0
    inserted_rows: int = 0
    existing_rows: int = 0
    skipped_rows: int = 0
    status: str
    error_message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class FileResult(BaseModel):
    """Outcome of processing one source file."""

    import_run_id: UUID | None = None
    file_name: str
    file_path: str
    program: str
    level: str
    year: int | None = None
    status: str  # completed, failed, skipped
    total_rows: int = 0
    processed_rows: int = 0
    inserted_rows: int = 0
    existing_rows: int = 0
    skipped_rows: int = 0
    skip_reasons: dict[str, int] = Field(default_factory=dict)
    error_message: str | None = None


class FileError(BaseModel):
    file_name: str
    message: str


class RunSummary(BaseModel):
    """Totals for a full import run."""

    started_at: datetime
    finished_at: datetime | None = None
    cancelled: bool = False

    files_total: int = 0
    files_processed: int = 0
    files_completed: int = 0
    files_failed: int = 0
    files_skipped: int = 0

    rows_processed: int = 0
    rows_inserted: int = 0
    rows_existing: int = 0
    rows_skipped: int = 0
    skip_reasons: dict[str, int] = Field(default_factory=dict)

    counties: int = 0
    districts: int = 0
    schools: int = 0

    errors: list[FileError] = Field(default_factory=list)
    files: list[FileResult] = Field(default_factory=list)

    def add_file(self, result: FileResult) -> None:
        self.files.append(result)
        self.files_processed += 1
        if result.status == "completed":
            self.files_completed += 1
        elif result.status == "failed":
            self.files_failed += 1
        elif result.status == "skipped":
            self.files_skipped += 1
        if result.status == "failed" and result.error_message:
            self.errors.append(FileError(file_name=result.file_name, message=result.error_message))

        self.rows_processed += result.processed_rows
        self.rows_inserted += result.inserted_rows
        self.rows_existing += result.existing_rows
        self.rows_skipped += result.skipped_rows
        for reason, count in result.skip_reasons.items():
            self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + count


class ImportStats(BaseModel):
    """Row counts in the store at the time of the status request."""

    counties: int = 0
    districts: int = 0
    schools: int = 0
    pssa_results: int = 0
    keystone_results: int = 0


class ProgressUpdate(BaseModel):
    """Status snapshot pushed to progress consumers after each file."""

    is_running: bool = False
    is_complete: bool = False
    current_file: str | None = None
    files_processed: int = 0
    files_total: int = 0
    rows_processed: int = 0
    errors: list[str] = Field(default_factory=list)
    progress: int = 0  # 0-100
    estimated_seconds_remaining: int | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None
    stats: ImportStats | None = None


class ImportStartRequest(BaseModel):
    """Start a full run, or a single-file run when file_path is given."""

    file_path: str | None = None
    program: str | None = None
    level: str | None = None


class ImportStartResponse(BaseModel):
    task_id: str
    task: str
