"""Import orchestration - discover source files and import them one at a time.

Each file is its own unit of failure: errors while processing a file roll
back that file's writes, mark its ImportRun failed, and the run moves on.
Only an unreachable store at startup aborts the run, and an aborted run
still publishes a final status that is no longer running.
"""

import logging
import threading
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from padata.config import Settings, get_settings
from padata.importers.errors import ConfigNotFound, ConnectionFailure, EntityResolutionFailure, StoreWriteFailure
from padata.importers.loader import FactLoader, LoadResult, ResolvedIds
from padata.importers.normalizer import RowNormalizer, Skip
from padata.importers.progress import NullProgressReporter, ProgressReporter
from padata.importers.readers import build_header_index, read_rows, year_from_filename
from padata.importers.registry import LEVELS, PROGRAMS, FormatRegistry, LayoutDescriptor, default_registry
from padata.importers.resolver import EntityResolver
from padata.models.geography import County, District, School
from padata.models.import_run import ImportRun
from padata.schemas.import_run import FileResult, ProgressUpdate, RunSummary

logger = logging.getLogger(__name__)


def _failure_message(error: Exception) -> str:
    if isinstance(error, SQLAlchemyError):
        error = StoreWriteFailure(f"Store write failed: {error}")
    return str(error)[:2000] or error.__class__.__name__


@dataclass(frozen=True)
class SourceFile:
    path: Path
    program: str
    level: str

    @property
    def name(self) -> str:
        return self.path.name


class ImportOrchestrator:
    def __init__(
        self,
        session_factory: sessionmaker,
        source_dir: str | Path | None = None,
        registry: FormatRegistry | None = None,
        progress: ProgressReporter | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.source_dir = Path(source_dir or self.settings.source_dir)
        self.registry = registry or default_registry()
        self.progress = progress or NullProgressReporter()
        self.normalizer = RowNormalizer(
            aun_width=self.settings.aun_width,
            school_number_width=self.settings.school_number_width,
        )
        self.extensions = {ext.lower() for ext in self.settings.import_extensions}

    def discover_files(self) -> list[SourceFile]:
        """List source files in program, level, then filename order."""
        files: list[SourceFile] = []
        for program in PROGRAMS:
            for level in LEVELS:
                directory = self.source_dir / program / level
                if not directory.is_dir():
                    logger.debug(f"No source directory {directory}")
                    continue
                for path in sorted(directory.iterdir(), key=lambda p: p.name):
                    if not path.is_file() or path.name.startswith((".", "~$")):
                        continue
                    if path.suffix.lower() not in self.extensions:
                        continue
                    files.append(SourceFile(path=path, program=program, level=level))
        return files

    def run_all(self, cancel_event: threading.Event | None = None) -> RunSummary:
        """Import every discovered file. Cancellation is checked between files."""
        summary = RunSummary(started_at=datetime.now(timezone.utc))
        files = self.discover_files()
        summary.files_total = len(files)
        logger.info(f"Starting import of {len(files)} files from {self.source_dir}")

        session = self.session_factory()
        try:
            resolver, loader = self._start(session)
            self._publish(summary, is_running=True)

            for source in files:
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(f"Import cancelled after {summary.files_processed} files")
                    summary.cancelled = True
                    break
                self._publish(summary, is_running=True, current_file=source.name)
                result = self._import_file(session, resolver, loader, source)
                summary.add_file(result)
                self._publish(summary, is_running=True, current_file=source.name)

            counts = self._entity_counts(session)
            summary.counties = counts["counties"]
            summary.districts = counts["districts"]
            summary.schools = counts["schools"]
        except Exception as e:
            summary.finished_at = datetime.now(timezone.utc)
            logger.error(f"Import aborted after {summary.files_processed} files: {e}")
            self._publish(summary, is_running=False, abort_reason=f"Import aborted: {e}")
            raise
        finally:
            session.close()

        summary.finished_at = datetime.now(timezone.utc)
        self._publish(summary, is_running=False, is_complete=True)
        logger.info(
            f"Import finished: {summary.files_completed} completed, {summary.files_failed} failed, "
            f"{summary.files_skipped} skipped; {summary.rows_inserted} rows inserted, "
            f"{summary.rows_existing} already present, {summary.rows_skipped} skipped"
        )
        return summary

    def run_file(self, path: str | Path, program: str, level: str) -> FileResult:
        """Import a single file, e.g. to try out a new registry entry."""
        if program not in PROGRAMS:
            raise ValueError(f"Unknown test program: {program}")
        if level not in LEVELS:
            raise ValueError(f"Unknown level: {level}")

        source = SourceFile(path=Path(path), program=program, level=level)
        summary = RunSummary(started_at=datetime.now(timezone.utc), files_total=1)
        session = self.session_factory()
        try:
            resolver, loader = self._start(session)
            result = self._import_file(session, resolver, loader, source)
        finally:
            session.close()

        summary.add_file(result)
        summary.finished_at = datetime.now(timezone.utc)
        self._publish(summary, is_running=False, is_complete=True, current_file=source.name)
        return result

    def _start(self, session: Session) -> tuple[EntityResolver, FactLoader]:
        """Check the store is reachable and seed reference counties."""
        try:
            session.execute(text("SELECT 1"))
            resolver = EntityResolver(session)
            resolver.bootstrap_counties()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise ConnectionFailure(f"Store unavailable: {e}") from e

        loader = FactLoader(session, self.settings.allowed_subjects())
        return resolver, loader

    def _import_file(
        self,
        session: Session,
        resolver: EntityResolver,
        loader: FactLoader,
        source: SourceFile,
    ) -> FileResult:
        file_year = year_from_filename(source.name)
        result = FileResult(
            file_name=source.name,
            file_path=str(source.path),
            program=source.program,
            level=source.level,
            year=file_year,
            status="pending",
        )

        try:
            descriptor = self.registry.require(source.name, source.program, source.level)
        except ConfigNotFound as e:
            logger.warning(f"{e}, skipping")
            return self._record_skipped(session, result, str(e))

        run_id = uuid.uuid4()
        counts: Counter = Counter()
        skip_reasons: Counter = Counter()
        try:
            run = ImportRun(
                id=run_id,
                file_name=source.name,
                file_path=str(source.path),
                program=source.program,
                level=source.level,
                year=file_year,
                status="pending",
            )
            session.add(run)
            session.commit()
            result.import_run_id = run_id

            run.status = "processing"
            run.started_at = datetime.now(timezone.utc)
            session.commit()
            logger.info(f"Importing {source.program}/{source.level} {source.name}")

            total_rows = self._load_rows(session, resolver, loader, source, descriptor, file_year, counts, skip_reasons)

            run.status = "completed"
            run.total_rows = total_rows
            run.processed_rows = counts["processed"]
            run.inserted_rows = counts["inserted"]
            run.existing_rows = counts["existing"]
            run.skipped_rows = counts["skipped"]
            run.finished_at = datetime.now(timezone.utc)
            session.commit()

            result.status = "completed"
            result.total_rows = total_rows
            result.processed_rows = counts["processed"]
            result.inserted_rows = counts["inserted"]
            result.existing_rows = counts["existing"]
            result.skipped_rows = counts["skipped"]
            result.skip_reasons = dict(skip_reasons)
            logger.info(
                f"{source.name}: {counts['inserted']} inserted, {counts['existing']} already present, "
                f"{counts['skipped']} skipped"
            )

        except Exception as e:
            session.rollback()
            # Ids created in the rolled-back transaction no longer exist
            resolver.clear_cache()
            message = _failure_message(e)
            result.status = "failed"
            result.error_message = message
            logger.error(f"Failed to import {source.name}: {message}")
            if not self._mark_failed(session, run_id, message):
                result.import_run_id = None

        return result

    def _record_skipped(self, session: Session, result: FileResult, message: str) -> FileResult:
        now = datetime.now(timezone.utc)
        run = ImportRun(
            id=uuid.uuid4(),
            file_name=result.file_name,
            file_path=result.file_path,
            program=result.program,
            level=result.level,
            year=result.year,
            status="skipped",
            error_message=message,
            started_at=now,
            finished_at=now,
        )
        try:
            session.add(run)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            result.status = "failed"
            result.error_message = _failure_message(e)
            logger.error(f"Could not record skipped file {result.file_name}: {result.error_message}")
            return result

        result.import_run_id = run.id
        result.status = "skipped"
        result.error_message = message
        return result

    def _mark_failed(self, session: Session, run_id: uuid.UUID, message: str) -> bool:
        """Move the file's ImportRun to failed. False when no audit row could be written."""
        try:
            run = session.get(ImportRun, run_id)
            if run is None:
                return False
            run.status = "failed"
            run.error_message = message
            run.finished_at = datetime.now(timezone.utc)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Could not mark import run {run_id} failed: {e}")
            return False
        return True

    def _load_rows(
        self,
        session: Session,
        resolver: EntityResolver,
        loader: FactLoader,
        source: SourceFile,
        descriptor: LayoutDescriptor,
        file_year: int | None,
        counts: Counter,
        skip_reasons: Counter,
    ) -> int:
        """Normalize, resolve and load every data row. Returns the data row count."""
        rows = read_rows(source.path)
        if len(rows) <= descriptor.header_row:
            raise ValueError(f"Header row {descriptor.header_row} is past the end of {source.name}")

        header_index = build_header_index(rows[descriptor.header_row])
        missing = descriptor.missing_columns(header_index)
        if missing:
            logger.warning(f"{source.name}: layout columns not found in header: {', '.join(missing)}")

        data_rows = rows[descriptor.header_row + 1:]
        batch_size = max(self.settings.import_batch_size, 1)

        for row_number, raw in enumerate(data_rows, start=1):
            normalized = self.normalizer.normalize(raw, descriptor, header_index, file_year)
            if isinstance(normalized, Skip):
                if normalized.reason == "empty row":
                    continue
                outcome = LoadResult("skipped", normalized.reason)
            else:
                outcome = self._load_record(resolver, loader, source, normalized)

            counts["processed"] += 1
            counts[outcome.status] += 1
            if outcome.status == "skipped":
                skip_reasons[outcome.reason] += 1

            if row_number % batch_size == 0:
                session.flush()
                logger.debug(f"{source.name}: {row_number}/{len(data_rows)} rows")

        return len(data_rows)

    def _load_record(self, resolver: EntityResolver, loader: FactLoader, source: SourceFile, record) -> LoadResult:
        ids = ResolvedIds()
        if source.level != "state":
            try:
                ids.county_id = resolver.ensure_county(record.county)
                ids.district_id = resolver.ensure_district(record.aun, record.district_name, ids.county_id)
                if source.level == "school":
                    ids.school_id = resolver.ensure_school(record.school_number, ids.district_id, record.school_name)
            except EntityResolutionFailure as e:
                return LoadResult("skipped", f"entity resolution failed: {e.reason}")
        return loader.load(record, source.program, source.level, ids, source.name)

    def _entity_counts(self, session: Session) -> dict[str, int]:
        return {
            "counties": session.scalar(select(func.count()).select_from(County)) or 0,
            "districts": session.scalar(select(func.count()).select_from(District)) or 0,
            "schools": session.scalar(select(func.count()).select_from(School)) or 0,
        }

    def _publish(
        self,
        summary: RunSummary,
        is_running: bool,
        is_complete: bool = False,
        current_file: str | None = None,
        abort_reason: str | None = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        progress = 0
        if summary.files_total:
            progress = round(summary.files_processed / summary.files_total * 100)
        elif is_complete:
            progress = 100

        remaining = None
        if is_running and summary.files_processed:
            per_file = (now - summary.started_at).total_seconds() / summary.files_processed
            remaining = round(per_file * (summary.files_total - summary.files_processed))

        errors = [f"{error.file_name}: {error.message}" for error in summary.errors]
        if abort_reason:
            errors.append(abort_reason)

        self.progress.publish(ProgressUpdate(
            is_running=is_running,
            is_complete=is_complete,
            current_file=current_file,
            files_processed=summary.files_processed,
            files_total=summary.files_total,
            rows_processed=summary.rows_processed,
            errors=errors,
            progress=progress,
            estimated_seconds_remaining=remaining,
            started_at=summary.started_at,
            updated_at=now,
        ))
