"""Import tasks - run the pipeline inside a Celery worker."""

import logging

import redis

from padata.config import get_settings
from padata.db import get_session_factory
from padata.importers.orchestrator import ImportOrchestrator
from padata.importers.progress import RedisProgressReporter
from padata.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _redis_client():
    return redis.from_url(get_settings().redis_url, socket_timeout=5)


def _build_orchestrator(client) -> ImportOrchestrator:
    settings = get_settings()
    reporter = RedisProgressReporter(
        client, settings.progress_key, settings.progress_channel, ttl=settings.progress_ttl,
    )
    return ImportOrchestrator(
        session_factory=get_session_factory(),
        source_dir=settings.source_dir,
        progress=reporter,
        settings=settings,
    )


def _release_claim(client) -> None:
    """Drop the claim taken by POST /imports/start so the next import can be dispatched."""
    try:
        client.delete(get_settings().import_lock_key)
    except redis.RedisError as e:
        logger.warning(f"Could not release import claim, it expires on its own: {e}")


@celery_app.task(name="padata.tasks.import_tasks.run_full_import")
def run_full_import():
    """Import every file under the configured source directory."""
    client = _redis_client()
    try:
        summary = _build_orchestrator(client).run_all()
    finally:
        _release_claim(client)
    logger.info(
        f"Full import done: {summary.files_completed}/{summary.files_total} files completed, "
        f"{summary.rows_inserted} rows inserted"
    )
    return summary.model_dump(mode="json")


@celery_app.task(name="padata.tasks.import_tasks.import_single_file")
def import_single_file(path: str, program: str, level: str):
    """Import one file, e.g. after adding a registry entry for it."""
    client = _redis_client()
    try:
        result = _build_orchestrator(client).run_file(path, program, level)
    finally:
        _release_claim(client)
    logger.info(f"Imported {result.file_name}: {result.status}")
    return result.model_dump(mode="json")
