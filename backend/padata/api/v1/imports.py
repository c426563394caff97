"""Import status and invocation endpoints."""

from datetime import datetime, timezone

import redis
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from padata.config import get_settings
from padata.db import get_db
from padata.importers.progress import read_progress
from padata.importers.registry import LEVELS, PROGRAMS
from padata.models import County, District, ImportRun, KeystoneResult, PssaResult, School
from padata.schemas.import_run import (
    ImportRunRead,
    ImportStartRequest,
    ImportStartResponse,
    ImportStats,
    ProgressUpdate,
)

router = APIRouter(prefix="/imports", tags=["imports"])


def get_redis():
    return redis.from_url(get_settings().redis_url, socket_timeout=5)


@router.get("/runs", response_model=list[ImportRunRead])
def list_runs(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status: str | None = Query(None, description="Filter by status"),
    program: str | None = Query(None, description="Filter by test program"),
    level: str | None = Query(None, description="Filter by level"),
):
    """List ImportRun records, newest first."""
    query = select(ImportRun)

    if status:
        query = query.where(ImportRun.status == status)
    if program:
        query = query.where(ImportRun.program == program)
    if level:
        query = query.where(ImportRun.level == level)

    query = query.order_by(ImportRun.created_at.desc(), ImportRun.file_name).offset(skip).limit(limit)
    return db.scalars(query).all()


def _store_stats(db: Session) -> ImportStats:
    def count(model) -> int:
        return db.scalar(select(func.count()).select_from(model)) or 0

    return ImportStats(
        counties=count(County),
        districts=count(District),
        schools=count(School),
        pssa_results=count(PssaResult),
        keystone_results=count(KeystoneResult),
    )


@router.get("/status", response_model=ProgressUpdate)
def import_status(db: Session = Depends(get_db), client=Depends(get_redis)):
    """Latest progress snapshot published by a running or finished import, with store counts."""
    try:
        update = read_progress(client, get_settings().progress_key)
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Progress store unavailable: {e}")
    update.stats = _store_stats(db)
    return update


@router.post("/start", response_model=ImportStartResponse, status_code=202)
def start_import(
    request: ImportStartRequest | None = None,
    client=Depends(get_redis),
):
    """Dispatch a full import, or a single-file import when file_path is set.

    A claim key is set with NX before dispatch, so of two concurrent requests
    only one starts a worker. The task deletes the claim when it finishes.
    """
    from padata.tasks.import_tasks import import_single_file, run_full_import

    single = bool(request and request.file_path)
    if single:
        if request.program not in PROGRAMS:
            raise HTTPException(status_code=400, detail=f"program must be one of {', '.join(PROGRAMS)}")
        if request.level not in LEVELS:
            raise HTTPException(status_code=400, detail=f"level must be one of {', '.join(LEVELS)}")

    settings = get_settings()
    try:
        if read_progress(client, settings.progress_key).is_running:
            raise HTTPException(status_code=409, detail="An import is already running")
        claimed = client.set(
            settings.import_lock_key,
            datetime.now(timezone.utc).isoformat(),
            nx=True,
            ex=settings.import_lock_ttl,
        )
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Progress store unavailable: {e}")
    if not claimed:
        raise HTTPException(status_code=409, detail="An import is already running")

    try:
        if single:
            task = import_single_file.delay(request.file_path, request.program, request.level)
            return ImportStartResponse(task_id=str(task.id), task=import_single_file.name)
        task = run_full_import.delay()
        return ImportStartResponse(task_id=str(task.id), task=run_full_import.name)
    except Exception:
        client.delete(settings.import_lock_key)
        raise
