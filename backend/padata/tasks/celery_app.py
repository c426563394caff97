"""Celery application configuration."""

from celery import Celery

from padata.config import get_settings

settings = get_settings()

celery_app = Celery(
    "padata",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "padata.tasks.import_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="US/Eastern",
    task_track_started=True,
    # A full import of every year and level runs well past the default limits
    task_time_limit=4 * 60 * 60,
    task_soft_time_limit=4 * 60 * 60 - 300,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
