"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis
from fastapi import FastAPI
from sqlalchemy import text

from padata.api.v1 import router as api_v1_router
from padata.config import get_settings
from padata.db import create_schema, get_engine

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    create_schema(get_engine())
    logger.info("Database tables verified")
    yield
    logger.info("Shutting down...")
    get_engine().dispose()


app = FastAPI(
    title=settings.app_name,
    description="Pennsylvania PSSA and Keystone assessment result imports",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_v1_router)


@app.get("/health")
def health_check():
    checks = {}

    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).scalar()
        checks["database"] = {"ok": True}
    except Exception as e:
        checks["database"] = {"ok": False, "message": str(e)}

    try:
        r = redis.from_url(settings.redis_url, socket_timeout=5)
        r.ping()
        checks["redis"] = {"ok": True}
    except Exception as e:
        checks["redis"] = {"ok": False, "message": str(e)}

    all_ok = all(check.get("ok", False) for check in checks.values())
    return {
        "status": "healthy" if all_ok else "degraded",
        "app": settings.app_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
