"""API v1 router aggregation."""

from fastapi import APIRouter

from padata.api.v1.imports import router as imports_router

router = APIRouter(prefix="/api/v1")

router.include_router(imports_router)
