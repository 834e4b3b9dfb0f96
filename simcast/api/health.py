from fastapi import APIRouter

from simcast.core.config import settings
from simcast.services.platforms.base import Platform

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/config/public")
async def public_config() -> dict:
    """Public pipeline configuration (platforms, retention, cadence)."""
    return {
        "platforms": [p.value for p in Platform],
        "snapshot_retention_days": settings.snapshot_retention_days,
        "collection_minute": settings.collection_minute,
    }
