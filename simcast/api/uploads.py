from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.api.schemas import (
    DashboardStatsResponse,
    MetricName,
    PlatformComparisonItem,
    UploadResponse,
    UploadWithMetricsResponse,
)
from simcast.core.deps import get_db
from simcast.services import analytics as analytics_svc
from simcast.services import uploads as uploads_svc
from simcast.services.analytics import Timeframe
from simcast.services.platforms.base import Platform

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.get("/recent", response_model=list[UploadWithMetricsResponse])
async def list_recent_uploads(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    rows = await analytics_svc.get_recent_uploads(db, limit)
    return [UploadWithMetricsResponse.from_row(upload, snapshot) for upload, snapshot in rows]


@router.get("/platforms", response_model=list[PlatformComparisonItem])
async def compare_platforms(db: AsyncSession = Depends(get_db)):
    """Upload counts with average and summed latest counters per platform."""
    return await analytics_svc.get_platform_comparison(db)


@router.get("/top", response_model=list[UploadWithMetricsResponse])
async def list_top_uploads(
    limit: int = Query(default=10, ge=1, le=100),
    platform: Platform | None = Query(default=None),
    sort_by: MetricName = Query(default="views"),
    timeframe: Timeframe = Query(default=Timeframe.ALL),
    db: AsyncSession = Depends(get_db),
):
    rows = await analytics_svc.get_top_uploads(
        db, limit=limit, platform=platform, sort_by=sort_by, timeframe=timeframe
    )
    return [UploadWithMetricsResponse.from_row(upload, snapshot) for upload, snapshot in rows]


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Headline numbers for the dashboard overview."""
    return await analytics_svc.get_dashboard_stats(db)


@router.get("/{upload_id}", response_model=UploadResponse)
async def get_upload(upload_id: int, db: AsyncSession = Depends(get_db)):
    return await uploads_svc.get_upload(db, upload_id)
