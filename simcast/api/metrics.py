"""Dashboard metrics endpoints backed by the hourly snapshot store."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.api.schemas import (
    AggregatedMetricsResponse,
    BulkMetricsRequest,
    BulkMetricsResponse,
    CleanupResponse,
    CollectResponse,
    LatestMetricsResponse,
    MetricName,
    SeriesPoint,
    SnapshotPoint,
    SnapshotStatsResponse,
    TimeRangeMetricsResponse,
    TrendPoint,
)
from simcast.core.cache import cache_get_json, cache_set_json, invalidate_metrics_cache, make_cache_key
from simcast.core.config import settings
from simcast.core.deps import get_db
from simcast.core.rate_limit import limiter
from simcast.services import analytics as analytics_svc
from simcast.services import retention as retention_svc
from simcast.services import timeseries as timeseries_svc
from simcast.services.analytics import TimeRange
from simcast.services.platforms.base import Platform

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.post("/collect", response_model=CollectResponse)
@limiter.limit(settings.rate_limit_collect)
async def trigger_collection(request: Request) -> CollectResponse:
    """Queue an out-of-schedule hourly collection run."""
    from simcast.workers.tasks import collect_hourly_snapshots

    task = collect_hourly_snapshots.delay()
    return CollectResponse(
        success=True,
        message="Metrics collection queued",
        task_id=task.id,
        timestamp=datetime.now(timezone.utc),
    )


@router.post("/cleanup", response_model=CleanupResponse)
async def trigger_cleanup(db: AsyncSession = Depends(get_db)) -> CleanupResponse:
    deleted = await retention_svc.cleanup_old_snapshots(db)
    await invalidate_metrics_cache()
    return CleanupResponse(
        success=True,
        message=f"Deleted {deleted} snapshots older than {settings.snapshot_retention_days} days",
        deleted=deleted,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/over-time", response_model=list[SeriesPoint])
async def get_metrics_over_time(
    days: int = Query(default=7, ge=1, le=365),
    platform: Platform | None = Query(default=None),
    metric: MetricName = Query(default="views"),
    db: AsyncSession = Depends(get_db),
):
    """Per-bucket increments of one metric: hourly for a single day, daily otherwise."""
    key = make_cache_key("over-time", days, platform, metric)
    cached = await cache_get_json(key)
    if cached is not None:
        return cached

    series = await timeseries_svc.get_metrics_over_time(db, days, platform, metric)
    await cache_set_json(key, series)
    return series


@router.get("/trend", response_model=list[TrendPoint])
async def get_metrics_trend(
    days: int = Query(default=7, ge=1, le=365),
    platform: Platform | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Daily increments of all four counters with the number of uploads reporting."""
    key = make_cache_key("trend", days, platform)
    cached = await cache_get_json(key)
    if cached is not None:
        return cached

    trend = await timeseries_svc.get_metrics_trend(db, days, platform)
    await cache_set_json(key, trend)
    return trend


@router.get("/uploads/{upload_id}/range", response_model=TimeRangeMetricsResponse)
async def get_upload_range(
    upload_id: int,
    time_range: TimeRange = Query(default=TimeRange.TODAY, alias="range"),
    db: AsyncSession = Depends(get_db),
):
    await analytics_svc.ensure_upload_exists(db, upload_id)
    snapshots = await analytics_svc.get_metrics_for_time_range(db, upload_id, time_range)
    return TimeRangeMetricsResponse(
        upload_id=upload_id,
        range=time_range,
        data=[SnapshotPoint.model_validate(s) for s in snapshots],
    )


@router.get("/uploads/{upload_id}/aggregate", response_model=AggregatedMetricsResponse)
async def get_upload_aggregate(
    upload_id: int,
    time_range: TimeRange = Query(default=TimeRange.TODAY, alias="range"),
    db: AsyncSession = Depends(get_db),
):
    await analytics_svc.ensure_upload_exists(db, upload_id)
    aggregated = await analytics_svc.get_aggregated_metrics(db, upload_id, time_range)
    return AggregatedMetricsResponse(upload_id=upload_id, range=time_range, **aggregated)


@router.get("/uploads/{upload_id}/latest", response_model=LatestMetricsResponse)
async def get_upload_latest(upload_id: int, db: AsyncSession = Depends(get_db)):
    await analytics_svc.ensure_upload_exists(db, upload_id)
    snapshot = await analytics_svc.get_latest_metrics(db, upload_id)
    if snapshot is None:
        return LatestMetricsResponse(
            upload_id=upload_id,
            has_data=False,
            message="No metrics captured for this upload today",
        )
    return LatestMetricsResponse(
        upload_id=upload_id,
        has_data=True,
        metrics=SnapshotPoint.model_validate(snapshot),
    )


@router.post("/bulk", response_model=BulkMetricsResponse)
async def get_bulk_metrics(body: BulkMetricsRequest, db: AsyncSession = Depends(get_db)):
    """Range data and aggregates for several uploads at once.

    A failing upload is reported in ``errors``; the rest are still returned.
    """
    result = await analytics_svc.get_bulk_metrics(db, body.upload_ids, body.range)
    return BulkMetricsResponse(
        range=body.range,
        successful=[
            {
                "upload_id": item["upload_id"],
                "time_range_data": [SnapshotPoint.model_validate(s) for s in item["snapshots"]],
                "aggregated": item["aggregated"],
            }
            for item in result["successful"]
        ],
        failed=result["failed"],
        errors=result["errors"],
    )


@router.get("/snapshots/stats", response_model=SnapshotStatsResponse)
async def get_snapshot_stats(db: AsyncSession = Depends(get_db)):
    stats = await analytics_svc.get_snapshot_stats(db)
    return SnapshotStatsResponse(**stats, last_updated=datetime.now(timezone.utc))
