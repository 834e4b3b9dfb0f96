"""Dashboard read models built on top of the snapshot store.

All functions here are read-only. Storage failures surface as
MetricsQueryError so the API can report an explicit error state.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.models.metric_snapshot import MetricSnapshot
from simcast.models.upload import Upload
from simcast.services import snapshots as snapshot_svc
from simcast.services.buckets import as_utc, start_of_day
from simcast.services.deltas import COUNTERS, Counters
from simcast.services.errors import MetricsQueryError, UploadNotFoundError

logger = logging.getLogger(__name__)


class TimeRange(StrEnum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class Timeframe(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


_RANGE_DAYS = {TimeRange.TODAY: 0, TimeRange.WEEK: 7, TimeRange.MONTH: 30}
_TIMEFRAME_DAYS = {Timeframe.DAY: 1, Timeframe.WEEK: 7, Timeframe.MONTH: 30}


def range_start(time_range: TimeRange, now: datetime | None = None) -> datetime:
    """UTC midnight today, moved back 7 or 30 days for week/month."""
    today = start_of_day(as_utc(now) if now else datetime.now(timezone.utc))
    return today - timedelta(days=_RANGE_DAYS[TimeRange(time_range)])


def _growth(latest: Counters, earliest: Counters) -> dict[str, int]:
    return {name: getattr(latest, name) - getattr(earliest, name) for name in COUNTERS}


async def get_metrics_for_time_range(
    db: AsyncSession,
    upload_id: int,
    time_range: TimeRange,
    now: datetime | None = None,
) -> list[MetricSnapshot]:
    """Raw snapshots of one upload in the range, oldest first."""
    try:
        return await snapshot_svc.get_upload_snapshots(db, upload_id, range_start(time_range, now))
    except SQLAlchemyError as exc:
        logger.exception("Time range query failed for upload %s (%s)", upload_id, time_range)
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc


def aggregate_snapshots(snapshots: list[MetricSnapshot]) -> dict:
    """Totals from the latest snapshot; growth is latest minus earliest."""
    if not snapshots:
        latest = earliest = Counters()
    else:
        latest = Counters.from_snapshot(snapshots[-1])
        earliest = Counters.from_snapshot(snapshots[0])

    return {
        "total_views": latest.views,
        "total_likes": latest.likes,
        "total_comments": latest.comments,
        "total_shares": latest.shares,
        "growth": _growth(latest, earliest),
    }


async def get_aggregated_metrics(
    db: AsyncSession,
    upload_id: int,
    time_range: TimeRange,
    now: datetime | None = None,
) -> dict:
    snapshots = await get_metrics_for_time_range(db, upload_id, time_range, now)
    return aggregate_snapshots(snapshots)


async def get_latest_metrics(
    db: AsyncSession, upload_id: int, now: datetime | None = None
) -> MetricSnapshot | None:
    """Latest snapshot captured today (UTC), if any."""
    try:
        return await snapshot_svc.get_latest_snapshot(
            db, upload_id, since=range_start(TimeRange.TODAY, now)
        )
    except SQLAlchemyError as exc:
        logger.exception("Latest metrics query failed for upload %s", upload_id)
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc


async def get_bulk_metrics(
    db: AsyncSession,
    upload_ids: list[int],
    time_range: TimeRange,
    now: datetime | None = None,
) -> dict:
    """Range + aggregate per upload; a failing upload is counted, not fatal."""
    successful = []
    errors = []
    for upload_id in upload_ids:
        try:
            snapshots = await get_metrics_for_time_range(db, upload_id, time_range, now)
        except MetricsQueryError as exc:
            await db.rollback()
            errors.append({"upload_id": upload_id, "error": str(exc)})
            continue
        successful.append(
            {
                "upload_id": upload_id,
                "snapshots": snapshots,
                "aggregated": aggregate_snapshots(snapshots),
            }
        )

    return {"successful": successful, "failed": len(errors), "errors": errors}


async def get_snapshot_stats(db: AsyncSession, now: datetime | None = None) -> dict:
    try:
        return await snapshot_svc.get_snapshot_stats(db, now)
    except SQLAlchemyError as exc:
        logger.exception("Snapshot stats query failed")
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc


async def get_recent_uploads(
    db: AsyncSession, limit: int = 10
) -> list[tuple[Upload, MetricSnapshot | None]]:
    """Most recently published uploads with their latest snapshot."""
    stmt = snapshot_svc.join_latest_snapshot(select(Upload, MetricSnapshot).select_from(Upload))
    try:
        result = await db.execute(stmt.order_by(Upload.uploaded_at.desc()).limit(limit))
    except SQLAlchemyError as exc:
        logger.exception("Recent uploads query failed")
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc
    return [(row[0], row[1]) for row in result.all()]


async def get_platform_comparison(db: AsyncSession) -> list[dict]:
    """Per platform: upload count plus average and total of each latest counter."""
    columns = [Upload.platform, func.count(Upload.id)]
    for name in COUNTERS:
        column = getattr(MetricSnapshot, name)
        columns.append(func.coalesce(func.avg(column), 0))
        columns.append(func.coalesce(func.sum(column), 0))

    stmt = (
        snapshot_svc.join_latest_snapshot(select(*columns).select_from(Upload))
        .group_by(Upload.platform)
        .order_by(Upload.platform)
    )
    try:
        rows = (await db.execute(stmt)).all()
    except SQLAlchemyError as exc:
        logger.exception("Platform comparison query failed")
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc

    comparison = []
    for row in rows:
        entry = {"platform": row[0], "count": row[1]}
        for i, name in enumerate(COUNTERS):
            entry[f"avg_{name}"] = round(float(row[2 + i * 2]))
            entry[f"total_{name}"] = int(row[3 + i * 2])
        comparison.append(entry)
    return comparison


async def get_top_uploads(
    db: AsyncSession,
    limit: int = 10,
    platform: str | None = None,
    sort_by: str = "views",
    timeframe: Timeframe = Timeframe.ALL,
    now: datetime | None = None,
) -> list[tuple[Upload, MetricSnapshot]]:
    """Uploads ranked by a latest cumulative counter; uploads without metrics are skipped."""
    if sort_by not in COUNTERS:
        raise ValueError(f"Unknown metric: {sort_by}")

    latest = snapshot_svc.latest_timestamps()
    stmt = (
        select(Upload, MetricSnapshot)
        .select_from(Upload)
        .join(latest, latest.c.upload_id == Upload.id)
        .join(
            MetricSnapshot,
            (MetricSnapshot.upload_id == latest.c.upload_id)
            & (MetricSnapshot.timestamp == latest.c.timestamp),
        )
    )
    if platform:
        stmt = stmt.where(Upload.platform == platform)
    timeframe = Timeframe(timeframe)
    if timeframe is not Timeframe.ALL:
        since = (as_utc(now) if now else datetime.now(timezone.utc)) - timedelta(
            days=_TIMEFRAME_DAYS[timeframe]
        )
        stmt = stmt.where(Upload.uploaded_at >= since)
    stmt = stmt.order_by(getattr(MetricSnapshot, sort_by).desc()).limit(limit)

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Top uploads query failed")
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc
    return [(row[0], row[1]) for row in result.all()]


async def ensure_upload_exists(db: AsyncSession, upload_id: int) -> None:
    try:
        found = (
            await db.execute(select(Upload.id).where(Upload.id == upload_id))
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc
    if found is None:
        raise UploadNotFoundError(upload_id)


async def get_dashboard_stats(db: AsyncSession, now: datetime | None = None) -> dict:
    """Overview counts plus views and likes summed over each upload's latest snapshot."""
    today = range_start(TimeRange.TODAY, now)
    totals = snapshot_svc.join_latest_snapshot(
        select(
            func.count(Upload.id),
            func.count(func.distinct(Upload.video_id)),
            func.coalesce(func.sum(case((Upload.uploaded_at >= today, 1), else_=0)), 0),
            func.coalesce(func.avg(MetricSnapshot.views), 0),
            func.coalesce(func.sum(MetricSnapshot.views), 0),
            func.coalesce(func.sum(MetricSnapshot.likes), 0),
        ).select_from(Upload)
    )
    per_platform = (
        select(Upload.platform, func.count(Upload.id))
        .group_by(Upload.platform)
        .order_by(Upload.platform)
    )
    try:
        row = (await db.execute(totals)).one()
        platforms = (await db.execute(per_platform)).all()
    except SQLAlchemyError as exc:
        logger.exception("Dashboard stats query failed")
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc

    return {
        "total_uploads": row[0],
        "total_videos": row[1],
        "today_uploads": int(row[2]),
        "avg_views": round(float(row[3])),
        "total_views": int(row[4]),
        "total_likes": int(row[5]),
        "platforms": [{"platform": p, "count": c} for p, c in platforms],
    }
