"""Snapshot store: every read and write of metric_snapshots goes through here."""

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Select, and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.models.metric_snapshot import MetricSnapshot
from simcast.models.upload import Upload
from simcast.services.buckets import HourBucket, start_of_day
from simcast.services.deltas import Counters, Deltas


async def lock_upload(db: AsyncSession, upload_id: int) -> Upload | None:
    """Row-lock the upload so concurrent collections of it serialize."""
    result = await db.execute(
        select(Upload).where(Upload.id == upload_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def get_baseline(
    db: AsyncSession, upload_id: int, before: datetime
) -> MetricSnapshot | None:
    """Most recent snapshot of the upload captured strictly before ``before``."""
    result = await db.execute(
        select(MetricSnapshot)
        .where(
            MetricSnapshot.upload_id == upload_id,
            MetricSnapshot.timestamp < before,
        )
        .order_by(MetricSnapshot.timestamp.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_bucket_snapshot(
    db: AsyncSession, upload_id: int, bucket: HourBucket
) -> MetricSnapshot | None:
    result = await db.execute(
        select(MetricSnapshot).where(
            MetricSnapshot.upload_id == upload_id,
            MetricSnapshot.year == bucket.year,
            MetricSnapshot.day_of_year == bucket.day_of_year,
            MetricSnapshot.hour == bucket.hour,
        )
    )
    return result.scalar_one_or_none()


async def upsert_snapshot(
    db: AsyncSession,
    upload_id: int,
    bucket: HourBucket,
    counters: Counters,
    deltas: Deltas,
    captured_at: datetime,
) -> tuple[MetricSnapshot, bool]:
    """Create or refresh the single snapshot of ``upload_id`` for ``bucket``.

    Returns the row and whether it was created. The caller owns the
    transaction; this only flushes.
    """
    snapshot = await get_bucket_snapshot(db, upload_id, bucket)
    created = snapshot is None
    if created:
        snapshot = MetricSnapshot(
            upload_id=upload_id,
            year=bucket.year,
            day_of_year=bucket.day_of_year,
            hour=bucket.hour,
        )
        db.add(snapshot)

    snapshot.timestamp = captured_at
    for field, value in counters.as_dict().items():
        setattr(snapshot, field, value)
    for field, value in deltas.as_dict().items():
        setattr(snapshot, field, value)

    await db.flush()
    return snapshot, created


async def get_latest_snapshot(
    db: AsyncSession, upload_id: int, since: datetime | None = None
) -> MetricSnapshot | None:
    stmt = select(MetricSnapshot).where(MetricSnapshot.upload_id == upload_id)
    if since is not None:
        stmt = stmt.where(MetricSnapshot.timestamp >= since)
    result = await db.execute(stmt.order_by(MetricSnapshot.timestamp.desc()).limit(1))
    return result.scalar_one_or_none()


async def get_upload_snapshots(
    db: AsyncSession, upload_id: int, since: datetime
) -> list[MetricSnapshot]:
    """Snapshots of one upload captured at or after ``since``, oldest first."""
    result = await db.execute(
        select(MetricSnapshot)
        .where(
            MetricSnapshot.upload_id == upload_id,
            MetricSnapshot.timestamp >= since,
        )
        .order_by(MetricSnapshot.timestamp.asc())
    )
    return list(result.scalars().all())


async def get_window_snapshots(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    platform: str | None = None,
) -> list[MetricSnapshot]:
    """All snapshots captured in ``[start, end]``, optionally for one platform."""
    stmt = select(MetricSnapshot).where(
        MetricSnapshot.timestamp >= start,
        MetricSnapshot.timestamp <= end,
    )
    if platform:
        stmt = stmt.join(Upload, Upload.id == MetricSnapshot.upload_id).where(
            Upload.platform == platform
        )
    result = await db.execute(stmt.order_by(MetricSnapshot.timestamp.asc()))
    return list(result.scalars().all())


def latest_timestamps(before: datetime | None = None):
    """Subquery of (upload_id, timestamp) for each upload's latest snapshot."""
    stmt = select(
        MetricSnapshot.upload_id.label("upload_id"),
        func.max(MetricSnapshot.timestamp).label("timestamp"),
    )
    if before is not None:
        stmt = stmt.where(MetricSnapshot.timestamp < before)
    return stmt.group_by(MetricSnapshot.upload_id).subquery()


def join_latest_snapshot(stmt: Select, before: datetime | None = None) -> Select:
    """Outer-join each Upload row in ``stmt`` to its latest MetricSnapshot."""
    latest = latest_timestamps(before)
    return stmt.outerjoin(latest, latest.c.upload_id == Upload.id).outerjoin(
        MetricSnapshot,
        and_(
            MetricSnapshot.upload_id == latest.c.upload_id,
            MetricSnapshot.timestamp == latest.c.timestamp,
        ),
    )


async def get_latest_before(
    db: AsyncSession, upload_ids: Iterable[int], before: datetime
) -> dict[int, MetricSnapshot]:
    """Per upload, the latest snapshot captured strictly before ``before``."""
    upload_ids = sorted(set(upload_ids))
    if not upload_ids:
        return {}
    latest = latest_timestamps(before)
    result = await db.execute(
        select(MetricSnapshot)
        .join(
            latest,
            and_(
                MetricSnapshot.upload_id == latest.c.upload_id,
                MetricSnapshot.timestamp == latest.c.timestamp,
            ),
        )
        .where(MetricSnapshot.upload_id.in_(upload_ids))
    )
    return {s.upload_id: s for s in result.scalars().all()}


async def delete_snapshots_before(db: AsyncSession, cutoff: datetime) -> int:
    result = await db.execute(
        delete(MetricSnapshot).where(MetricSnapshot.timestamp < cutoff)
    )
    return result.rowcount or 0


async def get_snapshot_stats(db: AsyncSession, now: datetime | None = None) -> dict:
    """Diagnostic counts for monitoring the collector."""
    now = now or datetime.now(timezone.utc)

    total = (await db.execute(select(func.count(MetricSnapshot.id)))).scalar() or 0
    today = (
        await db.execute(
            select(func.count(MetricSnapshot.id)).where(
                MetricSnapshot.timestamp >= start_of_day(now)
            )
        )
    ).scalar() or 0
    oldest = (await db.execute(select(func.min(MetricSnapshot.timestamp)))).scalar()

    return {"total": total, "today": today, "oldest": oldest}


async def get_snapshots_missing_deltas(db: AsyncSession) -> list[MetricSnapshot]:
    """Rows written before delta precomputation, ordered per upload by time."""
    result = await db.execute(
        select(MetricSnapshot)
        .where(
            (MetricSnapshot.views_delta.is_(None))
            | (MetricSnapshot.likes_delta.is_(None))
            | (MetricSnapshot.comments_delta.is_(None))
            | (MetricSnapshot.shares_delta.is_(None))
        )
        .order_by(MetricSnapshot.upload_id.asc(), MetricSnapshot.timestamp.asc())
    )
    return list(result.scalars().all())
