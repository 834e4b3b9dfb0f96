"""Bucketed metric series for dashboard charts.

A window of ``days`` ending now is split into hourly buckets when
``days <= 1`` and UTC calendar days otherwise. The grid covers both
boundary buckets, so a one-day window yields 25 hourly buckets and a
seven-day window 8 daily buckets. Every bucket is present, zero-valued
when nothing happened in it.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.models.metric_snapshot import MetricSnapshot
from simcast.services import snapshots as snapshot_svc
from simcast.services.buckets import as_utc, bucket_key, bucket_keys
from simcast.services.deltas import COUNTERS, counter_delta
from simcast.services.errors import MetricsQueryError

logger = logging.getLogger(__name__)


def is_hourly(days: float) -> bool:
    return days <= 1


def has_precomputed_deltas(snapshots: Iterable[MetricSnapshot], metric: str) -> bool:
    field = f"{metric}_delta"
    return all(getattr(s, field) is not None for s in snapshots)


def build_series(
    snapshots: list[MetricSnapshot],
    seeds: Mapping[int, MetricSnapshot],
    start: datetime,
    end: datetime,
    metric: str,
    hourly: bool,
) -> list[dict]:
    """Sum per-snapshot increments of ``metric`` into a gap-free bucket grid.

    ``seeds`` maps upload id to its latest snapshot before ``start``; it is
    only consulted when some snapshot lacks a stored delta, in which case
    increments are recomputed from the cumulative values.
    """
    buckets: dict[str, dict[str, int]] = {
        key: {"value": 0, "count": 0} for key in bucket_keys(start, end, hourly)
    }

    def add(moment: datetime, value: int) -> None:
        bucket = buckets.setdefault(bucket_key(moment, hourly), {"value": 0, "count": 0})
        bucket["value"] += value
        bucket["count"] += 1

    if has_precomputed_deltas(snapshots, metric):
        field = f"{metric}_delta"
        for snapshot in snapshots:
            add(snapshot.timestamp, getattr(snapshot, field))
    else:
        by_upload: dict[int, list[MetricSnapshot]] = defaultdict(list)
        for snapshot in snapshots:
            by_upload[snapshot.upload_id].append(snapshot)

        for upload_id, rows in by_upload.items():
            rows.sort(key=lambda s: s.timestamp)
            seed = seeds.get(upload_id)
            previous = getattr(seed, metric) if seed is not None else 0
            for snapshot in rows:
                current = getattr(snapshot, metric)
                add(snapshot.timestamp, counter_delta(current, previous))
                previous = current

    return [{"date": key, "value": buckets[key]["value"]} for key in sorted(buckets)]


async def get_metrics_over_time(
    db: AsyncSession,
    days: int,
    platform: str | None = None,
    metric: str = "views",
    now: datetime | None = None,
) -> list[dict]:
    """Ordered ``{"date", "value"}`` series of ``metric`` increments over the last ``days``."""
    if metric not in COUNTERS:
        raise ValueError(f"Unknown metric: {metric}")

    end = as_utc(now) if now else datetime.now(timezone.utc)
    start = end - timedelta(days=days)

    try:
        snapshots = await snapshot_svc.get_window_snapshots(db, start, end, platform)
        seeds: dict[int, MetricSnapshot] = {}
        if not has_precomputed_deltas(snapshots, metric):
            seeds = await snapshot_svc.get_latest_before(
                db, (s.upload_id for s in snapshots), start
            )
    except SQLAlchemyError as exc:
        logger.exception(
            "Metrics series query failed (days=%s, platform=%s, metric=%s)", days, platform, metric
        )
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc

    return build_series(snapshots, seeds, start, end, metric, is_hourly(days))


async def get_metrics_trend(
    db: AsyncSession,
    days: int = 7,
    platform: str | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Per UTC day: increments of every counter plus how many uploads reported."""
    end = as_utc(now) if now else datetime.now(timezone.utc)
    start = end - timedelta(days=days)

    try:
        snapshots = await snapshot_svc.get_window_snapshots(db, start, end, platform)
        seeds: dict[int, MetricSnapshot] = {}
        if not all(has_precomputed_deltas(snapshots, metric) for metric in COUNTERS):
            seeds = await snapshot_svc.get_latest_before(
                db, (s.upload_id for s in snapshots), start
            )
    except SQLAlchemyError as exc:
        logger.exception("Metrics trend query failed (days=%s, platform=%s)", days, platform)
        raise MetricsQueryError("Metrics are temporarily unavailable") from exc

    uploads_per_day: dict[str, set[int]] = defaultdict(set)
    for snapshot in snapshots:
        uploads_per_day[bucket_key(snapshot.timestamp, False)].add(snapshot.upload_id)

    trend: dict[str, dict] = {}
    for metric in COUNTERS:
        for point in build_series(snapshots, seeds, start, end, metric, hourly=False):
            day = trend.setdefault(
                point["date"],
                {"date": point["date"], "upload_count": len(uploads_per_day[point["date"]])},
            )
            day[metric] = point["value"]
    return [trend[key] for key in sorted(trend)]
