"""Celery tasks for the snapshot pipeline.

- collect_hourly_snapshots: periodic, every published upload
- collect_upload_snapshot: on demand, right after a video is published
- cleanup_old_snapshots: daily retention sweep
"""

import logging

from simcast.core.cache import invalidate_metrics_cache
from simcast.core.config import settings
from simcast.db.session import async_session_factory
from simcast.services.collector import HourlyCollector
from simcast.services.platforms.registry import build_registry
from simcast.workers import celery_app, worker_loop

logger = logging.getLogger(__name__)


@celery_app.task(name="collect_hourly_snapshots", bind=True, max_retries=2, default_retry_delay=120)
def collect_hourly_snapshots(self) -> dict:
    """Periodic task: snapshot every published upload for the current UTC hour."""
    try:
        return worker_loop().run_until_complete(_collect_hourly())
    except Exception as exc:
        # Only reached when the upload listing itself fails; per-upload errors are absorbed
        logger.exception("collect_hourly_snapshots failed")
        raise self.retry(exc=exc)


@celery_app.task(name="collect_upload_snapshot", bind=True, max_retries=3, default_retry_delay=60)
def collect_upload_snapshot(self, upload_id: int) -> bool:
    """On-demand task: snapshot a single upload (first reading after publish)."""
    try:
        return worker_loop().run_until_complete(_collect_upload(upload_id))
    except Exception as exc:
        logger.exception("collect_upload_snapshot failed for upload %d", upload_id)
        raise self.retry(exc=exc)


@celery_app.task(name="cleanup_old_snapshots", bind=True, max_retries=3, default_retry_delay=300)
def cleanup_old_snapshots(self) -> int:
    """Daily task: delete snapshots older than the retention horizon."""
    try:
        return worker_loop().run_until_complete(_cleanup())
    except Exception as exc:
        logger.exception("cleanup_old_snapshots failed")
        raise self.retry(exc=exc)


def _collector() -> HourlyCollector:
    return HourlyCollector(
        session_factory=async_session_factory,
        registry=build_registry(settings),
        fetch_timeout=settings.metrics_fetch_timeout_seconds,
    )


async def _collect_hourly() -> dict:
    report = await _collector().collect_hourly_snapshots()
    await invalidate_metrics_cache()
    return {"created": report.created, "updated": report.updated, "failed": report.failed}


async def _collect_upload(upload_id: int) -> bool:
    created = await _collector().collect_upload_by_id(upload_id)
    await invalidate_metrics_cache()
    return created


async def _cleanup() -> int:
    from simcast.services.retention import cleanup_old_snapshots as sweep

    async with async_session_factory() as db:
        deleted = await sweep(db)
    await invalidate_metrics_cache()
    return deleted
