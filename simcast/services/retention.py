import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.config import settings
from simcast.services import snapshots as snapshot_svc

logger = logging.getLogger(__name__)


def retention_cutoff(now: datetime | None = None, retention_days: int | None = None) -> datetime:
    days = settings.snapshot_retention_days if retention_days is None else retention_days
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


async def cleanup_old_snapshots(
    db: AsyncSession,
    now: datetime | None = None,
    retention_days: int | None = None,
) -> int:
    """Delete snapshots captured before the retention horizon. Returns rows deleted.

    Deleting by age is idempotent, so a failed run is simply retried.
    """
    cutoff = retention_cutoff(now, retention_days)
    try:
        deleted = await snapshot_svc.delete_snapshots_before(db, cutoff)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to delete metric snapshots older than %s", cutoff.isoformat())
        raise

    logger.info("Deleted %d metric snapshots older than %s", deleted, cutoff.isoformat())
    return deleted
