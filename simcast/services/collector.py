"""Hourly metrics collection.

For every published upload: fetch the platform's cumulative counters,
reconcile them against the last snapshot before the current UTC hour and
upsert that hour's snapshot. Each upload is fetched under its own timeout
and written in its own transaction; one upload failing never stops the run.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from simcast.models.upload import Upload
from simcast.services import snapshots as snapshot_svc
from simcast.services import uploads as uploads_svc
from simcast.services.buckets import as_utc, hour_bucket
from simcast.services.deltas import Counters, reconcile
from simcast.services.platforms.registry import AdapterRegistry

logger = logging.getLogger(__name__)


@dataclass
class CollectionReport:
    created: int = 0
    updated: int = 0
    failed: int = 0

    @property
    def collected(self) -> int:
        return self.created + self.updated


class HourlyCollector:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        fetch_timeout: float,
    ):
        self._session_factory = session_factory
        self._registry = registry
        self._fetch_timeout = fetch_timeout

    async def collect_hourly_snapshots(self, now: datetime | None = None) -> CollectionReport:
        """Collect the current hour's snapshot for every published upload."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        async with self._session_factory() as db:
            uploads = await uploads_svc.list_published_uploads(db)

        logger.info("Collecting hourly snapshots for %d uploads", len(uploads))
        report = CollectionReport()
        for upload in uploads:
            try:
                created = await self.collect_upload(upload, now)
            except Exception:
                report.failed += 1
                continue
            if created:
                report.created += 1
            else:
                report.updated += 1

        logger.info(
            "Hourly snapshot collection finished: %d created, %d updated, %d failed",
            report.created,
            report.updated,
            report.failed,
        )
        return report

    async def collect_upload_by_id(self, upload_id: int, now: datetime | None = None) -> bool:
        async with self._session_factory() as db:
            upload = await uploads_svc.get_upload(db, upload_id)
        return await self.collect_upload(upload, as_utc(now) if now else datetime.now(timezone.utc))

    async def collect_upload(self, upload: Upload, now: datetime) -> bool:
        """Fetch, reconcile and upsert one upload. Returns True if a new row was created.

        Failures are logged with the upload context and re-raised.
        """
        context = {"upload_id": upload.id, "platform": upload.platform}
        try:
            current = await self._fetch(upload)
            bucket = hour_bucket(now)
            async with self._session_factory() as db:
                async with db.begin():
                    await snapshot_svc.lock_upload(db, upload.id)
                    baseline = await snapshot_svc.get_baseline(db, upload.id, bucket.start)
                    deltas = reconcile(current, Counters.from_snapshot(baseline))
                    _, created = await snapshot_svc.upsert_snapshot(
                        db, upload.id, bucket, current, deltas, now
                    )
        except TimeoutError:
            logger.warning(
                "Metrics fetch timed out for upload %s (%s) after %ss",
                upload.id,
                upload.platform,
                self._fetch_timeout,
                extra=context,
            )
            raise
        except Exception:
            logger.exception(
                "Failed to collect metrics for upload %s (%s)",
                upload.id,
                upload.platform,
                extra=context,
            )
            raise

        logger.info(
            "%s snapshot for upload %s (hour %02d UTC)",
            "Created" if created else "Updated",
            upload.id,
            bucket.hour,
            extra=context,
        )
        return created

    async def _fetch(self, upload: Upload) -> Counters:
        adapter = self._registry.get(upload.platform)
        return await asyncio.wait_for(
            adapter.get_video_metrics(upload.platform_id),
            timeout=self._fetch_timeout,
        )
