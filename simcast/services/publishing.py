"""Publishing handoff: push a rendered video to a platform and record the Upload.

A successful publish immediately queues the first metrics snapshot so the
upload shows up on the dashboard without waiting for the next hourly run.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from simcast.models.upload import Upload, UploadStatus
from simcast.services.platforms.registry import AdapterRegistry

logger = logging.getLogger(__name__)


async def publish_video(
    db: AsyncSession,
    registry: AdapterRegistry,
    video_id: str,
    platform: str,
    video_path: str,
    title: str,
    description: str = "",
    tags: list[str] | None = None,
) -> Upload:
    adapter = registry.get(platform)
    result = await adapter.upload_video(video_path, title, description, tags)

    published = result.success and bool(result.platform_id)
    upload = Upload(
        video_id=video_id,
        platform=adapter.platform.value,
        platform_id=result.platform_id,
        url=result.url,
        title=title,
        status=UploadStatus.PUBLISHED if published else UploadStatus.FAILED,
        error=None if published else (result.error or "Upload returned no platform ID"),
    )
    db.add(upload)
    await db.commit()
    await db.refresh(upload)

    if not published:
        logger.warning(
            "Upload of video %s to %s failed: %s", video_id, upload.platform, upload.error
        )
        return upload

    logger.info(
        "Published video %s to %s as %s", video_id, upload.platform, upload.platform_id
    )

    from simcast.workers.tasks import collect_upload_snapshot

    try:
        collect_upload_snapshot.delay(upload.id)
    except Exception:
        # Broker outage: the hourly run still picks the upload up
        logger.exception("Failed to queue first snapshot for upload %s", upload.id)

    return upload
