from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.models.upload import Upload, UploadStatus
from simcast.services.errors import UploadNotFoundError


async def list_published_uploads(db: AsyncSession) -> list[Upload]:
    """All uploads whose metrics should be collected, oldest first."""
    result = await db.execute(
        select(Upload)
        .where(Upload.status == UploadStatus.PUBLISHED)
        .order_by(Upload.id.asc())
    )
    return list(result.scalars().all())


async def get_upload(db: AsyncSession, upload_id: int) -> Upload:
    result = await db.execute(select(Upload).where(Upload.id == upload_id))
    upload = result.scalar_one_or_none()
    if upload is None:
        raise UploadNotFoundError(upload_id)
    return upload
