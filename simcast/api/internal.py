from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.api.schemas import PublishRequest, UploadResponse
from simcast.core.deps import get_db, get_registry
from simcast.services.platforms.registry import AdapterRegistry
from simcast.services.publishing import publish_video

router = APIRouter(prefix="/internal", tags=["internal"])


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def publish_upload(
    body: PublishRequest,
    db: AsyncSession = Depends(get_db),
    registry: AdapterRegistry = Depends(get_registry),
) -> UploadResponse:
    """Internal endpoint for the daily publishing job.

    Uploads the rendered video and records the result; a failed upload is
    still returned (status ``failed``) so the caller can inspect the error.
    Should only be accessible from the internal network.
    """
    upload = await publish_video(
        db,
        registry,
        video_id=body.video_id,
        platform=body.platform,
        video_path=body.video_path,
        title=body.title,
        description=body.description,
        tags=body.tags,
    )
    return UploadResponse.model_validate(upload)
