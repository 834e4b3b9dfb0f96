import logging

import httpx

from simcast.services.deltas import Counters
from simcast.services.platforms.base import Platform, PlatformAdapter, UploadResult, safe_int

logger = logging.getLogger(__name__)

# "Science & Technology"
_CATEGORY_ID = "28"


class YouTubeAdapter(PlatformAdapter):
    platform = Platform.YOUTUBE

    async def upload_video(
        self,
        video_path: str,
        title: str,
        description: str,
        tags: list[str] | None = None,
    ) -> UploadResult:
        """Resumable upload: open a session, then PUT the whole file."""
        if not self.config.youtube_access_token:
            return UploadResult.failed("YouTube access token is not configured")

        headers = {
            "Authorization": f"Bearer {self.config.youtube_access_token}",
            "X-Upload-Content-Type": "video/mp4",
        }
        metadata = {
            "snippet": {
                "title": title[:100],
                "description": description,
                "tags": tags or [],
                "categoryId": _CATEGORY_ID,
            },
            "status": {"privacyStatus": "public", "selfDeclaredMadeForKids": False},
        }
        try:
            content = await self._read_video(video_path)
            session = await self._send(
                "POST",
                f"{self.config.youtube_upload_base_url}/videos",
                params={"uploadType": "resumable", "part": "snippet,status"},
                headers=headers,
                json=metadata,
            )
            location = session.headers.get("Location")
            if not session.is_success or not location:
                return UploadResult.failed(f"Upload session rejected: HTTP {session.status_code}")

            resp = await self._send(
                "PUT",
                location,
                headers={"Authorization": headers["Authorization"], "Content-Type": "video/mp4"},
                content=content,
            )
            if not resp.is_success:
                return UploadResult.failed(f"Upload failed: HTTP {resp.status_code}")
            video_id = resp.json().get("id")
        except (httpx.HTTPError, OSError, ValueError) as exc:
            logger.exception("YouTube upload failed for %s", video_path)
            return UploadResult.failed(str(exc))

        if not video_id:
            return UploadResult.failed("Upload response missing video ID")
        return UploadResult(
            success=True,
            platform_id=video_id,
            url=f"https://www.youtube.com/shorts/{video_id}",
        )

    async def get_video_metrics(self, platform_id: str) -> Counters:
        resp = await self._send(
            "GET",
            f"{self.config.youtube_api_base_url}/videos",
            params={"part": "statistics", "id": platform_id, "key": self.config.youtube_api_key},
        )
        if not resp.is_success:
            return self._unavailable(platform_id, f"HTTP {resp.status_code}")

        try:
            items = resp.json().get("items") or []
            if not items:
                return self._unavailable(platform_id, "video not found")
            stats = items[0].get("statistics") or {}
            return Counters(
                views=safe_int(stats.get("viewCount")),
                likes=safe_int(stats.get("likeCount")),
                comments=safe_int(stats.get("commentCount")),
                shares=0,  # not exposed by the Data API
            )
        except (ValueError, KeyError, AttributeError, TypeError):
            return self._unavailable(platform_id, "malformed response")
