import asyncio
import logging

import httpx

from simcast.services.deltas import Counters
from simcast.services.platforms.base import Platform, PlatformAdapter, UploadResult, safe_int

logger = logging.getLogger(__name__)

_METRIC_FIELDS = "id,view_count,like_count,comment_count,share_count"


class TikTokAdapter(PlatformAdapter):
    platform = Platform.TIKTOK

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.tiktok_access_token}",
            "Content-Type": "application/json; charset=UTF-8",
        }

    async def upload_video(
        self,
        video_path: str,
        title: str,
        description: str,
        tags: list[str] | None = None,
    ) -> UploadResult:
        """Direct post via PULL_FROM_URL; TikTok fetches the file itself.

        The init call only returns a publish id. The video id the query API
        needs is read from the publish status once TikTok has posted it.
        """
        video_url = self._public_video_url(video_path)
        if video_url is None:
            return UploadResult.failed("video_public_base_url is not configured")

        caption = " ".join([title, *(f"#{tag}" for tag in tags or [])])
        body = {
            "post_info": {"title": caption[:2200], "privacy_level": "PUBLIC_TO_EVERYONE"},
            "source_info": {"source": "PULL_FROM_URL", "video_url": video_url},
        }
        try:
            resp = await self._send(
                "POST",
                f"{self.config.tiktok_api_base_url}/post/publish/video/init/",
                headers=self._headers(),
                json=body,
            )
            if not resp.is_success:
                return UploadResult.failed(f"Upload failed: HTTP {resp.status_code}")
            publish_id = (resp.json().get("data") or {}).get("publish_id")
            if not publish_id:
                return UploadResult.failed("Upload response missing publish ID")
            return await self._wait_for_post(publish_id)
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as exc:
            logger.exception("TikTok upload failed for %s", video_path)
            return UploadResult.failed(str(exc))

    async def _wait_for_post(self, publish_id: str) -> UploadResult:
        """Poll the publish status until TikTok reports the public video id."""
        for attempt in range(1, self.config.tiktok_publish_poll_attempts + 1):
            resp = await self._send(
                "POST",
                f"{self.config.tiktok_api_base_url}/post/publish/status/fetch/",
                headers=self._headers(),
                json={"publish_id": publish_id},
            )
            if not resp.is_success:
                return UploadResult.failed(f"Publish status failed: HTTP {resp.status_code}")

            data = resp.json().get("data") or {}
            status = data.get("status")
            if status == "FAILED":
                return UploadResult.failed(
                    f"Publish {publish_id} failed: {data.get('fail_reason') or 'unknown reason'}"
                )
            # TikTok spells it this way
            post_ids = data.get("publicaly_available_post_id") or []
            if post_ids:
                video_id = str(post_ids[0])
                return UploadResult(
                    success=True,
                    platform_id=video_id,
                    url=f"https://www.tiktok.com/video/{video_id}",
                )

            logger.info(
                "TikTok publish %s is %s (attempt=%d)", publish_id, status, attempt
            )
            await asyncio.sleep(self.config.tiktok_publish_poll_interval)

        return UploadResult.failed(f"Publish {publish_id} has no video ID yet")

    async def get_video_metrics(self, platform_id: str) -> Counters:
        resp = await self._send(
            "POST",
            f"{self.config.tiktok_api_base_url}/video/query/",
            params={"fields": _METRIC_FIELDS},
            headers=self._headers(),
            json={"filters": {"video_ids": [platform_id]}},
        )
        if not resp.is_success:
            return self._unavailable(platform_id, f"HTTP {resp.status_code}")

        try:
            videos = (resp.json().get("data") or {}).get("videos") or []
            if not videos:
                return self._unavailable(platform_id, "video not found")
            video = videos[0]
            return Counters(
                views=safe_int(video.get("view_count")),
                likes=safe_int(video.get("like_count")),
                comments=safe_int(video.get("comment_count")),
                shares=safe_int(video.get("share_count")),
            )
        except (ValueError, KeyError, AttributeError, TypeError):
            return self._unavailable(platform_id, "malformed response")
