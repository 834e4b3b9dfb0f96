import logging

import httpx

from simcast.services.deltas import Counters
from simcast.services.platforms.base import Platform, PlatformAdapter, UploadResult, safe_int

logger = logging.getLogger(__name__)

# Insights metric names; "reach" stands in for views on Reels
_INSIGHT_METRICS = "reach,likes,comments,shares"


class InstagramAdapter(PlatformAdapter):
    platform = Platform.INSTAGRAM

    def _base(self) -> str:
        return self.config.instagram_api_base_url

    async def upload_video(
        self,
        video_path: str,
        title: str,
        description: str,
        tags: list[str] | None = None,
    ) -> UploadResult:
        """Create a Reels container from a public URL, then publish it."""
        video_url = self._public_video_url(video_path)
        if video_url is None:
            return UploadResult.failed("video_public_base_url is not configured")

        account = self.config.instagram_account_id
        token = self.config.instagram_access_token
        caption = "\n\n".join(
            part for part in (title, description, " ".join(f"#{t}" for t in tags or [])) if part
        )
        try:
            container = await self._send(
                "POST",
                f"{self._base()}/{account}/media",
                params={
                    "media_type": "REELS",
                    "video_url": video_url,
                    "caption": caption,
                    "access_token": token,
                },
            )
            if not container.is_success:
                return UploadResult.failed(f"Container creation failed: HTTP {container.status_code}")
            creation_id = container.json().get("id")
            if not creation_id:
                return UploadResult.failed("Container response missing ID")

            published = await self._send(
                "POST",
                f"{self._base()}/{account}/media_publish",
                params={"creation_id": creation_id, "access_token": token},
            )
            if not published.is_success:
                return UploadResult.failed(f"Publishing failed: HTTP {published.status_code}")
            media_id = published.json().get("id")
            if not media_id:
                return UploadResult.failed("Publish response missing media ID")

            permalink = await self._send(
                "GET",
                f"{self._base()}/{media_id}",
                params={"fields": "permalink", "access_token": token},
            )
            url = permalink.json().get("permalink") if permalink.is_success else None
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Instagram upload failed for %s", video_path)
            return UploadResult.failed(str(exc))

        return UploadResult(success=True, platform_id=media_id, url=url)

    async def get_video_metrics(self, platform_id: str) -> Counters:
        resp = await self._send(
            "GET",
            f"{self._base()}/{platform_id}/insights",
            params={
                "metric": _INSIGHT_METRICS,
                "access_token": self.config.instagram_access_token,
            },
        )
        if not resp.is_success:
            return self._unavailable(platform_id, f"HTTP {resp.status_code}")

        try:
            data = resp.json().get("data") or []
            values = {
                item["name"]: (item.get("values") or [{}])[0].get("value")
                for item in data
            }
        except (ValueError, KeyError, AttributeError, TypeError):
            return self._unavailable(platform_id, "malformed response")
        if not values:
            return self._unavailable(platform_id, "no insights")

        return Counters(
            views=safe_int(values.get("reach")),
            likes=safe_int(values.get("likes")),
            comments=safe_int(values.get("comments")),
            shares=safe_int(values.get("shares")),
        )
