"""Common interface of the platform adapters.

Every adapter does two things: publish a rendered video and read the
cumulative engagement counters of a published one. Metric reads return
zeros when the platform has nothing to report; transport failures
propagate once the retry policy gives up so the collector can log them
against the upload.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from simcast.core.config import Settings
from simcast.services.deltas import Counters

logger = logging.getLogger(__name__)


class Platform(StrEnum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"


@dataclass(frozen=True)
class UploadResult:
    success: bool
    platform_id: str | None = None
    url: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "UploadResult":
        return cls(success=False, error=error)


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)
async def send_request(method: str, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
    """Send one HTTP request, retrying transport-level failures only."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.request(method, url, **kwargs)


def safe_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class PlatformAdapter(ABC):
    platform: Platform

    def __init__(self, config: Settings):
        self.config = config

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await send_request(method, url, self.config.platform_http_timeout, **kwargs)

    def _unavailable(self, platform_id: str, reason: str) -> Counters:
        logger.warning(
            "%s metrics unavailable for %s: %s", self.platform.value, platform_id, reason
        )
        return Counters()

    @staticmethod
    async def _read_video(video_path: str) -> bytes:
        return await asyncio.to_thread(Path(video_path).read_bytes)

    def _public_video_url(self, video_path: str) -> str | None:
        """URL a pull-based platform fetches the rendered file from."""
        base_url = self.config.video_public_base_url
        if not base_url:
            return None
        return f"{base_url.rstrip('/')}/{Path(video_path).name}"

    @abstractmethod
    async def upload_video(
        self,
        video_path: str,
        title: str,
        description: str,
        tags: list[str] | None = None,
    ) -> UploadResult:
        raise NotImplementedError

    @abstractmethod
    async def get_video_metrics(self, platform_id: str) -> Counters:
        raise NotImplementedError
