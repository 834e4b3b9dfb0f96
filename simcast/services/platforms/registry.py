"""Lookup of platform adapters by platform name."""

from collections.abc import Mapping

from simcast.core.config import Settings, settings
from simcast.services.errors import UnsupportedPlatformError
from simcast.services.platforms.base import Platform, PlatformAdapter
from simcast.services.platforms.instagram import InstagramAdapter
from simcast.services.platforms.tiktok import TikTokAdapter
from simcast.services.platforms.youtube import YouTubeAdapter

ADAPTER_CLASSES: dict[Platform, type[PlatformAdapter]] = {
    Platform.YOUTUBE: YouTubeAdapter,
    Platform.TIKTOK: TikTokAdapter,
    Platform.INSTAGRAM: InstagramAdapter,
}


class AdapterRegistry:
    def __init__(self, adapters: Mapping[Platform, PlatformAdapter]):
        self._adapters = dict(adapters)

    @property
    def platforms(self) -> list[Platform]:
        return list(self._adapters)

    def get(self, platform: str) -> PlatformAdapter:
        try:
            key = Platform(platform.lower())
        except ValueError:
            raise UnsupportedPlatformError(platform) from None
        adapter = self._adapters.get(key)
        if adapter is None:
            raise UnsupportedPlatformError(platform)
        return adapter


def build_registry(config: Settings = settings) -> AdapterRegistry:
    return AdapterRegistry({p: cls(config) for p, cls in ADAPTER_CLASSES.items()})
