"""Exceptions shared by the metrics services and mapped to HTTP errors in main.py."""


class PlatformError(Exception):
    """Raised when a platform adapter cannot complete a request."""


class UnsupportedPlatformError(PlatformError):
    """Raised when no adapter is registered for a platform name."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


class UploadNotFoundError(Exception):
    def __init__(self, upload_id: int):
        self.upload_id = upload_id
        super().__init__(f"Upload {upload_id} not found")


class MetricsQueryError(Exception):
    """Raised when a dashboard read cannot be served from the snapshot store.

    Read paths never return partial series; the caller gets this error instead.
    """
