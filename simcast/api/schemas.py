from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from simcast.services.analytics import TimeRange

MetricName = Literal["views", "likes", "comments", "shares"]


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


class UploadResponse(BaseModel):
    id: int
    video_id: str
    platform: str
    platform_id: str | None
    url: str | None
    title: str | None
    status: str
    error: str | None
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class PublishRequest(BaseModel):
    video_id: str
    platform: str
    video_path: str
    title: str = Field(max_length=255)
    description: str = ""
    tags: list[str] = []


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class SnapshotPoint(BaseModel):
    timestamp: datetime
    views: int
    likes: int
    comments: int
    shares: int

    model_config = {"from_attributes": True}


class UploadWithMetricsResponse(BaseModel):
    upload: UploadResponse
    latest: SnapshotPoint | None

    @classmethod
    def from_row(cls, upload, snapshot) -> "UploadWithMetricsResponse":
        return cls(
            upload=UploadResponse.model_validate(upload),
            latest=SnapshotPoint.model_validate(snapshot) if snapshot is not None else None,
        )


class SeriesPoint(BaseModel):
    date: str
    value: int


class TimeRangeMetricsResponse(BaseModel):
    upload_id: int
    range: TimeRange
    data: list[SnapshotPoint]


class Growth(BaseModel):
    views: int
    likes: int
    comments: int
    shares: int


class AggregatedMetrics(BaseModel):
    total_views: int
    total_likes: int
    total_comments: int
    total_shares: int
    growth: Growth


class AggregatedMetricsResponse(AggregatedMetrics):
    upload_id: int
    range: TimeRange


class LatestMetricsResponse(BaseModel):
    upload_id: int
    has_data: bool
    metrics: SnapshotPoint | None = None
    message: str | None = None


class BulkMetricsRequest(BaseModel):
    upload_ids: list[int] = Field(min_length=1, max_length=100)
    range: TimeRange = TimeRange.TODAY


class BulkMetricsItem(BaseModel):
    upload_id: int
    time_range_data: list[SnapshotPoint]
    aggregated: AggregatedMetrics


class BulkMetricsError(BaseModel):
    upload_id: int
    error: str


class BulkMetricsResponse(BaseModel):
    range: TimeRange
    successful: list[BulkMetricsItem]
    failed: int
    errors: list[BulkMetricsError]


class SnapshotStatsResponse(BaseModel):
    total: int
    today: int
    oldest: datetime | None
    last_updated: datetime


class PlatformComparisonItem(BaseModel):
    platform: str
    count: int
    avg_views: int
    avg_likes: int
    avg_comments: int
    avg_shares: int
    total_views: int
    total_likes: int
    total_comments: int
    total_shares: int


class PlatformCount(BaseModel):
    platform: str
    count: int


class DashboardStatsResponse(BaseModel):
    total_uploads: int
    total_videos: int
    today_uploads: int
    avg_views: int
    total_views: int
    total_likes: int
    platforms: list[PlatformCount]


class TrendPoint(BaseModel):
    date: str
    views: int
    likes: int
    comments: int
    shares: int
    upload_count: int


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class CollectResponse(BaseModel):
    success: bool
    message: str
    task_id: str
    timestamp: datetime


class CleanupResponse(BaseModel):
    success: bool
    message: str
    deleted: int
    timestamp: datetime
