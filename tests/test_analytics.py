"""Tests for dashboard read models."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from simcast.models.metric_snapshot import MetricSnapshot
from simcast.services import analytics
from simcast.services.analytics import TimeRange, aggregate_snapshots, range_start
from simcast.services.errors import MetricsQueryError, UploadNotFoundError

NOW = datetime(2025, 1, 3, 15, 20, tzinfo=timezone.utc)


def _snap(views: int, likes: int = 0, comments: int = 0, shares: int = 0) -> MetricSnapshot:
    return MetricSnapshot(
        upload_id=1, timestamp=NOW, views=views, likes=likes, comments=comments, shares=shares
    )


def _db_error() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("connection refused"))


class TestRangeStart:
    def test_today_is_utc_midnight(self):
        assert range_start(TimeRange.TODAY, NOW) == datetime(2025, 1, 3, tzinfo=timezone.utc)

    def test_week_crosses_year_boundary(self):
        assert range_start(TimeRange.WEEK, NOW) == datetime(2024, 12, 27, tzinfo=timezone.utc)

    def test_month(self):
        assert range_start(TimeRange.MONTH, NOW) == datetime(2024, 12, 4, tzinfo=timezone.utc)

    def test_accepts_plain_string(self):
        assert range_start("week", NOW) == range_start(TimeRange.WEEK, NOW)


class TestAggregateSnapshots:
    def test_totals_from_latest_growth_from_earliest(self):
        result = aggregate_snapshots([_snap(100, 5, 1), _snap(140, 9, 1), _snap(180, 12, 3, 2)])
        assert result["total_views"] == 180
        assert result["total_likes"] == 12
        assert result["total_shares"] == 2
        assert result["growth"] == {"views": 80, "likes": 7, "comments": 2, "shares": 2}

    def test_single_snapshot_has_zero_growth(self):
        result = aggregate_snapshots([_snap(55)])
        assert result["total_views"] == 55
        assert result["growth"]["views"] == 0

    def test_empty_is_zeros(self):
        result = aggregate_snapshots([])
        assert result == {
            "total_views": 0,
            "total_likes": 0,
            "total_comments": 0,
            "total_shares": 0,
            "growth": {"views": 0, "likes": 0, "comments": 0, "shares": 0},
        }


class TestTimeRangeQueries:
    @pytest.mark.asyncio
    @patch("simcast.services.analytics.snapshot_svc.get_upload_snapshots")
    async def test_range_uses_start_of_range(self, mock_snapshots):
        mock_snapshots.return_value = [_snap(1)]

        result = await analytics.get_metrics_for_time_range(AsyncMock(), 1, TimeRange.WEEK, NOW)

        assert len(result) == 1
        assert mock_snapshots.await_args.args[2] == datetime(2024, 12, 27, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    @patch("simcast.services.analytics.snapshot_svc.get_upload_snapshots")
    async def test_storage_failure_is_explicit(self, mock_snapshots):
        mock_snapshots.side_effect = _db_error()

        with pytest.raises(MetricsQueryError):
            await analytics.get_aggregated_metrics(AsyncMock(), 1, TimeRange.TODAY, NOW)

    @pytest.mark.asyncio
    @patch("simcast.services.analytics.snapshot_svc.get_latest_snapshot")
    async def test_latest_is_limited_to_today(self, mock_latest):
        mock_latest.return_value = None

        assert await analytics.get_latest_metrics(AsyncMock(), 1, NOW) is None
        assert mock_latest.await_args.kwargs["since"] == datetime(2025, 1, 3, tzinfo=timezone.utc)


class TestBulkMetrics:
    @pytest.mark.asyncio
    @patch("simcast.services.analytics.snapshot_svc.get_upload_snapshots")
    async def test_failures_are_counted_not_fatal(self, mock_snapshots):
        async def snapshots(db, upload_id, since):
            if upload_id == 2:
                raise _db_error()
            return [_snap(10), _snap(25)]

        mock_snapshots.side_effect = snapshots
        db = AsyncMock()

        result = await analytics.get_bulk_metrics(db, [1, 2, 3], TimeRange.TODAY, NOW)

        assert [item["upload_id"] for item in result["successful"]] == [1, 3]
        assert result["successful"][0]["aggregated"]["growth"]["views"] == 15
        assert result["failed"] == 1
        assert result["errors"][0]["upload_id"] == 2
        db.rollback.assert_awaited_once()


class TestSnapshotStats:
    @pytest.mark.asyncio
    @patch("simcast.services.analytics.snapshot_svc.get_snapshot_stats")
    async def test_wraps_storage_failure(self, mock_stats):
        mock_stats.side_effect = _db_error()

        with pytest.raises(MetricsQueryError):
            await analytics.get_snapshot_stats(AsyncMock(), NOW)


class TestPlatformComparison:
    @pytest.mark.asyncio
    async def test_rows_to_dicts(self):
        result = MagicMock()
        result.all.return_value = [
            ("tiktok", 2, 150.4, 301, 10.0, 20, 1.5, 3, 0.0, 0),
            ("youtube", 1, 0, 0, 0, 0, 0, 0, 0, 0),
        ]
        db = AsyncMock()
        db.execute = AsyncMock(return_value=result)

        comparison = await analytics.get_platform_comparison(db)

        assert comparison[0] == {
            "platform": "tiktok",
            "count": 2,
            "avg_views": 150,
            "total_views": 301,
            "avg_likes": 10,
            "total_likes": 20,
            "avg_comments": 2,
            "total_comments": 3,
            "avg_shares": 0,
            "total_shares": 0,
        }
        assert comparison[1]["total_views"] == 0


class TestDashboardStats:
    @pytest.mark.asyncio
    async def test_rows_to_dict(self):
        totals = MagicMock()
        totals.one.return_value = (5, 2, 1, 150.6, 753, 40)
        platforms = MagicMock()
        platforms.all.return_value = [("tiktok", 2), ("youtube", 3)]
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=[totals, platforms])

        stats = await analytics.get_dashboard_stats(db, NOW)

        assert stats == {
            "total_uploads": 5,
            "total_videos": 2,
            "today_uploads": 1,
            "avg_views": 151,
            "total_views": 753,
            "total_likes": 40,
            "platforms": [
                {"platform": "tiktok", "count": 2},
                {"platform": "youtube", "count": 3},
            ],
        }

    @pytest.mark.asyncio
    async def test_storage_failure_is_explicit(self):
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=_db_error())

        with pytest.raises(MetricsQueryError):
            await analytics.get_dashboard_stats(db, NOW)


class TestTopUploads:
    @pytest.mark.asyncio
    async def test_rejects_unknown_metric(self):
        with pytest.raises(ValueError):
            await analytics.get_top_uploads(AsyncMock(), sort_by="saves")

    @pytest.mark.asyncio
    async def test_returns_pairs(self):
        upload, snapshot = MagicMock(), _snap(99)
        result = MagicMock()
        result.all.return_value = [(upload, snapshot)]
        db = AsyncMock()
        db.execute = AsyncMock(return_value=result)

        rows = await analytics.get_top_uploads(db, limit=5, timeframe="week", now=NOW)

        assert rows == [(upload, snapshot)]


class TestEnsureUploadExists:
    @pytest.mark.asyncio
    async def test_missing_upload(self):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        db = AsyncMock()
        db.execute = AsyncMock(return_value=result)

        with pytest.raises(UploadNotFoundError):
            await analytics.ensure_upload_exists(db, 404)

    @pytest.mark.asyncio
    async def test_existing_upload(self):
        result = MagicMock()
        result.scalar_one_or_none.return_value = 1
        db = AsyncMock()
        db.execute = AsyncMock(return_value=result)

        await analytics.ensure_upload_exists(db, 1)


def test_week_before_is_seven_days():
    assert range_start(TimeRange.TODAY, NOW) - range_start(TimeRange.WEEK, NOW) == timedelta(days=7)
