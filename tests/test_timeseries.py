"""Tests for the bucketed metrics series (fast and recompute paths)."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from simcast.models.metric_snapshot import MetricSnapshot
from simcast.services.errors import MetricsQueryError
from simcast.services.timeseries import build_series, get_metrics_over_time, get_metrics_trend, is_hourly

NOW = datetime(2025, 6, 8, 10, 30, tzinfo=timezone.utc)


def _snap(upload_id: int, timestamp: datetime, views: int, views_delta: int | None) -> MetricSnapshot:
    return MetricSnapshot(
        upload_id=upload_id,
        timestamp=timestamp,
        views=views,
        likes=0,
        comments=0,
        shares=0,
        views_delta=views_delta,
        likes_delta=0 if views_delta is not None else None,
        comments_delta=0 if views_delta is not None else None,
        shares_delta=0 if views_delta is not None else None,
    )


class TestGranularity:
    def test_one_day_is_hourly(self):
        assert is_hourly(1) is True

    def test_more_than_one_day_is_daily(self):
        assert is_hourly(2) is False
        assert is_hourly(7) is False


class TestBuildSeries:
    def test_empty_week_has_eight_zero_buckets(self):
        series = build_series([], {}, NOW - timedelta(days=7), NOW, "views", hourly=False)
        assert len(series) == 8
        assert all(point["value"] == 0 for point in series)
        assert [p["date"] for p in series] == sorted(p["date"] for p in series)

    def test_empty_day_has_twenty_five_hourly_buckets(self):
        series = build_series([], {}, NOW - timedelta(days=1), NOW, "views", hourly=True)
        assert len(series) == 25
        assert series[0]["date"] == "2025-06-07T10:00:00Z"
        assert series[-1]["date"] == "2025-06-08T10:00:00Z"

    def test_sums_stored_deltas_per_day(self):
        snapshots = [
            _snap(1, datetime(2025, 6, 5, 9, tzinfo=timezone.utc), 100, 30),
            _snap(1, datetime(2025, 6, 5, 10, tzinfo=timezone.utc), 150, 50),
            _snap(2, datetime(2025, 6, 5, 11, tzinfo=timezone.utc), 40, 40),
            _snap(2, datetime(2025, 6, 7, 11, tzinfo=timezone.utc), 45, 5),
        ]
        series = build_series(snapshots, {}, NOW - timedelta(days=7), NOW, "views", hourly=False)
        by_date = {p["date"]: p["value"] for p in series}
        assert by_date["2025-06-05"] == 120
        assert by_date["2025-06-07"] == 5
        assert by_date["2025-06-06"] == 0
        assert sum(by_date.values()) == 125

    def test_hourly_buckets(self):
        snapshots = [
            _snap(1, datetime(2025, 6, 8, 9, 5, tzinfo=timezone.utc), 10, 10),
            _snap(2, datetime(2025, 6, 8, 9, 6, tzinfo=timezone.utc), 3, 3),
        ]
        series = build_series(snapshots, {}, NOW - timedelta(days=1), NOW, "views", hourly=True)
        by_date = {p["date"]: p["value"] for p in series}
        assert by_date["2025-06-08T09:00:00Z"] == 13
        assert len(series) == 25

    def test_recomputes_when_deltas_missing(self):
        seed = _snap(1, datetime(2025, 5, 31, 23, tzinfo=timezone.utc), 900, 0)
        snapshots = [
            _snap(1, datetime(2025, 6, 2, 9, tzinfo=timezone.utc), 1000, None),
            _snap(1, datetime(2025, 6, 3, 9, tzinfo=timezone.utc), 50, None),
            _snap(1, datetime(2025, 6, 4, 9, tzinfo=timezone.utc), 80, None),
        ]
        series = build_series(
            snapshots, {1: seed}, NOW - timedelta(days=7), NOW, "views", hourly=False
        )
        by_date = {p["date"]: p["value"] for p in series}
        assert by_date["2025-06-02"] == 100
        # Reset: the whole reading counts
        assert by_date["2025-06-03"] == 50
        assert by_date["2025-06-04"] == 30

    def test_recompute_without_seed_counts_first_reading(self):
        snapshots = [
            _snap(3, datetime(2025, 6, 6, 9, tzinfo=timezone.utc), 25, None),
            _snap(3, datetime(2025, 6, 6, 10, tzinfo=timezone.utc), 30, None),
        ]
        series = build_series(snapshots, {}, NOW - timedelta(days=7), NOW, "views", hourly=False)
        by_date = {p["date"]: p["value"] for p in series}
        assert by_date["2025-06-06"] == 30


class TestGetMetricsOverTime:
    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_fast_path_skips_seed_query(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(
            return_value=[_snap(1, datetime(2025, 6, 8, 9, tzinfo=timezone.utc), 10, 10)]
        )
        mock_store.get_latest_before = AsyncMock()

        series = await get_metrics_over_time(AsyncMock(), days=7, now=NOW)

        assert len(series) == 8
        assert series[-1] == {"date": "2025-06-08", "value": 10}
        mock_store.get_latest_before.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_fallback_loads_seeds(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(
            return_value=[_snap(1, datetime(2025, 6, 8, 9, tzinfo=timezone.utc), 120, None)]
        )
        mock_store.get_latest_before = AsyncMock(
            return_value={1: _snap(1, datetime(2025, 6, 7, 8, tzinfo=timezone.utc), 100, None)}
        )

        series = await get_metrics_over_time(AsyncMock(), days=1, now=NOW)

        assert len(series) == 25
        by_date = {p["date"]: p["value"] for p in series}
        assert by_date["2025-06-08T09:00:00Z"] == 20
        start = mock_store.get_latest_before.await_args.args[2]
        assert start == NOW - timedelta(days=1)

    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_platform_filter_passed_through(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(return_value=[])

        await get_metrics_over_time(AsyncMock(), days=30, platform="tiktok", now=NOW)

        args = mock_store.get_window_snapshots.await_args.args
        assert args[1] == NOW - timedelta(days=30)
        assert args[2] == NOW
        assert args[3] == "tiktok"

    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_storage_failure_is_explicit(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        with pytest.raises(MetricsQueryError):
            await get_metrics_over_time(AsyncMock(), days=7, now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_metric(self):
        with pytest.raises(ValueError):
            await get_metrics_over_time(AsyncMock(), days=7, metric="saves", now=NOW)


class TestGetMetricsTrend:
    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_daily_totals_of_every_counter(self, mock_store):
        first = _snap(1, datetime(2025, 6, 8, 8, tzinfo=timezone.utc), 50, 20)
        first.likes, first.likes_delta = 4, 4
        second = _snap(2, datetime(2025, 6, 8, 9, tzinfo=timezone.utc), 30, 30)
        second.shares, second.shares_delta = 2, 2
        earlier = _snap(1, datetime(2025, 6, 6, 9, tzinfo=timezone.utc), 30, 30)
        mock_store.get_window_snapshots = AsyncMock(return_value=[earlier, first, second])
        mock_store.get_latest_before = AsyncMock()

        trend = await get_metrics_trend(AsyncMock(), days=7, now=NOW)

        assert len(trend) == 8
        assert trend[-1] == {
            "date": "2025-06-08",
            "upload_count": 2,
            "views": 50,
            "likes": 4,
            "comments": 0,
            "shares": 2,
        }
        by_date = {p["date"]: p for p in trend}
        assert by_date["2025-06-06"]["views"] == 30
        assert by_date["2025-06-06"]["upload_count"] == 1
        assert by_date["2025-06-07"]["upload_count"] == 0
        mock_store.get_latest_before.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_missing_deltas_load_seeds(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(
            return_value=[_snap(1, datetime(2025, 6, 8, 9, tzinfo=timezone.utc), 120, None)]
        )
        mock_store.get_latest_before = AsyncMock(
            return_value={1: _snap(1, datetime(2025, 6, 1, 8, tzinfo=timezone.utc), 100, None)}
        )

        trend = await get_metrics_trend(AsyncMock(), days=7, platform="youtube", now=NOW)

        assert trend[-1]["views"] == 20
        assert mock_store.get_window_snapshots.await_args.args[3] == "youtube"

    @pytest.mark.asyncio
    @patch("simcast.services.timeseries.snapshot_svc")
    async def test_storage_failure_is_explicit(self, mock_store):
        mock_store.get_window_snapshots = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )

        with pytest.raises(MetricsQueryError):
            await get_metrics_trend(AsyncMock(), now=NOW)
