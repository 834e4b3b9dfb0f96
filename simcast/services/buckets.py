"""UTC time buckets used for snapshot identity and chart grids.

The canonical hour bucket of an instant is the instant converted to UTC
and truncated to the hour. Naive datetimes are taken to be UTC already.
"""

from datetime import datetime, timedelta, timezone
from typing import NamedTuple

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


class HourBucket(NamedTuple):
    start: datetime
    year: int
    day_of_year: int  # 1-based, Jan 1 == 1
    hour: int


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_hour(moment: datetime) -> datetime:
    return as_utc(moment).replace(minute=0, second=0, microsecond=0)


def start_of_day(moment: datetime) -> datetime:
    return as_utc(moment).replace(hour=0, minute=0, second=0, microsecond=0)


def hour_bucket(moment: datetime) -> HourBucket:
    start = start_of_hour(moment)
    return HourBucket(
        start=start,
        year=start.year,
        day_of_year=start.timetuple().tm_yday,
        hour=start.hour,
    )


def bucket_start(moment: datetime, hourly: bool) -> datetime:
    return start_of_hour(moment) if hourly else start_of_day(moment)


def bucket_key(moment: datetime, hourly: bool) -> str:
    """Chart label of the bucket containing ``moment``.

    Hourly keys are ISO instants (``2026-10-19T13:00:00Z``), daily keys
    are dates (``2026-10-19``); both sort lexicographically in time order.
    """
    start = bucket_start(moment, hourly)
    if hourly:
        return start.strftime("%Y-%m-%dT%H:00:00Z")
    return start.strftime("%Y-%m-%d")


def bucket_keys(start: datetime, end: datetime, hourly: bool) -> list[str]:
    """Every bucket key from the bucket of ``start`` to the bucket of ``end``, inclusive."""
    step = HOUR if hourly else DAY
    cursor = bucket_start(start, hourly)
    last = bucket_start(end, hourly)
    keys = []
    while cursor <= last:
        keys.append(bucket_key(cursor, hourly))
        cursor += step
    return keys
