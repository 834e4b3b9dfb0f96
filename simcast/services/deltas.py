"""Delta reconciliation: pure logic, no DB dependency.

Platforms report cumulative counters. Each hourly snapshot stores the
increment since its baseline, computed per counter:

    delta = current - baseline      if current >= baseline
    delta = current                 otherwise (counter reset)

A reset (video reprocessed, API anomaly) is an expected condition: the
whole current reading is treated as new activity since the baseline.
"""

from dataclasses import asdict, dataclass
from typing import Any

COUNTERS = ("views", "likes", "comments", "shares")


@dataclass(frozen=True)
class Counters:
    """Cumulative engagement counters for one upload."""

    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: Any | None) -> "Counters":
        """Read the cumulative counters of a snapshot row; zeros when there is none."""
        if snapshot is None:
            return cls()
        return cls(
            views=snapshot.views or 0,
            likes=snapshot.likes or 0,
            comments=snapshot.comments or 0,
            shares=snapshot.shares or 0,
        )

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class Deltas:
    views_delta: int = 0
    likes_delta: int = 0
    comments_delta: int = 0
    shares_delta: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def counter_delta(current: int, baseline: int) -> int:
    diff = current - baseline
    return diff if diff >= 0 else current


def reconcile(current: Counters, baseline: Counters) -> Deltas:
    """Compute the per-counter increments of ``current`` over ``baseline``."""
    return Deltas(
        views_delta=counter_delta(current.views, baseline.views),
        likes_delta=counter_delta(current.likes, baseline.likes),
        comments_delta=counter_delta(current.comments, baseline.comments),
        shares_delta=counter_delta(current.shares, baseline.shares),
    )
