from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from simcast.db.base import Base


class MetricSnapshot(Base):
    """Cumulative counters of one upload for one UTC hour bucket."""

    __tablename__ = "metric_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "upload_id", "year", "day_of_year", "hour", name="uq_metric_snapshots_upload_bucket"
        ),
        Index("ix_metric_snapshots_upload_timestamp", "upload_id", "timestamp"),
        Index("ix_metric_snapshots_timestamp", "timestamp"),
    )

    upload_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False
    )
    # Capture instant; the bucket coordinates below are derived from its hour start
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_year: Mapped[int] = mapped_column(Integer, nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)

    # Cumulative totals as reported by the platform
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # Increments since the baseline; NULL only on rows written before deltas existed
    views_delta: Mapped[int | None] = mapped_column(Integer, nullable=True)
    likes_delta: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comments_delta: Mapped[int | None] = mapped_column(Integer, nullable=True)
    shares_delta: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    upload = relationship("Upload", back_populates="snapshots")
