from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from simcast.db.base import Base, utcnow


class UploadStatus(StrEnum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


class Upload(Base):
    """One publication of a generated video on one platform."""

    __tablename__ = "uploads"
    __table_args__ = (
        Index("ix_uploads_status_platform", "status", "platform"),
    )

    video_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    platform_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=UploadStatus.PENDING, server_default="pending"
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    snapshots = relationship(
        "MetricSnapshot", back_populates="upload", cascade="all, delete-orphan", passive_deletes=True
    )
