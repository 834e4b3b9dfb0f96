"""create metric_snapshots table

Revision ID: 002
Revises: 001
Create Date: 2025-03-01 00:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "metric_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("upload_id", sa.Integer(), sa.ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("day_of_year", sa.Integer(), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("likes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("comments", sa.Integer(), server_default="0", nullable=False),
        sa.Column("shares", sa.Integer(), server_default="0", nullable=False),
        sa.Column("views_delta", sa.Integer(), nullable=True),
        sa.Column("likes_delta", sa.Integer(), nullable=True),
        sa.Column("comments_delta", sa.Integer(), nullable=True),
        sa.Column("shares_delta", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "upload_id", "year", "day_of_year", "hour", name="uq_metric_snapshots_upload_bucket"
        ),
    )
    op.create_index(
        "ix_metric_snapshots_upload_timestamp",
        "metric_snapshots",
        ["upload_id", "timestamp"],
    )
    op.create_index("ix_metric_snapshots_timestamp", "metric_snapshots", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_metric_snapshots_timestamp", table_name="metric_snapshots")
    op.drop_index("ix_metric_snapshots_upload_timestamp", table_name="metric_snapshots")
    op.drop_table("metric_snapshots")
