"""media_jobs table

Revision ID: 0001
Revises: None
Create Date: 2026-10-19 09:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "media_jobs",
        sa.Column("job_id", sa.String(64), primary_key=True),
        sa.Column("provider", sa.String(64), nullable=False),
        sa.Column("model_id", sa.String(255), nullable=False),
        sa.Column("provider_job_id", sa.String(512), nullable=True),
        sa.Column("waiting_strategy", sa.String(16), nullable=False, comment="webhook | polling"),
        sa.Column("status", sa.String(16), nullable=False, server_default="submitted"),
        sa.Column("poll_attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("next_poll_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outputs", sa.JSON, nullable=False),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column("raw_options", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        mysql_charset="utf8mb4",
        mysql_collate="utf8mb4_unicode_ci",
    )
    op.create_index("ix_media_jobs_provider_job_id", "media_jobs", ["provider_job_id"])
    op.create_index("ix_media_jobs_status", "media_jobs", ["status"])
    op.create_index("ix_media_jobs_next_poll_at", "media_jobs", ["next_poll_at"])


def downgrade() -> None:
    op.drop_index("ix_media_jobs_next_poll_at", table_name="media_jobs")
    op.drop_index("ix_media_jobs_status", table_name="media_jobs")
    op.drop_index("ix_media_jobs_provider_job_id", table_name="media_jobs")
    op.drop_table("media_jobs")
