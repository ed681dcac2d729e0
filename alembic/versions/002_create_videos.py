"""create videos table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "videos",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("conversation_id", sa.String(64), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("uploader", sa.String(100), nullable=False),
        sa.Column("canonical_path", sa.String(512), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_videos_conversation_id", "videos", ["conversation_id"])
    op.create_index("ix_videos_uploaded_at", "videos", ["uploaded_at"])


def downgrade() -> None:
    op.drop_index("ix_videos_uploaded_at", table_name="videos")
    op.drop_index("ix_videos_conversation_id", table_name="videos")
    op.drop_table("videos")
