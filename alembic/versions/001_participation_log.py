"""Participation log: one row per finished practice conversation.

Revision ID: 001_participation_log
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_participation_log"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "participation_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", sa.String(100), nullable=False),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("transcript_url", sa.Text, nullable=True),
        sa.Column("reflection", sa.Text, nullable=True),
        sa.Column("feedback", sa.JSON, nullable=True),
        sa.Column("words_per_min", sa.Float, nullable=True),
        sa.Column("filler_words_per_min", sa.Float, nullable=True),
        sa.Column("participation_percentage", sa.Float, nullable=True),
        sa.Column("duration", sa.String(50), nullable=True),
        sa.Column("pisa_shared_understanding", sa.Float, nullable=True),
        sa.Column("pisa_problem_solving_action", sa.Float, nullable=True),
        sa.Column("pisa_team_organization", sa.Float, nullable=True),
        sa.Column("overall_score", sa.Float, nullable=True),
        sa.Column("detailed_feedback", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_participation_log_session_id", "participation_log", ["session_id"])
    op.create_index("ix_participation_log_user_id", "participation_log", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_participation_log_user_id", table_name="participation_log")
    op.drop_index("ix_participation_log_session_id", table_name="participation_log")
    op.drop_table("participation_log")
