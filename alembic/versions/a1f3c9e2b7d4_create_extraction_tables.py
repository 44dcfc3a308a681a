"""create_extraction_tables

Revision ID: a1f3c9e2b7d4
Revises:
Create Date: 2026-10-18 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1f3c9e2b7d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create article_cache, extraction_logs and url_reliability."""
    op.create_table(
        "article_cache",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("author", sa.String(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("plain_text", sa.Text(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("reading_time", sa.Integer(), nullable=True),
        sa.Column("extraction_method", sa.String(), nullable=False),
        sa.Column("completeness_score", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    # Sweeps and unexpired lookups filter on expires_at
    op.create_index("ix_article_cache_expires_at", "article_cache", ["expires_at"])

    op.create_table(
        "extraction_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("response_time_ms", sa.Float(), nullable=True),
        sa.Column("content_length", sa.Integer(), nullable=True),
        sa.Column("completeness_score", sa.Integer(), nullable=True),
        sa.Column("completeness_indicators", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_extraction_logs_url", "extraction_logs", ["url"])
    op.create_index("ix_extraction_logs_created_at", "extraction_logs", ["created_at"])
    op.create_index("ix_extraction_logs_status", "extraction_logs", ["status"])

    op.create_table(
        "url_reliability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("url_pattern", sa.String(), nullable=False, unique=True),
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "successful_attempts", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("best_method", sa.String(), nullable=True),
        sa.Column(
            "average_response_time_ms",
            sa.Float(),
            nullable=False,
            server_default="0",
        ),
        sa.Column("last_success_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    """Drop the extraction tables."""
    op.drop_table("url_reliability")
    op.drop_index("ix_extraction_logs_status", table_name="extraction_logs")
    op.drop_index("ix_extraction_logs_created_at", table_name="extraction_logs")
    op.drop_index("ix_extraction_logs_url", table_name="extraction_logs")
    op.drop_table("extraction_logs")
    op.drop_index("ix_article_cache_expires_at", table_name="article_cache")
    op.drop_table("article_cache")
