"""Create the entries table.

Revision ID: 20260301_create_entries
Revises:
Create Date: 2026-03-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20260301_create_entries"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entries",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("length(btrim(title)) > 0", name="entries_title_not_blank"),
    )
    op.create_index("ix_entries_timestamp", "entries", [sa.text("timestamp DESC")])


def downgrade() -> None:
    op.drop_index("ix_entries_timestamp", table_name="entries")
    op.drop_table("entries")
