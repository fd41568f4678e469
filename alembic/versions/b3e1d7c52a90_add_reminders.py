"""Add reminders table.

Revision ID: b3e1d7c52a90
Revises: 8c17f9a4e2d1
Create Date: 2026-02-09 11:42:10.104217
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "b3e1d7c52a90"
down_revision = "8c17f9a4e2d1"
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "reminders",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("body", sa.Text(), nullable=False),
    sa.Column("url", sa.Text(), nullable=True),
    sa.Column("fire_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("sent", sa.Boolean(), server_default=sa.text("false"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_reminders_user_id"), "reminders", ["user_id"], unique=False)
  # Serves both due selection (sent=false) and the retention sweep (sent=true).
  op.create_index("ix_reminders_sent_fire_at", "reminders", ["sent", "fire_at"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_reminders_sent_fire_at", table_name="reminders")
  op.drop_index(op.f("ix_reminders_user_id"), table_name="reminders")
  op.drop_table("reminders")
