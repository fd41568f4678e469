"""Add web push subscriptions table.

Revision ID: 8c17f9a4e2d1
Revises:
Create Date: 2026-02-07 05:15:55.382948
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "8c17f9a4e2d1"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "web_push_subscriptions",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("endpoint", sa.Text(), nullable=False),
    sa.Column("p256dh", sa.Text(), nullable=False),
    sa.Column("auth", sa.Text(), nullable=False),
    sa.Column("user_agent", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_web_push_subscriptions_user_id"), "web_push_subscriptions", ["user_id"], unique=False)
  op.create_index(op.f("ix_web_push_subscriptions_endpoint"), "web_push_subscriptions", ["endpoint"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_web_push_subscriptions_endpoint"), table_name="web_push_subscriptions")
  op.drop_index(op.f("ix_web_push_subscriptions_user_id"), table_name="web_push_subscriptions")
  op.drop_table("web_push_subscriptions")
