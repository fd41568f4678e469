"""SQLAlchemy model for browser Web Push subscriptions."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from nudge.core.database import Base


class WebPushSubscription(Base):
  """One registered browser endpoint for a user.

  Endpoint is indexed but not unique: a browser re-subscribing can leave duplicate rows
  behind, and dispatch deduplicates per user at read time.
  """

  __tablename__ = "web_push_subscriptions"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  endpoint: Mapped[str] = mapped_column(Text, index=True, nullable=False)
  p256dh: Mapped[str] = mapped_column(Text, nullable=False)
  auth: Mapped[str] = mapped_column(Text, nullable=False)
  user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
