"""SQLAlchemy model for scheduled reminders."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from nudge.core.database import Base


class Reminder(Base):
  """A notification scheduled to fire for a user at `fire_at`."""

  __tablename__ = "reminders"
  __table_args__ = (Index("ix_reminders_sent_fire_at", "sent", "fire_at"),)

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  body: Mapped[str] = mapped_column(Text, nullable=False)
  url: Mapped[str | None] = mapped_column(Text, nullable=True)
  fire_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
