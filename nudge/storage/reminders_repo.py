"""Repository for scheduled reminders."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nudge.dispatch.contracts import DataAccessError, DueReminder
from nudge.schema.reminders import Reminder
from nudge.storage.retry import execute_with_retry


@dataclass(frozen=True)
class ReminderEntry:
  """Fields needed to schedule a new reminder."""

  user_id: uuid.UUID
  title: str
  body: str
  fire_at: datetime.datetime
  url: str | None = None


class ReminderRepository:
  """Persist and query reminders in Postgres."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
    self._session_factory = session_factory

  async def list_due(self, *, now: datetime.datetime, limit: int) -> list[DueReminder]:
    """Return unsent reminders whose fire time has passed, oldest first."""
    stmt = select(Reminder).where(Reminder.sent.is_(False), Reminder.fire_at <= now).order_by(Reminder.fire_at).limit(limit)
    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        rows = result.scalars().all()
    except SQLAlchemyError as exc:
      raise DataAccessError("list_due", str(exc)) from exc

    return [DueReminder(id=row.id, user_id=row.user_id, title=row.title, body=row.body, url=row.url, fire_at=row.fire_at) for row in rows]

  async def mark_sent(self, *, reminder_ids: set[uuid.UUID]) -> int:
    """Flip `sent` to true for the given ids; already-sent rows are left alone."""
    if not reminder_ids:
      return 0

    stmt = update(Reminder).where(Reminder.id.in_(list(reminder_ids)), Reminder.sent.is_(False)).values(sent=True)
    return await self._write("mark_sent", stmt)

  async def delete_sent_before(self, *, cutoff: datetime.datetime) -> int:
    """Delete sent reminders that fired at or before `cutoff`."""
    stmt = delete(Reminder).where(Reminder.sent.is_(True), Reminder.fire_at <= cutoff)
    return await self._write("delete_sent_before", stmt)

  async def create(self, entry: ReminderEntry) -> uuid.UUID:
    """Insert a reminder and return its id."""
    reminder = Reminder(user_id=entry.user_id, title=entry.title, body=entry.body, url=entry.url, fire_at=entry.fire_at)
    try:
      async with self._session_factory() as session:
        session.add(reminder)
        await session.commit()
    except SQLAlchemyError as exc:
      raise DataAccessError("create_reminder", str(exc)) from exc

    return reminder.id

  async def _write(self, operation: str, stmt) -> int:  # type: ignore[no-untyped-def]
    async def _execute() -> int:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        await session.commit()
        return int(result.rowcount or 0)

    try:
      return await execute_with_retry(operation_name=f"reminders.{operation}", func=_execute)
    except SQLAlchemyError as exc:
      raise DataAccessError(operation, str(exc)) from exc
