"""Repository helpers for Web Push subscription persistence."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nudge.dispatch.contracts import DataAccessError, DeliveryTarget
from nudge.schema.push_subscriptions import WebPushSubscription
from nudge.storage.retry import execute_with_retry


@dataclass(frozen=True)
class PushSubscriptionEntry:
  """Capture a single web push subscription payload for storage."""

  user_id: uuid.UUID
  endpoint: str
  p256dh: str
  auth: str
  user_agent: str | None = None


class PushSubscriptionRepository:
  """Read and prune push subscriptions in Postgres."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
    self._session_factory = session_factory

  async def list_for_users(self, *, user_ids: set[uuid.UUID]) -> list[DeliveryTarget]:
    """List every subscription row for the given users in one query.

    Rows come back in insertion order so the oldest registration of an endpoint wins
    deduplication.
    """
    if not user_ids:
      return []

    stmt = select(WebPushSubscription).where(WebPushSubscription.user_id.in_(list(user_ids))).order_by(WebPushSubscription.created_at, WebPushSubscription.id)
    try:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        rows = result.scalars().all()
    except SQLAlchemyError as exc:
      raise DataAccessError("list_subscriptions", str(exc)) from exc

    return [DeliveryTarget(user_id=row.user_id, endpoint=row.endpoint, p256dh=row.p256dh, auth=row.auth) for row in rows]

  async def delete_by_endpoints(self, *, endpoints: set[str]) -> int:
    """Delete subscriptions by endpoint regardless of owner."""
    if not endpoints:
      return 0

    stmt = delete(WebPushSubscription).where(WebPushSubscription.endpoint.in_(list(endpoints)))

    async def _execute() -> int:
      async with self._session_factory() as session:
        result = await session.execute(stmt)
        await session.commit()
        return int(result.rowcount or 0)

    try:
      return await execute_with_retry(operation_name="push_subscriptions.delete_by_endpoints", func=_execute)
    except SQLAlchemyError as exc:
      raise DataAccessError("delete_subscriptions", str(exc)) from exc

  async def add(self, entry: PushSubscriptionEntry) -> None:
    """Insert a subscription row."""
    row = WebPushSubscription(user_id=entry.user_id, endpoint=entry.endpoint, p256dh=entry.p256dh, auth=entry.auth, user_agent=entry.user_agent)
    try:
      async with self._session_factory() as session:
        session.add(row)
        await session.commit()
    except SQLAlchemyError as exc:
      raise DataAccessError("add_subscription", str(exc)) from exc
