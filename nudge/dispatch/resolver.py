"""Resolve recipients to their registered push endpoints."""

from __future__ import annotations

import logging
import uuid

from nudge.dispatch.contracts import DeliveryTarget, SubscriptionStore

logger = logging.getLogger(__name__)


class TargetResolver:
  """Load and deduplicate delivery targets for a batch of recipients."""

  def __init__(self, *, subscription_repo: SubscriptionStore) -> None:
    self._subscription_repo = subscription_repo

  async def resolve(self, user_ids: set[uuid.UUID]) -> dict[uuid.UUID, list[DeliveryTarget]]:
    """Return targets per user, keeping the first row for each endpoint.

    Users without any subscription are absent from the result. Store errors propagate.
    """
    if not user_ids:
      return {}

    rows = await self._subscription_repo.list_for_users(user_ids=set(user_ids))
    return group_targets(rows)


def group_targets(rows: list[DeliveryTarget]) -> dict[uuid.UUID, list[DeliveryTarget]]:
  """Group rows by user and drop repeated endpoints within each user."""
  targets_by_user: dict[uuid.UUID, list[DeliveryTarget]] = {}
  seen: dict[uuid.UUID, set[str]] = {}
  duplicates = 0

  for row in rows:
    endpoints = seen.setdefault(row.user_id, set())
    if row.endpoint in endpoints:
      duplicates += 1
      continue
    endpoints.add(row.endpoint)
    targets_by_user.setdefault(row.user_id, []).append(row)

  if duplicates:
    logger.debug("Dropped %d duplicate subscription rows", duplicates)

  return targets_by_user
