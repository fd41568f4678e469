"""Commit the outcome of a fan-out back to the stores."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from nudge.dispatch.contracts import ReconcileResult, ReminderDispatch, ReminderStore, SubscriptionStore

logger = logging.getLogger(__name__)


class StateReconciler:
  """Apply the two idempotent batch writes that close out a cycle.

  Each write is best-effort: a failure is logged and reported as None in the result,
  and never blocks the other write.
  """

  def __init__(self, *, reminder_repo: ReminderStore, subscription_repo: SubscriptionStore) -> None:
    self._reminder_repo = reminder_repo
    self._subscription_repo = subscription_repo

  async def reconcile(self, dead_endpoints: set[str], served_ids: set[uuid.UUID]) -> ReconcileResult:
    """Delete gone endpoints and mark served reminders as sent."""
    pruned: int | None = 0
    marked: int | None = 0

    if dead_endpoints:
      try:
        pruned = await self._subscription_repo.delete_by_endpoints(endpoints=set(dead_endpoints))
        logger.info("Deleted expired subscriptions: %d", pruned)
      except Exception as exc:  # noqa: BLE001
        pruned = None
        logger.error("Failed deleting %d expired subscriptions: %s", len(dead_endpoints), exc, exc_info=True)

    if served_ids:
      try:
        marked = await self._reminder_repo.mark_sent(reminder_ids=set(served_ids))
        logger.info("Marked reminders sent: %d", marked)
      except Exception as exc:  # noqa: BLE001
        # Unmarked reminders are picked up again next cycle.
        marked = None
        logger.error("Failed marking %d reminders sent: %s", len(served_ids), exc, exc_info=True)

    return ReconcileResult(targets_pruned=pruned, reminders_marked_sent=marked)


def collect_reconcile_sets(dispatches: Iterable[ReminderDispatch]) -> tuple[set[str], set[uuid.UUID]]:
  """Reduce per-target outcomes to the endpoint and reminder id sets to write."""
  dead_endpoints: set[str] = set()
  served_ids: set[uuid.UUID] = set()
  for dispatch in dispatches:
    dead_endpoints.update(dispatch.permanently_failed_endpoints)
    if dispatch.served:
      served_ids.add(dispatch.reminder.id)

  return dead_endpoints, served_ids
