"""Retention cleanup for reminders that have already been delivered."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

from nudge.dispatch.contracts import ReminderStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = datetime.timedelta(days=30)


def utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


class RetentionSweeper:
  """Delete sent reminders whose fire time is older than the retention window."""

  def __init__(self, *, reminder_repo: ReminderStore, clock: Callable[[], datetime.datetime] = utc_now) -> None:
    self._reminder_repo = reminder_repo
    self._clock = clock

  async def sweep(self, max_age: datetime.timedelta = DEFAULT_RETENTION) -> int:
    """Return the number of deleted reminders; failures are logged and count as zero."""
    cutoff = self._clock() - max_age
    try:
      deleted = await self._reminder_repo.delete_sent_before(cutoff=cutoff)
    except Exception as exc:  # noqa: BLE001
      logger.error("Cleanup error: %s", exc, exc_info=True)
      return 0

    if deleted:
      logger.info("Swept %d sent reminders fired before %s", deleted, cutoff.isoformat())
    return deleted
