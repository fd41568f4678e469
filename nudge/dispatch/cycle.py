"""One select → resolve → dispatch → reconcile → sweep pass."""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable
from http import HTTPStatus

from nudge.dispatch.contracts import CycleResult, CycleSummary, DataAccessError, ReminderStore
from nudge.dispatch.fanout import FanoutEngine
from nudge.dispatch.reconciler import StateReconciler, collect_reconcile_sets
from nudge.dispatch.resolver import TargetResolver
from nudge.dispatch.retention import DEFAULT_RETENTION, RetentionSweeper, utc_now

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class CycleDriver:
  """Run a single dispatch cycle per invocation.

  How/Why:
    - Data-access errors while selecting reminders or resolving targets abort the cycle
      before any write, and the retention sweep is skipped; the next scheduled run
      retries from scratch.
    - Reconciliation and sweep failures are logged but do not fail the cycle.
    - No exception escapes `run`; callers always get a `CycleResult`.
  """

  def __init__(
    self,
    *,
    reminder_repo: ReminderStore,
    resolver: TargetResolver,
    fanout: FanoutEngine,
    reconciler: StateReconciler,
    sweeper: RetentionSweeper,
    batch_size: int = DEFAULT_BATCH_SIZE,
    retention: datetime.timedelta = DEFAULT_RETENTION,
    clock: Callable[[], datetime.datetime] = utc_now,
  ) -> None:
    if batch_size <= 0:
      raise ValueError("batch_size must be a positive integer.")
    self._reminder_repo = reminder_repo
    self._resolver = resolver
    self._fanout = fanout
    self._reconciler = reconciler
    self._sweeper = sweeper
    self._batch_size = batch_size
    self._retention = retention
    self._clock = clock

  async def run(self) -> CycleResult:
    started = time.monotonic()
    try:
      return await self._run(started)
    except Exception:  # noqa: BLE001
      logger.error("Unhandled error in dispatch cycle", exc_info=True)
      return CycleResult(ok=False, status_code=HTTPStatus.INTERNAL_SERVER_ERROR, message="error")

  async def _run(self, started: float) -> CycleResult:
    now = self._clock()
    try:
      reminders = await self._reminder_repo.list_due(now=now, limit=self._batch_size)
    except DataAccessError as exc:
      logger.error("DB error selecting reminders: %s", exc)
      return CycleResult(ok=False, status_code=HTTPStatus.INTERNAL_SERVER_ERROR, message="DB error")

    if not reminders:
      logger.info("No due reminders at %s", now.isoformat())
      swept = await self._sweeper.sweep(self._retention)
      summary = CycleSummary(reminders_swept=swept, duration_ms=_elapsed_ms(started))
      return CycleResult(ok=True, status_code=HTTPStatus.OK, message="ok", summary=summary)

    try:
      targets_by_user = await self._resolver.resolve({reminder.user_id for reminder in reminders})
    except DataAccessError as exc:
      logger.error("DB error selecting subscriptions: %s", exc)
      return CycleResult(ok=False, status_code=HTTPStatus.INTERNAL_SERVER_ERROR, message="DB error")

    dispatches = await self._fanout.dispatch(reminders, targets_by_user)
    dead_endpoints, served_ids = collect_reconcile_sets(dispatches)
    reconciled = await self._reconciler.reconcile(dead_endpoints, served_ids)
    swept = await self._sweeper.sweep(self._retention)

    summary = CycleSummary(
      reminders_considered=len(reminders),
      targets_attempted=sum(len(dispatch.attempts) for dispatch in dispatches),
      deliveries_succeeded=sum(dispatch.delivered_count for dispatch in dispatches),
      targets_pruned=reconciled.targets_pruned or 0,
      reminders_marked_sent=reconciled.reminders_marked_sent or 0,
      reminders_swept=swept,
      duration_ms=_elapsed_ms(started),
    )
    logger.info("Done. %s", " ".join(f"{key}={value}" for key, value in summary.as_log_fields().items()))
    return CycleResult(ok=True, status_code=HTTPStatus.OK, message="ok", summary=summary)


def _elapsed_ms(started: float) -> int:
  return int((time.monotonic() - started) * 1000)
