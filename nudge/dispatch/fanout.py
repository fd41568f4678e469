"""Concurrent fan-out of reminders to every registered device."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence

from starlette.concurrency import run_in_threadpool

from nudge.dispatch.classifier import classify_exception
from nudge.dispatch.contracts import DeliveryOutcome, DeliveryTarget, DueReminder, PushDeliveryError, PushPayload, PushSender, ReminderDispatch, TargetAttempt
from nudge.dispatch.push_sender import endpoint_host

logger = logging.getLogger(__name__)


class FanoutEngine:
  """Send each due reminder to all of its recipient's targets.

  Attempts run concurrently across reminders and across targets, with at most
  `max_concurrent_sends` sends outstanding at once. `dispatch` returns only after every
  attempt has finished.
  """

  def __init__(self, *, sender: PushSender, max_concurrent_sends: int = 32) -> None:
    if max_concurrent_sends <= 0:
      raise ValueError("max_concurrent_sends must be a positive integer.")
    self._sender = sender
    self._max_concurrent_sends = max_concurrent_sends

  async def dispatch(self, reminders: Sequence[DueReminder], targets_by_user: Mapping[uuid.UUID, Sequence[DeliveryTarget]]) -> list[ReminderDispatch]:
    """Deliver every reminder that has at least one target.

    Reminders whose user has no targets are skipped and do not appear in the result.
    """
    limiter = asyncio.Semaphore(self._max_concurrent_sends)
    jobs = []
    for reminder in reminders:
      targets = targets_by_user.get(reminder.user_id) or ()
      if not targets:
        logger.debug("Skipping reminder id=%s; user has no push targets", reminder.id)
        continue
      jobs.append(self._dispatch_reminder(reminder, targets, limiter))

    return list(await asyncio.gather(*jobs))

  async def _dispatch_reminder(self, reminder: DueReminder, targets: Sequence[DeliveryTarget], limiter: asyncio.Semaphore) -> ReminderDispatch:
    payload = PushPayload.for_reminder(reminder)
    results = await asyncio.gather(*(self._attempt(reminder, target, payload, limiter) for target in targets), return_exceptions=True)
    attempts = []
    for target, result in zip(targets, results, strict=True):
      if isinstance(result, TargetAttempt):
        attempts.append(result)
        continue
      if not isinstance(result, Exception):
        raise result
      logger.error("Push attempt aborted reminder_id=%s user_id=%s error=%s", reminder.id, target.user_id, type(result).__name__)
      attempts.append(TargetAttempt(target=target, outcome=DeliveryOutcome.TRANSIENT_FAILURE, error=str(result)))
    return ReminderDispatch(reminder=reminder, attempts=tuple(attempts))

  async def _attempt(self, reminder: DueReminder, target: DeliveryTarget, payload: PushPayload, limiter: asyncio.Semaphore) -> TargetAttempt:
    """Run one send; every failure is captured as an attempt, never raised."""
    async with limiter:
      try:
        await run_in_threadpool(self._sender.send, target, payload)
      except Exception as exc:  # noqa: BLE001
        outcome = classify_exception(exc)
        match exc:
          case PushDeliveryError(status_code=status_code, detail=detail):
            pass
          case _:
            status_code, detail = None, None
        logger.error("Push error reminder_id=%s host=%s status=%s outcome=%s error=%s", reminder.id, endpoint_host(target.endpoint), status_code, outcome.value, detail or exc)
        return TargetAttempt(target=target, outcome=outcome, status_code=status_code, error=str(exc))

    return TargetAttempt(target=target, outcome=DeliveryOutcome.SUCCESS)
