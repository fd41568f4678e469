"""Shared fixtures: in-memory stores and a scripted push sender."""

from __future__ import annotations

import datetime
import os
import threading
import time
import uuid
from dataclasses import dataclass

os.environ.setdefault("NUDGE_PUSH_ENABLED", "false")

import pytest  # noqa: E402

from nudge.dispatch.contracts import DataAccessError, DeliveryTarget, DueReminder, PushPayload  # noqa: E402

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.UTC)


@dataclass
class StoredReminder:
  id: uuid.UUID
  user_id: uuid.UUID
  title: str
  body: str
  url: str | None
  fire_at: datetime.datetime
  sent: bool = False


class InMemoryReminderStore:
  """Reminder store double with the same filter semantics as the Postgres repo."""

  def __init__(self) -> None:
    self.rows: dict[uuid.UUID, StoredReminder] = {}
    self.calls: list[str] = []
    self.fail_on: set[str] = set()

  def add(self, *, user_id: uuid.UUID, fire_at: datetime.datetime = NOW - datetime.timedelta(minutes=1), sent: bool = False, title: str = "Stretch", body: str = "Time to stand up", url: str | None = None) -> uuid.UUID:
    reminder_id = uuid.uuid4()
    self.rows[reminder_id] = StoredReminder(id=reminder_id, user_id=user_id, title=title, body=body, url=url, fire_at=fire_at, sent=sent)
    return reminder_id

  def _record(self, operation: str) -> None:
    self.calls.append(operation)
    if operation in self.fail_on:
      raise DataAccessError(operation, "connection refused")

  async def list_due(self, *, now: datetime.datetime, limit: int) -> list[DueReminder]:
    self._record("list_due")
    due = sorted((row for row in self.rows.values() if not row.sent and row.fire_at <= now), key=lambda row: row.fire_at)
    return [DueReminder(id=row.id, user_id=row.user_id, title=row.title, body=row.body, url=row.url, fire_at=row.fire_at) for row in due[:limit]]

  async def mark_sent(self, *, reminder_ids: set[uuid.UUID]) -> int:
    self._record("mark_sent")
    changed = 0
    for reminder_id in reminder_ids:
      row = self.rows.get(reminder_id)
      if row is not None and not row.sent:
        row.sent = True
        changed += 1
    return changed

  async def delete_sent_before(self, *, cutoff: datetime.datetime) -> int:
    self._record("delete_sent_before")
    doomed = [row.id for row in self.rows.values() if row.sent and row.fire_at <= cutoff]
    for reminder_id in doomed:
      del self.rows[reminder_id]
    return len(doomed)


class InMemorySubscriptionStore:
  def __init__(self) -> None:
    self.rows: list[DeliveryTarget] = []
    self.calls: list[str] = []
    self.fail_on: set[str] = set()

  def add(self, user_id: uuid.UUID, endpoint: str) -> DeliveryTarget:
    target = DeliveryTarget(user_id=user_id, endpoint=endpoint, p256dh="BEl6f5Y8X5Y_u7d8mV_AbpZfXfTLT3s1O3L4wM1x8QY2_5qWQ-jxJq7uKjv8mQ4I", auth="gq8Yh5xA9l2mQ6pR")
    self.rows.append(target)
    return target

  def endpoints(self) -> list[str]:
    return [row.endpoint for row in self.rows]

  def _record(self, operation: str) -> None:
    self.calls.append(operation)
    if operation in self.fail_on:
      raise DataAccessError(operation, "connection refused")

  async def list_for_users(self, *, user_ids: set[uuid.UUID]) -> list[DeliveryTarget]:
    self._record("list_for_users")
    return [row for row in self.rows if row.user_id in user_ids]

  async def delete_by_endpoints(self, *, endpoints: set[str]) -> int:
    self._record("delete_by_endpoints")
    before = len(self.rows)
    self.rows = [row for row in self.rows if row.endpoint not in endpoints]
    return before - len(self.rows)


class ScriptedSender:
  """Push sender double: raises the exception scripted for an endpoint, else succeeds."""

  def __init__(self, failures: dict[str, Exception] | None = None, *, delay_seconds: float = 0.0) -> None:
    self.failures = failures or {}
    self.delay_seconds = delay_seconds
    self.sent: list[tuple[str, PushPayload]] = []
    self.in_flight = 0
    self.max_in_flight = 0
    self._lock = threading.Lock()

  def send(self, target: DeliveryTarget, payload: PushPayload) -> None:
    with self._lock:
      self.in_flight += 1
      self.max_in_flight = max(self.max_in_flight, self.in_flight)
    try:
      if self.delay_seconds:
        time.sleep(self.delay_seconds)
      with self._lock:
        self.sent.append((target.endpoint, payload))
      failure = self.failures.get(target.endpoint)
      if failure is not None:
        raise failure
    finally:
      with self._lock:
        self.in_flight -= 1

  def endpoints_sent(self) -> list[str]:
    return [endpoint for endpoint, _ in self.sent]


@pytest.fixture
def reminder_store() -> InMemoryReminderStore:
  return InMemoryReminderStore()


@pytest.fixture
def subscription_store() -> InMemorySubscriptionStore:
  return InMemorySubscriptionStore()


def endpoint(name: str) -> str:
  return f"https://fcm.googleapis.com/fcm/send/{name}"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"
