"""Contracts shared by the reminder dispatch cycle."""

from __future__ import annotations

import datetime
import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


@dataclass(frozen=True)
class DueReminder:
  """A reminder selected for delivery in the current cycle."""

  id: uuid.UUID
  user_id: uuid.UUID
  title: str
  body: str
  url: str | None
  fire_at: datetime.datetime


@dataclass(frozen=True)
class DeliveryTarget:
  """One registered push endpoint plus the keys needed to encrypt for it."""

  user_id: uuid.UUID
  endpoint: str
  p256dh: str
  auth: str


@dataclass(frozen=True)
class PushPayload:
  """The small JSON document a service worker receives."""

  title: str
  body: str
  url: str = "/"

  @classmethod
  def for_reminder(cls, reminder: DueReminder) -> PushPayload:
    return cls(title=reminder.title, body=reminder.body, url=reminder.url or "/")

  def to_json(self) -> str:
    return json.dumps({"title": self.title, "body": self.body, "url": self.url}, separators=(",", ":"))


class DeliveryOutcome(str, Enum):
  SUCCESS = "success"
  TRANSIENT_FAILURE = "transient_failure"
  PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class TargetAttempt:
  """Result of one send to one target."""

  target: DeliveryTarget
  outcome: DeliveryOutcome
  status_code: int | None = None
  error: str | None = None


@dataclass(frozen=True)
class ReminderDispatch:
  """All attempts made for a reminder in this cycle."""

  reminder: DueReminder
  attempts: tuple[TargetAttempt, ...]

  @property
  def served(self) -> bool:
    """True when at least one device accepted the notification."""
    return any(attempt.outcome is DeliveryOutcome.SUCCESS for attempt in self.attempts)

  @property
  def delivered_count(self) -> int:
    return sum(1 for attempt in self.attempts if attempt.outcome is DeliveryOutcome.SUCCESS)

  @property
  def permanently_failed_endpoints(self) -> list[str]:
    return [attempt.target.endpoint for attempt in self.attempts if attempt.outcome is DeliveryOutcome.PERMANENT_FAILURE]


@dataclass(frozen=True)
class ReconcileResult:
  """Row counts from the reconciliation writes; None means the write failed."""

  targets_pruned: int | None = 0
  reminders_marked_sent: int | None = 0


@dataclass(frozen=True)
class CycleSummary:
  """Counters for one dispatch cycle, used for observability only."""

  reminders_considered: int = 0
  targets_attempted: int = 0
  deliveries_succeeded: int = 0
  targets_pruned: int = 0
  reminders_marked_sent: int = 0
  reminders_swept: int = 0
  duration_ms: int = 0

  def as_log_fields(self) -> dict[str, int]:
    return {
      "reminders": self.reminders_considered,
      "targets": self.targets_attempted,
      "sent": self.deliveries_succeeded,
      "pruned": self.targets_pruned,
      "marked": self.reminders_marked_sent,
      "swept": self.reminders_swept,
      "duration_ms": self.duration_ms,
    }


@dataclass(frozen=True)
class CycleResult:
  """What the trigger boundary reports back to the scheduler."""

  ok: bool
  status_code: int
  message: str
  summary: CycleSummary | None = field(default=None)

  def as_response(self) -> dict[str, Any]:
    body: dict[str, Any] = {"status": self.message}
    if self.summary is not None:
      body["summary"] = self.summary.as_log_fields()
    return body


class NotificationError(Exception):
  """Base class for all notification dispatch failures."""


class PushDeliveryError(NotificationError):
  """A push provider rejected or failed a send.

  `status_code` is the provider's HTTP status when a response was received and None for
  transport-level failures such as timeouts or connection resets.
  """

  def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.detail = detail


class DataAccessError(NotificationError):
  """A read or write against the reminder or subscription store failed."""

  def __init__(self, operation: str, message: str) -> None:
    super().__init__(f"{operation}: {message}")
    self.operation = operation


class PushSender(Protocol):
  """Delivery contract for sending one push notification."""

  def send(self, target: DeliveryTarget, payload: PushPayload) -> None:
    """Send synchronously; raise PushDeliveryError on failure."""


class ReminderStore(Protocol):
  async def list_due(self, *, now: datetime.datetime, limit: int) -> list[DueReminder]: ...

  async def mark_sent(self, *, reminder_ids: set[uuid.UUID]) -> int: ...

  async def delete_sent_before(self, *, cutoff: datetime.datetime) -> int: ...


class SubscriptionStore(Protocol):
  async def list_for_users(self, *, user_ids: set[uuid.UUID]) -> list[DeliveryTarget]: ...

  async def delete_by_endpoints(self, *, endpoints: set[str]) -> int: ...
