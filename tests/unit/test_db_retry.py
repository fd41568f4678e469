from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from nudge.storage.retry import classify_db_failure, execute_with_retry


class _PgError(Exception):
  def __init__(self, sqlstate: str) -> None:
    super().__init__(sqlstate)
    self.sqlstate = sqlstate


def test_deadlock_is_retryable():
  exc = OperationalError("UPDATE reminders", {}, _PgError("40P01"))
  assert classify_db_failure(exc).retryable


def test_integrity_violation_is_not_retryable():
  exc = IntegrityError("INSERT", {}, _PgError("23505"))
  classification = classify_db_failure(exc)
  assert not classification.retryable
  assert classification.sqlstate == "23505"


@pytest.mark.anyio
async def test_execute_with_retry_recovers_from_transient_failure():
  attempts = {"count": 0}

  async def _flaky() -> int:
    attempts["count"] += 1
    if attempts["count"] == 1:
      raise OperationalError("DELETE", {}, Exception("connection reset by peer"))
    return 7

  assert await execute_with_retry(operation_name="test", func=_flaky, initial_backoff_ms=0) == 7
  assert attempts["count"] == 2


@pytest.mark.anyio
async def test_execute_with_retry_fails_fast_on_permanent_error():
  attempts = {"count": 0}

  async def _broken() -> int:
    attempts["count"] += 1
    raise IntegrityError("UPDATE", {}, _PgError("23503"))

  with pytest.raises(IntegrityError):
    await execute_with_retry(operation_name="test", func=_broken)

  assert attempts["count"] == 1


@pytest.mark.anyio
async def test_execute_with_retry_gives_up_after_max_attempts():
  attempts = {"count": 0}

  async def _always_conflicting() -> int:
    attempts["count"] += 1
    raise OperationalError("UPDATE", {}, _PgError("40001"))

  with pytest.raises(OperationalError):
    await execute_with_retry(operation_name="test", func=_always_conflicting, max_attempts=3, initial_backoff_ms=0)

  assert attempts["count"] == 3
