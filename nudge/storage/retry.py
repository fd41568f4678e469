"""Retry idempotent database writes on transient Postgres failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 40001 serialization failure, 40P01 deadlock detected.
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})
_CONNECTION_PATTERNS = ("connection", "timeout", "reset", "broken pipe", "closed")


@dataclass(frozen=True)
class DBFailureClassification:
  retryable: bool
  category: str
  sqlstate: str | None


def _extract_sqlstate(exc: BaseException) -> str | None:
  """Extract the Postgres SQLSTATE from a SQLAlchemy exception."""
  if not isinstance(exc, DBAPIError):
    return None
  orig = getattr(exc, "orig", None)
  # asyncpg exposes `sqlstate`, psycopg exposes `pgcode`.
  for attr in ("sqlstate", "pgcode"):
    value = getattr(orig, attr, None)
    if value:
      return str(value)
  return None


def classify_db_failure(exc: BaseException) -> DBFailureClassification:
  """Decide whether a failed statement is worth running again."""
  sqlstate = _extract_sqlstate(exc)
  if sqlstate in _RETRYABLE_SQLSTATES:
    return DBFailureClassification(retryable=True, category="transaction_conflict", sqlstate=sqlstate)

  if isinstance(exc, OperationalError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
    message = str(exc).lower()
    if exc.connection_invalidated or any(pattern in message for pattern in _CONNECTION_PATTERNS):
      return DBFailureClassification(retryable=True, category="connectivity_error", sqlstate=sqlstate)

  return DBFailureClassification(retryable=False, category=type(exc).__name__, sqlstate=sqlstate)


async def execute_with_retry(*, operation_name: str, func: Callable[[], Awaitable[T]], max_attempts: int = 3, initial_backoff_ms: int = 100, max_backoff_ms: int = 2000) -> T:
  """Run `func` until it succeeds, fails permanently, or attempts run out.

  `func` must be idempotent; it is re-invoked from scratch on each attempt.
  """
  attempt = 0
  while True:
    attempt += 1
    try:
      return await func()
    except Exception as exc:
      classification = classify_db_failure(exc)
      if not classification.retryable or attempt >= max_attempts:
        logger.warning("DB operation failed: operation=%s attempt=%d/%d category=%s sqlstate=%s", operation_name, attempt, max_attempts, classification.category, classification.sqlstate or "none")
        raise

      backoff_ms = min(initial_backoff_ms * (2 ** (attempt - 1)), max_backoff_ms)
      backoff_ms += random.uniform(-0.25, 0.25) * backoff_ms
      logger.info("Retrying DB operation after backoff: operation=%s attempt=%d/%d backoff_ms=%.1f category=%s", operation_name, attempt, max_attempts, backoff_ms, classification.category)
      await asyncio.sleep(backoff_ms / 1000.0)
