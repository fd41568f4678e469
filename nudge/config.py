"""Service configuration loaded from environment variables."""

from __future__ import annotations

import datetime
import os
from dataclasses import dataclass
from functools import lru_cache

from nudge.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the reminder dispatch service."""

  environment: str
  debug: bool
  pg_dsn: str | None
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  push_enabled: bool
  push_vapid_public_key: str | None
  push_vapid_private_key: str | None
  push_vapid_sub: str | None
  push_timeout_seconds: float
  dispatch_batch_size: int
  max_concurrent_sends: int
  retention_days: int
  task_secret: str | None

  @property
  def retention(self) -> datetime.timedelta:
    """Age after which sent reminders are swept."""
    return datetime.timedelta(days=self.retention_days)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None or raw.strip() == "":
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  stripped = raw.strip()
  return stripped or None


def _positive_int(name: str, default: str) -> int:
  raw = os.getenv(name, default)
  try:
    value = int(raw)
  except ValueError:
    raise ValueError(f"{name} must be a positive integer.") from None

  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")

  return value


def load_settings() -> Settings:
  """Build settings from the current process environment without caching."""

  environment = os.getenv("NUDGE_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("NUDGE_DEBUG"))
  pg_dsn = _optional_str(os.getenv("NUDGE_PG_DSN"))
  log_dir = (os.getenv("NUDGE_LOG_DIR") or "./logs").strip()

  log_max_bytes = _positive_int("NUDGE_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("NUDGE_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("NUDGE_LOG_BACKUP_COUNT must be zero or a positive integer.")

  push_enabled = _parse_bool(os.getenv("NUDGE_PUSH_ENABLED"), default=True)
  push_vapid_public_key = _optional_str(os.getenv("NUDGE_PUSH_VAPID_PUBLIC_KEY"))
  push_vapid_private_key = _optional_str(os.getenv("NUDGE_PUSH_VAPID_PRIVATE_KEY"))
  push_vapid_sub = _optional_str(os.getenv("NUDGE_PUSH_VAPID_SUB"))

  try:
    push_timeout_seconds = float(os.getenv("NUDGE_PUSH_TIMEOUT_SECONDS", "10"))
  except ValueError:
    raise ValueError("NUDGE_PUSH_TIMEOUT_SECONDS must be a positive number.") from None
  if push_timeout_seconds <= 0:
    raise ValueError("NUDGE_PUSH_TIMEOUT_SECONDS must be a positive number.")

  # Validate VAPID credentials only when real delivery is enabled.
  if push_enabled:
    if not push_vapid_public_key:
      raise ValueError("NUDGE_PUSH_VAPID_PUBLIC_KEY must be set when push delivery is enabled.")

    if not push_vapid_private_key:
      raise ValueError("NUDGE_PUSH_VAPID_PRIVATE_KEY must be set when push delivery is enabled.")

    if not push_vapid_sub:
      raise ValueError("NUDGE_PUSH_VAPID_SUB must be set when push delivery is enabled.")

    if not (push_vapid_sub.startswith("mailto:") or push_vapid_sub.startswith("https://")):
      raise ValueError("NUDGE_PUSH_VAPID_SUB must start with 'mailto:' or 'https://'.")

  return Settings(
    environment=environment,
    debug=debug,
    pg_dsn=pg_dsn,
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    push_enabled=push_enabled,
    push_vapid_public_key=push_vapid_public_key,
    push_vapid_private_key=push_vapid_private_key,
    push_vapid_sub=push_vapid_sub,
    push_timeout_seconds=push_timeout_seconds,
    dispatch_batch_size=_positive_int("NUDGE_DISPATCH_BATCH_SIZE", "500"),
    max_concurrent_sends=_positive_int("NUDGE_MAX_CONCURRENT_SENDS", "32"),
    retention_days=_positive_int("NUDGE_RETENTION_DAYS", "30"),
    task_secret=_optional_str(os.getenv("NUDGE_TASK_SECRET")),
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  return load_settings()
