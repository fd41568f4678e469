"""Read `NUDGE_*` settings from a local .env file before configuration loads."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ("'", '"')


def default_env_path() -> Path:
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Split one .env line into (key, value), or None for blanks, comments and junk.

  Accepts an optional leading `export` and strips one pair of matching quotes.
  """
  line = raw_line.strip()
  if line.startswith("#"):
    return None

  line = line.removeprefix("export ").lstrip()
  key, sep, value = line.partition("=")
  key = key.strip()
  if not (sep and key):
    return None

  value = value.strip()
  if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
    value = value[1:-1]
  return key, value


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Export every entry of `path` into os.environ; a missing file is fine."""
  if not path.is_file():
    return

  entries = (parse_env_line(line) for line in path.read_text(encoding="utf-8").splitlines())
  for key, value in filter(None, entries):
    if override or key not in os.environ:
      os.environ[key] = value
