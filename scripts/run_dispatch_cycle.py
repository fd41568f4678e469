"""Run one reminder dispatch cycle; intended for cron or a scheduler job."""

from __future__ import annotations

import argparse
import asyncio
import sys

from nudge.config import get_settings
from nudge.core.database import create_engine, create_session_factory
from nudge.core.logging import initialize_logging
from nudge.dispatch.contracts import CycleResult
from nudge.dispatch.factory import build_cycle_driver
from nudge.dispatch.push_sender import NullPushSender


async def run_cycle(*, dry_run: bool) -> CycleResult:
  """Build a driver for this process, run it once, and release the engine."""
  settings = get_settings()
  engine = create_engine(settings)
  try:
    driver = build_cycle_driver(settings, create_session_factory(engine), sender=NullPushSender() if dry_run else None)
    return await driver.run()
  finally:
    await engine.dispose()


def main() -> int:
  parser = argparse.ArgumentParser(description="Send due reminders to every registered device.")
  parser.add_argument("--dry-run", action="store_true", help="Select and reconcile without contacting push services.")
  args = parser.parse_args()

  initialize_logging(get_settings())
  result = asyncio.run(run_cycle(dry_run=bool(args.dry_run)))
  print(f"{int(result.status_code)} {result.message}")
  return 0 if result.ok else 1


if __name__ == "__main__":
  sys.exit(main())
