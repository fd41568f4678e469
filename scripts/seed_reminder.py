"""Schedule a reminder, and optionally register a device, for local testing."""

from __future__ import annotations

import argparse
import asyncio
import datetime
import uuid

from nudge.config import get_settings
from nudge.core.database import create_engine, create_session_factory
from nudge.storage.push_subscription_repo import PushSubscriptionEntry, PushSubscriptionRepository
from nudge.storage.reminders_repo import ReminderEntry, ReminderRepository


async def _seed(args: argparse.Namespace) -> uuid.UUID:
  engine = create_engine(get_settings())
  session_factory = create_session_factory(engine)
  user_id = uuid.UUID(args.user_id)
  try:
    if args.endpoint:
      subscription = PushSubscriptionEntry(user_id=user_id, endpoint=args.endpoint, p256dh=args.p256dh or "", auth=args.auth or "", user_agent="seed_reminder.py")
      await PushSubscriptionRepository(session_factory).add(subscription)

    fire_at = datetime.datetime.now(datetime.UTC) + datetime.timedelta(seconds=args.in_seconds)
    entry = ReminderEntry(user_id=user_id, title=args.title, body=args.body, url=args.url, fire_at=fire_at)
    return await ReminderRepository(session_factory).create(entry)
  finally:
    await engine.dispose()


def main() -> None:
  parser = argparse.ArgumentParser(description="Insert a reminder row (and optionally a push subscription).")
  parser.add_argument("--user-id", required=True, help="Recipient UUID.")
  parser.add_argument("--title", default="Reminder")
  parser.add_argument("--body", default="This is your scheduled reminder.")
  parser.add_argument("--url", default=None, help="URL opened on click (defaults to / in the payload).")
  parser.add_argument("--in-seconds", type=int, default=0, help="Delay before the reminder is due.")
  parser.add_argument("--endpoint", default=None, help="Push endpoint to register for the user.")
  parser.add_argument("--p256dh", default=None)
  parser.add_argument("--auth", default=None)
  args = parser.parse_args()

  if args.endpoint and not (args.p256dh and args.auth):
    raise RuntimeError("--p256dh and --auth are required with --endpoint.")

  reminder_id = asyncio.run(_seed(args))
  print(f"Scheduled reminder {reminder_id}")


if __name__ == "__main__":
  main()
