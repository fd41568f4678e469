"""Factory helpers for the dispatch cycle."""

from __future__ import annotations

import datetime
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nudge.config import Settings
from nudge.dispatch.contracts import PushSender
from nudge.dispatch.cycle import CycleDriver
from nudge.dispatch.fanout import FanoutEngine
from nudge.dispatch.push_sender import NullPushSender, VapidConfig, WebPushSender
from nudge.dispatch.reconciler import StateReconciler
from nudge.dispatch.resolver import TargetResolver
from nudge.dispatch.retention import RetentionSweeper, utc_now
from nudge.storage.push_subscription_repo import PushSubscriptionRepository
from nudge.storage.reminders_repo import ReminderRepository


def build_push_sender(settings: Settings) -> PushSender:
  """Pick the real sender only when push is enabled and fully configured."""
  if settings.push_enabled and settings.push_vapid_public_key and settings.push_vapid_private_key and settings.push_vapid_sub:
    vapid_config = VapidConfig(public_key=settings.push_vapid_public_key, private_key=settings.push_vapid_private_key, sub=settings.push_vapid_sub)
    return WebPushSender(vapid_config=vapid_config, timeout_seconds=settings.push_timeout_seconds)

  return NullPushSender()


def build_cycle_driver(settings: Settings, session_factory: async_sessionmaker[AsyncSession], *, sender: PushSender | None = None, clock: Callable[[], datetime.datetime] = utc_now) -> CycleDriver:
  """Wire a cycle driver from configuration and an explicit session factory."""
  reminder_repo = ReminderRepository(session_factory)
  subscription_repo = PushSubscriptionRepository(session_factory)
  return CycleDriver(
    reminder_repo=reminder_repo,
    resolver=TargetResolver(subscription_repo=subscription_repo),
    fanout=FanoutEngine(sender=sender or build_push_sender(settings), max_concurrent_sends=settings.max_concurrent_sends),
    reconciler=StateReconciler(reminder_repo=reminder_repo, subscription_repo=subscription_repo),
    sweeper=RetentionSweeper(reminder_repo=reminder_repo, clock=clock),
    batch_size=settings.dispatch_batch_size,
    retention=settings.retention,
    clock=clock,
  )
