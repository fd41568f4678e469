from __future__ import annotations

import datetime
import uuid

import pytest
from conftest import NOW, ScriptedSender, endpoint

from nudge.config import load_settings
from nudge.dispatch.contracts import PushDeliveryError
from nudge.dispatch.factory import build_cycle_driver, build_push_sender
from nudge.dispatch.push_sender import NullPushSender


def test_build_push_sender_falls_back_to_null_when_disabled():
  assert isinstance(build_push_sender(load_settings()), NullPushSender)


@pytest.mark.anyio
async def test_factory_built_driver_runs_against_stores(monkeypatch, reminder_store, subscription_store):
  monkeypatch.setattr("nudge.dispatch.factory.ReminderRepository", lambda session_factory: reminder_store)
  monkeypatch.setattr("nudge.dispatch.factory.PushSubscriptionRepository", lambda session_factory: subscription_store)

  alice, bob = uuid.uuid4(), uuid.uuid4()
  alice_reminder = reminder_store.add(user_id=alice, url="/plants")
  bob_reminder = reminder_store.add(user_id=bob)
  expired = reminder_store.add(user_id=alice, fire_at=NOW - datetime.timedelta(days=60), sent=True)
  subscription_store.add(alice, endpoint("alice-laptop"))
  subscription_store.add(alice, endpoint("alice-phone"))
  subscription_store.add(bob, endpoint("bob-old"))
  sender = ScriptedSender({endpoint("alice-phone"): PushDeliveryError("rate limited", status_code=429), endpoint("bob-old"): PushDeliveryError("gone", status_code=410)})

  driver = build_cycle_driver(load_settings(), session_factory=None, sender=sender, clock=lambda: NOW)  # type: ignore[arg-type]
  result = await driver.run()

  assert result.ok
  assert reminder_store.rows[alice_reminder].sent
  assert not reminder_store.rows[bob_reminder].sent
  assert expired not in reminder_store.rows
  assert sorted(subscription_store.endpoints()) == [endpoint("alice-laptop"), endpoint("alice-phone")]
