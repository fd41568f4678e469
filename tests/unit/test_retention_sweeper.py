from __future__ import annotations

import datetime
import uuid

import pytest
from conftest import NOW

from nudge.dispatch.retention import RetentionSweeper


@pytest.mark.anyio
async def test_sweep_removes_only_old_sent_reminders(reminder_store):
  user_id = uuid.uuid4()
  old_sent = reminder_store.add(user_id=user_id, fire_at=NOW - datetime.timedelta(days=31), sent=True)
  young_sent = reminder_store.add(user_id=user_id, fire_at=NOW - datetime.timedelta(days=29), sent=True)
  old_unsent = reminder_store.add(user_id=user_id, fire_at=NOW - datetime.timedelta(days=90), sent=False)

  deleted = await RetentionSweeper(reminder_repo=reminder_store, clock=lambda: NOW).sweep()

  assert deleted == 1
  assert old_sent not in reminder_store.rows
  assert young_sent in reminder_store.rows
  assert old_unsent in reminder_store.rows


@pytest.mark.anyio
async def test_sweep_honours_custom_window(reminder_store):
  reminder_id = reminder_store.add(user_id=uuid.uuid4(), fire_at=NOW - datetime.timedelta(days=8), sent=True)

  await RetentionSweeper(reminder_repo=reminder_store, clock=lambda: NOW).sweep(datetime.timedelta(days=7))

  assert reminder_id not in reminder_store.rows


@pytest.mark.anyio
async def test_sweep_failure_is_not_fatal(reminder_store):
  reminder_store.fail_on.add("delete_sent_before")

  assert await RetentionSweeper(reminder_repo=reminder_store, clock=lambda: NOW).sweep() == 0
