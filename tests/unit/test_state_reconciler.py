from __future__ import annotations

import copy
import uuid
from unittest.mock import AsyncMock

import pytest
from conftest import endpoint

from nudge.dispatch.contracts import ReconcileResult
from nudge.dispatch.reconciler import StateReconciler


@pytest.mark.anyio
async def test_reconcile_deletes_dead_endpoints_and_marks_served(reminder_store, subscription_store):
  user_id = uuid.uuid4()
  served = reminder_store.add(user_id=user_id)
  pending = reminder_store.add(user_id=user_id)
  subscription_store.add(user_id, endpoint("alive"))
  subscription_store.add(user_id, endpoint("dead"))

  result = await StateReconciler(reminder_repo=reminder_store, subscription_repo=subscription_store).reconcile({endpoint("dead")}, {served})

  assert result == ReconcileResult(targets_pruned=1, reminders_marked_sent=1)
  assert subscription_store.endpoints() == [endpoint("alive")]
  assert reminder_store.rows[served].sent
  assert not reminder_store.rows[pending].sent


@pytest.mark.anyio
async def test_reconcile_twice_leaves_same_state(reminder_store, subscription_store):
  user_id = uuid.uuid4()
  served = reminder_store.add(user_id=user_id)
  subscription_store.add(user_id, endpoint("dead"))
  subscription_store.add(user_id, endpoint("alive"))
  reconciler = StateReconciler(reminder_repo=reminder_store, subscription_repo=subscription_store)

  await reconciler.reconcile({endpoint("dead")}, {served})
  reminders_after_first = copy.deepcopy(reminder_store.rows)
  subscriptions_after_first = list(subscription_store.rows)
  second = await reconciler.reconcile({endpoint("dead")}, {served})

  assert reminder_store.rows == reminders_after_first
  assert subscription_store.rows == subscriptions_after_first
  assert second == ReconcileResult(targets_pruned=0, reminders_marked_sent=0)


@pytest.mark.anyio
async def test_reconcile_with_empty_sets_issues_no_writes(reminder_store, subscription_store):
  result = await StateReconciler(reminder_repo=reminder_store, subscription_repo=subscription_store).reconcile(set(), set())

  assert result == ReconcileResult(targets_pruned=0, reminders_marked_sent=0)
  assert reminder_store.calls == []
  assert subscription_store.calls == []


@pytest.mark.anyio
async def test_failed_delete_does_not_block_mark_sent(reminder_store, subscription_store):
  served = reminder_store.add(user_id=uuid.uuid4())
  subscription_store.fail_on.add("delete_by_endpoints")

  result = await StateReconciler(reminder_repo=reminder_store, subscription_repo=subscription_store).reconcile({endpoint("dead")}, {served})

  assert result.targets_pruned is None
  assert result.reminders_marked_sent == 1
  assert reminder_store.rows[served].sent


@pytest.mark.anyio
async def test_failed_mark_sent_is_logged_not_raised():
  reminder_repo = AsyncMock()
  reminder_repo.mark_sent.side_effect = RuntimeError("db unavailable")
  subscription_repo = AsyncMock()
  subscription_repo.delete_by_endpoints.return_value = 2

  result = await StateReconciler(reminder_repo=reminder_repo, subscription_repo=subscription_repo).reconcile({endpoint("a"), endpoint("b")}, {uuid.uuid4()})

  assert result == ReconcileResult(targets_pruned=2, reminders_marked_sent=None)
  subscription_repo.delete_by_endpoints.assert_awaited_once_with(endpoints={endpoint("a"), endpoint("b")})
