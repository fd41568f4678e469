from __future__ import annotations

import pytest

from nudge.dispatch.classifier import classify, classify_exception
from nudge.dispatch.contracts import DeliveryOutcome, PushDeliveryError


@pytest.mark.parametrize("status_code", [404, 410])
def test_gone_statuses_are_permanent(status_code):
  assert classify(PushDeliveryError("gone", status_code=status_code)) is DeliveryOutcome.PERMANENT_FAILURE


@pytest.mark.parametrize("status_code", [None, 400, 401, 403, 413, 429, 500, 503])
def test_other_statuses_are_transient(status_code):
  assert classify(PushDeliveryError("nope", status_code=status_code)) is DeliveryOutcome.TRANSIENT_FAILURE


def test_untyped_exceptions_are_transient():
  assert classify_exception(TimeoutError("read timed out")) is DeliveryOutcome.TRANSIENT_FAILURE
  assert classify_exception(PushDeliveryError("gone", status_code=410)) is DeliveryOutcome.PERMANENT_FAILURE
