"""Classification of push delivery failures."""

from __future__ import annotations

from http import HTTPStatus

from nudge.dispatch.contracts import DeliveryOutcome, PushDeliveryError

_GONE_STATUSES = frozenset({HTTPStatus.NOT_FOUND, HTTPStatus.GONE})


def classify(error: PushDeliveryError) -> DeliveryOutcome:
  """Map a delivery error to permanent (endpoint gone) or transient."""
  if error.status_code is not None and error.status_code in _GONE_STATUSES:
    return DeliveryOutcome.PERMANENT_FAILURE

  return DeliveryOutcome.TRANSIENT_FAILURE


def classify_exception(exc: BaseException) -> DeliveryOutcome:
  """Classify any exception raised by a sender; only typed errors can be permanent."""
  if isinstance(exc, PushDeliveryError):
    return classify(exc)

  return DeliveryOutcome.TRANSIENT_FAILURE
