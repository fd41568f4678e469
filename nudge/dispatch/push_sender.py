"""Push notification delivery implementations."""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass

import requests
from pywebpush import WebPushException, webpush

from nudge.dispatch.contracts import DeliveryTarget, PushDeliveryError, PushPayload, PushSender

logger = logging.getLogger(__name__)

_DETAIL_LIMIT = 256


@dataclass(frozen=True)
class VapidConfig:
  """Configuration required to sign Web Push requests."""

  public_key: str
  private_key: str
  sub: str


class WebPushSender(PushSender):
  """`pywebpush` backed sender that reports failures as typed errors."""

  def __init__(self, *, vapid_config: VapidConfig, timeout_seconds: float = 10.0) -> None:
    self._vapid_config = vapid_config
    self._timeout_seconds = timeout_seconds

  def send(self, target: DeliveryTarget, payload: PushPayload) -> None:
    """Send one payload; a transient failure is left for the next cycle to retry."""
    subscription_info = {"endpoint": target.endpoint, "keys": {"p256dh": target.p256dh, "auth": target.auth}}

    try:
      # pywebpush fills aud/exp into the claims dict, so build a fresh one per send.
      webpush(subscription_info=subscription_info, data=payload.to_json(), vapid_private_key=self._vapid_config.private_key, vapid_claims={"sub": self._vapid_config.sub}, timeout=self._timeout_seconds)
    except WebPushException as exc:
      status_code = _extract_status_code(exc)
      raise PushDeliveryError(f"Push delivery failed (status={status_code if status_code is not None else 'unknown'})", status_code=status_code, detail=_extract_detail(exc)) from exc
    except requests.RequestException as exc:
      raise PushDeliveryError(f"Push transport error: {type(exc).__name__}", status_code=None, detail=str(exc)[:_DETAIL_LIMIT]) from exc


class NullPushSender(PushSender):
  """No-op sender used when push delivery is disabled; every send succeeds."""

  def send(self, target: DeliveryTarget, payload: PushPayload) -> None:
    logger.info("Push delivery disabled; dropping push host=%s title=%r", endpoint_host(target.endpoint), payload.title)


def endpoint_host(endpoint: str) -> str:
  """Return the push service host; endpoint paths carry per-device tokens."""
  try:
    return urllib.parse.urlparse(endpoint).hostname or "<invalid>"
  except ValueError:
    return "<invalid>"


def _extract_status_code(exc: WebPushException) -> int | None:
  """Extract an HTTP status code from a pywebpush exception when available."""
  response = getattr(exc, "response", None)
  if response is None:
    return None

  status = getattr(response, "status_code", None)
  if isinstance(status, int):
    return status

  return None


def _extract_detail(exc: WebPushException) -> str | None:
  response = getattr(exc, "response", None)
  text = getattr(response, "text", None)
  if not isinstance(text, str) or not text:
    return None

  return text[:_DETAIL_LIMIT]
