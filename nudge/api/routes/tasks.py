from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from nudge.config import Settings, get_settings
from nudge.dispatch.cycle import CycleDriver
from nudge.dispatch.factory import build_cycle_driver

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


def require_task_secret(settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_nudge_task_secret: str | None = Header(default=None)) -> None:
  """Reject callers that do not present the shared scheduler secret."""
  # Secure-by-default: without a configured secret nobody may trigger a cycle.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")

  header_valid = secrets.compare_digest((x_nudge_task_secret or "").encode(), settings.task_secret.encode())
  bearer_valid = secrets.compare_digest((authorization or "").encode(), f"Bearer {settings.task_secret}".encode())
  if not header_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to /send-notifications")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


def get_cycle_driver(request: Request, settings: Annotated[Settings, Depends(get_settings)]) -> CycleDriver:
  session_factory = getattr(request.app.state, "session_factory", None)
  if session_factory is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database is not configured.")

  return build_cycle_driver(settings, session_factory)


@router.post("/send-notifications", dependencies=[Depends(require_task_secret)])
async def send_notifications_task(driver: Annotated[CycleDriver, Depends(get_cycle_driver)]) -> JSONResponse:
  """Run one dispatch cycle and report its status to the scheduler."""
  result = await driver.run()
  return JSONResponse(status_code=int(result.status_code), content=result.as_response())
