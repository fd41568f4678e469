import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("uvicorn.error")


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Catch unhandled errors and answer with a generic failure status."""
  logger.error("Global exception path=%s error_type=%s", request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal Server Error"})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions without leaking 5xx details to callers."""
  if exc.status_code >= 500:
    logger.error("HTTPException path=%s status_code=%s detail=%s", request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": "Internal Server Error"})

  return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
