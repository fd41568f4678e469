from __future__ import annotations

from fastapi import FastAPI, HTTPException

from nudge.api.routes import tasks
from nudge.core.exceptions import global_exception_handler, http_exception_handler
from nudge.core.lifespan import lifespan

app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
