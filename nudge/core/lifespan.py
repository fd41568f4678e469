import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from nudge.config import get_settings
from nudge.core.database import create_engine, create_session_factory
from nudge.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the database engine for the life of the process."""
  settings = get_settings()
  initialize_logging(settings)
  logger = logging.getLogger("nudge.core.lifespan")

  app.state.settings = settings
  app.state.session_factory = None
  engine = None
  # A missing DSN leaves the trigger endpoint returning 503 instead of failing startup.
  if settings.pg_dsn:
    engine = create_engine(settings)
    app.state.session_factory = create_session_factory(engine)
  else:
    logger.warning("NUDGE_PG_DSN is not set; dispatch trigger is disabled.")

  logger.info("Startup complete environment=%s push_enabled=%s", settings.environment, settings.push_enabled)
  try:
    yield
  finally:
    if engine is not None:
      await engine.dispose()
