from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from nudge.config import Settings


class Base(DeclarativeBase):
  pass


def database_url(settings: Settings) -> str | None:
  """Build the SQLAlchemy database URL, forcing the asyncpg driver."""
  url = settings.pg_dsn
  if url and url.startswith("postgresql://"):
    url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

  return url


def create_engine(settings: Settings) -> AsyncEngine:
  """Create an async engine for the configured DSN."""
  url = database_url(settings)
  if not url:
    raise RuntimeError("Database connection is not configured (NUDGE_PG_DSN is missing).")

  # Recycle pooled connections so long-idle trigger processes reconnect cleanly.
  return create_async_engine(url, echo=settings.debug, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
  """Build a session factory bound to the given engine."""
  return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
