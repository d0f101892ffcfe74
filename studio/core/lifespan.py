import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from studio.core.database import dispose_engine
from studio.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging after uvicorn starts and release the database pool on shutdown."""
  from studio.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("studio.core.lifespan")

  try:
    setup_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # Keep serving with uvicorn's default handlers when logs/ is not writable.
    logger.warning("Logging setup failed; continuing with default handlers.", exc_info=True)

  logger.info("Storage backend: %s; provider=%s model=%s", _redact_dsn(settings.pg_dsn) if settings.pg_dsn else "in-memory", settings.provider, settings.model)

  yield

  await dispose_engine()
  logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
