import asyncio
import logging
import sys
from logging.config import fileConfig
from pathlib import Path
from time import perf_counter

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

config = context.config

if config.config_file_name is not None:
  fileConfig(config.config_file_name)

# Table modules register themselves on Base.metadata at import time.
import studio.schema.catalog  # noqa: E402, F401
import studio.schema.jobs  # noqa: E402, F401
import studio.schema.programs  # noqa: E402, F401
from studio.core.database import DATABASE_URL, Base  # noqa: E402

target_metadata = Base.metadata
OWNED_TABLES = frozenset(target_metadata.tables)

logger = logging.getLogger("alembic.runtime.migration")


class _RevisionTimer:
  """Log how long each applied revision took."""

  def __init__(self) -> None:
    self._started: float | None = None

  def start(self) -> None:
    self._started = perf_counter()

  def __call__(self, *, ctx: object, step: object, heads: set[str], run_args: dict[str, object]) -> None:
    revision = getattr(step, "up_revision_id", None) or "unknown"
    if self._started is None:
      logger.info("Applied migration %s", revision)
    else:
      logger.info("Applied migration %s in %.3fs", revision, perf_counter() - self._started)
    self.start()


def _include_object(obj: object, name: str | None, type_: str, reflected: bool, compare_to: object) -> bool:
  """Keep autogenerate away from tables this service does not own (shared database)."""
  if type_ == "table" and reflected and compare_to is None:
    return name in OWNED_TABLES
  return True


def _database_url() -> str:
  if not DATABASE_URL:
    raise RuntimeError("STUDIO_PG_DSN must be set to run migrations.")
  return DATABASE_URL


def run_migrations_offline() -> None:
  """Emit SQL for the configured database without connecting."""
  context.configure(url=_database_url(), target_metadata=target_metadata, literal_binds=True, dialect_opts={"paramstyle": "named"}, compare_type=True, include_object=_include_object)

  with context.begin_transaction():
    context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
  timer = _RevisionTimer()
  context.configure(connection=connection, target_metadata=target_metadata, compare_type=True, include_object=_include_object, on_version_apply=timer)
  migration_context = context.get_context()
  heads = migration_context.script.get_heads() if migration_context.script else []
  logger.info("Migrating generation tables from %s to %s", migration_context.get_current_revision() or "base", ", ".join(heads) or "none")
  timer.start()

  with context.begin_transaction():
    context.run_migrations()

  logger.info("Generation tables at %s", ", ".join(migration_context.get_current_heads()) or "none")


async def run_async_migrations() -> None:
  configuration = config.get_section(config.config_ini_section) or {}
  configuration["sqlalchemy.url"] = _database_url()
  connectable = async_engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

  try:
    async with connectable.connect() as connection:
      await connection.run_sync(do_run_migrations)
  finally:
    await connectable.dispose()


if context.is_offline_mode():
  run_migrations_offline()
else:
  asyncio.run(run_async_migrations())
