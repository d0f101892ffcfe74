"""Repository selection based on configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from studio.config import Settings
from studio.storage.catalog_repo import CatalogRepository
from studio.storage.jobs_repo import JobsRepository
from studio.storage.memory import InMemoryCatalogRepository, InMemoryJobsRepository, InMemoryProfilesRepository, InMemoryProgramsRepository
from studio.storage.profiles_repo import ProfilesRepository
from studio.storage.programs_repo import ProgramsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repositories:
  """Bundle of the repositories one generation job needs."""

  jobs: JobsRepository
  programs: ProgramsRepository
  catalog: CatalogRepository
  profiles: ProfilesRepository


def _build_repositories(settings: Settings) -> Repositories:
  if not settings.pg_dsn:
    logger.warning("STUDIO_PG_DSN is not set; using in-memory repositories.")
    return Repositories(jobs=InMemoryJobsRepository(), programs=InMemoryProgramsRepository(), catalog=InMemoryCatalogRepository(), profiles=InMemoryProfilesRepository())

  # Import lazily so asyncpg is only required when Postgres is configured.
  from studio.storage.postgres_catalog_repo import PostgresCatalogRepository, PostgresProfilesRepository
  from studio.storage.postgres_jobs_repo import PostgresJobsRepository
  from studio.storage.postgres_programs_repo import PostgresProgramsRepository

  return Repositories(jobs=PostgresJobsRepository(), programs=PostgresProgramsRepository(), catalog=PostgresCatalogRepository(), profiles=PostgresProfilesRepository())


@lru_cache(maxsize=1)
def _cached_repositories(settings: Settings) -> Repositories:
  return _build_repositories(settings)


def get_repositories(settings: Settings) -> Repositories:
  """Return the process-wide repositories for the active settings."""
  return _cached_repositories(settings)


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""
  return get_repositories(settings).jobs
