"""Application configuration loaded from environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from studio.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the studio program engine."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  provider: str
  model: str
  temperature: float
  prompt_version: str
  anthropic_api_key: str | None
  gemini_api_key: str | None
  openrouter_api_key: str | None
  platform_max_duration_seconds: float
  deadline_base_seconds: float
  deadline_per_unit_seconds: float
  deadline_grace_seconds: float
  small_program_threshold: int
  chunk_size: int
  token_floor: int
  token_ceiling: int
  token_base_estimate: int
  per_group_token_estimate: int
  minimum_per_group: int
  truncation_retries: int
  provider_retry_delays: tuple[float, ...]
  jobs_auto_process: bool
  pricing_overrides: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


@dataclass(frozen=True)
class GenerationLimits:
  """Tunables consumed by the generation pipeline."""

  platform_max_duration_seconds: float = 300.0
  deadline_base_seconds: float = 20.0
  deadline_per_unit_seconds: float = 35.0
  deadline_grace_seconds: float = 5.0
  small_program_threshold: int = 3
  chunk_size: int = 2
  token_floor: int = 10_000
  token_ceiling: int = 16_384
  token_base_estimate: int = 5_000
  per_group_token_estimate: int = 1_080
  minimum_per_group: int = 4
  truncation_retries: int = 1
  provider_retry_delays: tuple[float, ...] = (2.0, 5.0)
  temperature: float = 0.7


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if "*" in origins:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_json_dict(raw: str | None, default: dict[str, Any]) -> dict[str, Any]:
  if not raw:
    return default
  try:
    parsed = json.loads(raw)
  except json.JSONDecodeError:
    return default
  return parsed if isinstance(parsed, dict) else default


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_delays(raw: str | None) -> tuple[float, ...]:
  """Parse a comma-separated list of retry delays in seconds."""
  if raw is None:
    return (2.0, 5.0)
  delays = tuple(float(part) for part in raw.split(",") if part.strip())
  if any(delay < 0 for delay in delays):
    raise ValueError("STUDIO_PROVIDER_RETRY_DELAYS must not contain negative values.")
  return delays


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("STUDIO_ENV", "development").lower()
  debug = _parse_bool(os.getenv("STUDIO_DEBUG"))

  log_max_bytes = _positive_int("STUDIO_LOG_MAX_BYTES", "5242880")
  log_backup_count = int(os.getenv("STUDIO_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("STUDIO_LOG_BACKUP_COUNT must be zero or a positive integer.")

  temperature = float(os.getenv("STUDIO_TEMPERATURE", "0.7"))
  if not 0.0 <= temperature <= 2.0:
    raise ValueError("STUDIO_TEMPERATURE must be between 0 and 2.")

  # The platform ceiling caps every computed deadline, so it must be validated first.
  platform_max_duration_seconds = _positive_float("STUDIO_PLATFORM_MAX_DURATION_SECONDS", "300")
  token_floor = _positive_int("STUDIO_TOKEN_FLOOR", "10000")
  token_ceiling = _positive_int("STUDIO_TOKEN_CEILING", "16384")
  if token_floor > token_ceiling:
    raise ValueError("STUDIO_TOKEN_FLOOR must not exceed STUDIO_TOKEN_CEILING.")

  truncation_retries = int(os.getenv("STUDIO_TRUNCATION_RETRIES", "1"))
  if truncation_retries < 0:
    raise ValueError("STUDIO_TRUNCATION_RETRIES must be zero or a positive integer.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("STUDIO_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("STUDIO_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("STUDIO_PG_DSN") or os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("STUDIO_PG_CONNECT_TIMEOUT", "5"),
    provider=(os.getenv("STUDIO_PROVIDER") or "anthropic").strip().lower(),
    model=(os.getenv("STUDIO_MODEL") or "claude-sonnet-4-5-20250929").strip(),
    temperature=temperature,
    prompt_version=os.getenv("STUDIO_PROMPT_VERSION", "v1.0.0"),
    anthropic_api_key=_optional_str(os.getenv("ANTHROPIC_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    openrouter_api_key=_optional_str(os.getenv("OPENROUTER_API_KEY")),
    platform_max_duration_seconds=platform_max_duration_seconds,
    deadline_base_seconds=_positive_float("STUDIO_DEADLINE_BASE_SECONDS", "20"),
    deadline_per_unit_seconds=_positive_float("STUDIO_DEADLINE_PER_UNIT_SECONDS", "35"),
    deadline_grace_seconds=_positive_float("STUDIO_DEADLINE_GRACE_SECONDS", "5"),
    small_program_threshold=_positive_int("STUDIO_SMALL_PROGRAM_THRESHOLD", "3"),
    chunk_size=_positive_int("STUDIO_CHUNK_SIZE", "2"),
    token_floor=token_floor,
    token_ceiling=token_ceiling,
    token_base_estimate=int(os.getenv("STUDIO_TOKEN_BASE_ESTIMATE", "5000")),
    per_group_token_estimate=_positive_int("STUDIO_PER_GROUP_TOKEN_ESTIMATE", "1080"),
    minimum_per_group=_positive_int("STUDIO_MINIMUM_PER_GROUP", "4"),
    truncation_retries=truncation_retries,
    provider_retry_delays=_parse_delays(os.getenv("STUDIO_PROVIDER_RETRY_DELAYS")),
    jobs_auto_process=_parse_bool(os.getenv("STUDIO_JOBS_AUTO_PROCESS"), default=True),
    pricing_overrides=_parse_json_dict(os.getenv("STUDIO_PRICING_OVERRIDES"), {}),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the full web runtime configuration."""
  debug = _parse_bool(os.getenv("STUDIO_DEBUG"))
  pg_connect_timeout = _positive_int("STUDIO_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("STUDIO_PG_DSN") or os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def get_generation_limits(settings: Settings) -> GenerationLimits:
  """Project the generation tunables out of the process settings."""
  return GenerationLimits(
    platform_max_duration_seconds=settings.platform_max_duration_seconds,
    deadline_base_seconds=settings.deadline_base_seconds,
    deadline_per_unit_seconds=settings.deadline_per_unit_seconds,
    deadline_grace_seconds=settings.deadline_grace_seconds,
    small_program_threshold=settings.small_program_threshold,
    chunk_size=settings.chunk_size,
    token_floor=settings.token_floor,
    token_ceiling=settings.token_ceiling,
    token_base_estimate=settings.token_base_estimate,
    per_group_token_estimate=settings.per_group_token_estimate,
    minimum_per_group=settings.minimum_per_group,
    truncation_retries=settings.truncation_retries,
    provider_retry_delays=settings.provider_retry_delays,
    temperature=settings.temperature,
  )
