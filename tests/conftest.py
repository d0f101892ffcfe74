"""Test configuration: in-memory storage, no background dispatch, asyncio backend."""

from __future__ import annotations

import os

# Settings are cached on first use, so the environment must be fixed before any app import.
os.environ.setdefault("STUDIO_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("STUDIO_JOBS_AUTO_PROCESS", "0")
os.environ.pop("STUDIO_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

import pytest  # noqa: E402

from studio.config import GenerationLimits  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def limits() -> GenerationLimits:
  """Default tunables with zero provider backoff so retries do not sleep."""
  return GenerationLimits(provider_retry_delays=(0.0, 0.0))
