"""Caller-level retry for transient provider failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from studio.ai.errors import ProviderError

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def retry_with_backoff(func: Callable[[], Awaitable[T]], delays: Sequence[float]) -> T:
  """Await ``func`` and re-invoke it after each delay while it raises a retryable ``ProviderError``.

  Non-retryable errors propagate immediately; the final attempt's error propagates as-is.
  """
  for attempt, delay in enumerate(delays):
    try:
      return await func()
    except ProviderError as exc:
      if not exc.retryable:
        raise
      logger.warning("Retry attempt %d/%d needed. Error: %s. Retrying in %ss...", attempt + 1, len(delays), exc, delay)
      await asyncio.sleep(delay)

  return await func()
