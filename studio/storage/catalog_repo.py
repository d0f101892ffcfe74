"""Storage interface for the exercise catalog."""

from __future__ import annotations

from typing import Protocol

from studio.generation.contracts import Exercise


class CatalogRepository(Protocol):
  """Read-only access to the exercise library."""

  async def list_exercises(self) -> list[Exercise]:
    """Return every exercise in the library."""
