"""Storage interface and records for client profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class Injury:
  """Injury with the movements the client must avoid."""

  body_part: str
  restrictions: tuple[str, ...] = ()
  severity: str | None = None


@dataclass(frozen=True)
class ClientProfile:
  """Subset of a client profile that shapes program generation."""

  id: str
  experience_level: str
  primary_goal: str
  secondary_goals: tuple[str, ...] = ()
  available_equipment: tuple[str, ...] = ()
  training_location: str | None = None
  injuries: tuple[Injury, ...] = ()
  physical_limitations: tuple[str, ...] = ()
  exercise_aversions: tuple[str, ...] = ()
  preferred_exercise_types: tuple[str, ...] = field(default_factory=tuple)


class ProfilesRepository(Protocol):
  """Read access to client profiles."""

  async def get_profile(self, profile_id: str) -> ClientProfile | None:
    """Return a profile by id, if present."""
