"""Postgres-backed exercise catalog and client profiles."""

from __future__ import annotations

from sqlalchemy import select

from studio.core.database import get_session_factory
from studio.generation.contracts import Exercise
from studio.schema.catalog import ClientProfileRow, ExerciseRow
from studio.storage.catalog_repo import CatalogRepository
from studio.storage.profiles_repo import ClientProfile, Injury, ProfilesRepository


class PostgresCatalogRepository(CatalogRepository):
  """Read the exercise library from Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def list_exercises(self) -> list[Exercise]:
    async with self._session_factory() as session:
      rows = (await session.execute(select(ExerciseRow).order_by(ExerciseRow.name.asc()))).scalars().all()
      return [
        Exercise(
          id=row.id,
          name=row.name,
          category=row.anatomical_category,
          equipment=row.equipment,
          level=row.level,
          movement_pattern=row.movement_pattern,
          primary_muscles=tuple(row.primary_muscles or ()),
          secondary_muscles=tuple(row.secondary_muscles or ()),
          exercise_type=row.exercise_type,
          is_bodyweight=bool(row.is_bodyweight),
        )
        for row in rows
      ]


class PostgresProfilesRepository(ProfilesRepository):
  """Read client profiles from Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_profile(self, profile_id: str) -> ClientProfile | None:
    async with self._session_factory() as session:
      row = await session.get(ClientProfileRow, profile_id)
      if row is None:
        return None
      injuries = tuple(
        Injury(body_part=str(item.get("body_part") or ""), restrictions=tuple(item.get("restrictions") or ()), severity=item.get("severity"))
        for item in (row.injuries or [])
        if isinstance(item, dict)
      )
      return ClientProfile(
        id=row.id,
        experience_level=row.experience_level,
        primary_goal=row.primary_goal,
        secondary_goals=tuple(row.secondary_goals or ()),
        available_equipment=tuple(row.available_equipment or ()),
        training_location=row.training_location,
        injuries=injuries,
        physical_limitations=tuple(row.physical_limitations or ()),
        exercise_aversions=tuple(row.exercise_aversions or ()),
        preferred_exercise_types=tuple(row.preferred_exercise_types or ()),
      )
