"""Storage interfaces for generated programs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from studio.generation.contracts import Artifact, GenerationAudit


@dataclass
class StoredWorkout:
  """One persisted workout with its exercise children."""

  program_id: str
  week_number: int
  day_number: int
  session_order: int
  workout_name: str
  workout_focus: str | None = None
  session_type: str | None = None
  planned_duration_minutes: int | None = None
  movement_patterns_covered: list[str] = field(default_factory=list)
  planes_of_motion_covered: list[str] = field(default_factory=list)
  ai_rationale: str | None = None
  exercises: list[dict[str, Any]] = field(default_factory=list)


def workouts_from_artifact(artifact: Artifact) -> list[StoredWorkout]:
  """Flatten an artifact into workout rows keyed by (week, day)."""
  rows: list[StoredWorkout] = []
  for week in artifact.weeks:
    for order, workout in enumerate(week.workouts, start=1):
      exercises = []
      for position, exercise in enumerate(workout.exercises, start=1):
        exercises.append(
          {
            "exercise_id": exercise.exercise_id,
            "exercise_order": exercise.exercise_order or position,
            "block_label": exercise.block_label,
            "sets": exercise.sets,
            "reps_target": exercise.reps_target,
            "target_rpe": exercise.target_rpe,
            "tempo": exercise.tempo,
            "rest_seconds": exercise.rest_seconds,
            "coaching_cues": list(exercise.coaching_cues),
            "modifications": list(exercise.modifications),
          }
        )
      rows.append(
        StoredWorkout(
          program_id=artifact.program_id,
          week_number=week.week_number,
          day_number=workout.day_number,
          session_order=order,
          workout_name=workout.workout_name,
          workout_focus=workout.workout_focus,
          session_type=workout.session_type,
          planned_duration_minutes=artifact.session_duration_minutes,
          movement_patterns_covered=list(workout.movement_patterns_covered),
          planes_of_motion_covered=list(workout.planes_of_motion_covered),
          ai_rationale=workout.ai_rationale,
          exercises=exercises,
        )
      )
  return rows


class ProgramsRepository(Protocol):
  """Repository contract for generated programs and their audit trail."""

  async def save_program(self, artifact: Artifact) -> int:
    """Upsert the program and its workouts; replace each workout's exercises. Returns the workout count."""

  async def get_program(self, program_id: str) -> dict[str, Any] | None:
    """Return program header fields, if present."""

  async def list_workouts(self, program_id: str) -> list[StoredWorkout]:
    """Return workouts ordered by week and day."""

  async def record_generation(self, audit: GenerationAudit) -> None:
    """Append a generation audit record."""

  async def create_revision(self, program_id: str, *, revision_number: int, snapshot: dict[str, Any], change_description: str, created_by: str | None) -> None:
    """Store a program snapshot revision."""
