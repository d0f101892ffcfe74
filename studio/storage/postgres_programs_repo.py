"""Postgres-backed repository for generated programs."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert

from studio.core.database import get_session_factory
from studio.generation.contracts import Artifact, GenerationAudit
from studio.schema.programs import AIGenerationLog, AIProgram, AIWorkout, AIWorkoutExercise, ProgramRevision
from studio.storage.programs_repo import ProgramsRepository, StoredWorkout, workouts_from_artifact


class PostgresProgramsRepository(ProgramsRepository):
  """Persist programs, workouts and exercises in a single transaction."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def save_program(self, artifact: Artifact) -> int:
    program_values = {
      "id": artifact.program_id,
      "trainer_id": artifact.trainer_id,
      "client_profile_id": artifact.client_profile_id,
      "program_name": artifact.program_name,
      "description": artifact.description,
      "ai_rationale": artifact.ai_rationale,
      "total_weeks": artifact.total_weeks,
      "sessions_per_week": artifact.sessions_per_week,
      "session_duration_minutes": artifact.session_duration_minutes,
      "movement_balance_summary": artifact.movement_balance_summary,
      "ai_model": artifact.model,
    }
    rows = workouts_from_artifact(artifact)
    async with self._session_factory() as session:
      program_stmt = insert(AIProgram).values(**program_values)
      program_stmt = program_stmt.on_conflict_do_update(index_elements=[AIProgram.id], set_={key: value for key, value in program_values.items() if key != "id"})
      await session.execute(program_stmt)

      # Drop workouts from an earlier run that the new artifact no longer has; exercises cascade.
      keep = {(row.week_number, row.day_number) for row in rows}
      existing = (await session.execute(select(AIWorkout.id, AIWorkout.week_number, AIWorkout.day_number).where(AIWorkout.program_id == artifact.program_id))).all()
      stale_ids = [workout_id for workout_id, week_number, day_number in existing if (week_number, day_number) not in keep]
      if stale_ids:
        await session.execute(delete(AIWorkout).where(AIWorkout.id.in_(stale_ids)))

      for row in rows:
        workout_values = {
          "program_id": row.program_id,
          "week_number": row.week_number,
          "day_number": row.day_number,
          "session_order": row.session_order,
          "workout_name": row.workout_name,
          "workout_focus": row.workout_focus,
          "session_type": row.session_type,
          "planned_duration_minutes": row.planned_duration_minutes,
          "movement_patterns_covered": row.movement_patterns_covered,
          "planes_of_motion_covered": row.planes_of_motion_covered,
          "ai_rationale": row.ai_rationale,
        }
        workout_stmt = insert(AIWorkout).values(**workout_values)
        workout_stmt = workout_stmt.on_conflict_do_update(constraint="ux_ai_workouts_program_week_day", set_={key: value for key, value in workout_values.items() if key not in {"program_id", "week_number", "day_number"}}).returning(AIWorkout.id)
        workout_id = (await session.execute(workout_stmt)).scalar_one()

        # Replace children so a retried job never duplicates exercises.
        await session.execute(delete(AIWorkoutExercise).where(AIWorkoutExercise.workout_id == workout_id))
        for exercise in row.exercises:
          session.add(AIWorkoutExercise(workout_id=workout_id, **exercise))

      await session.commit()
    return len(rows)

  async def get_program(self, program_id: str) -> dict[str, Any] | None:
    async with self._session_factory() as session:
      row = await session.get(AIProgram, program_id)
      if row is None:
        return None
      return {
        "id": row.id,
        "program_name": row.program_name,
        "description": row.description,
        "ai_rationale": row.ai_rationale,
        "total_weeks": row.total_weeks,
        "sessions_per_week": row.sessions_per_week,
        "trainer_id": row.trainer_id,
        "client_profile_id": row.client_profile_id,
        "movement_balance_summary": row.movement_balance_summary,
        "ai_model": row.ai_model,
      }

  async def list_workouts(self, program_id: str) -> list[StoredWorkout]:
    async with self._session_factory() as session:
      stmt = select(AIWorkout).where(AIWorkout.program_id == program_id).order_by(AIWorkout.week_number.asc(), AIWorkout.day_number.asc())
      workouts = (await session.execute(stmt)).scalars().all()
      result: list[StoredWorkout] = []
      for workout in workouts:
        ex_stmt = select(AIWorkoutExercise).where(AIWorkoutExercise.workout_id == workout.id).order_by(AIWorkoutExercise.exercise_order.asc())
        exercises = (await session.execute(ex_stmt)).scalars().all()
        result.append(
          StoredWorkout(
            program_id=workout.program_id,
            week_number=workout.week_number,
            day_number=workout.day_number,
            session_order=int(workout.session_order or 0),
            workout_name=workout.workout_name,
            workout_focus=workout.workout_focus,
            session_type=workout.session_type,
            planned_duration_minutes=workout.planned_duration_minutes,
            movement_patterns_covered=list(workout.movement_patterns_covered or []),
            planes_of_motion_covered=list(workout.planes_of_motion_covered or []),
            ai_rationale=workout.ai_rationale,
            exercises=[
              {
                "exercise_id": item.exercise_id,
                "exercise_order": item.exercise_order,
                "block_label": item.block_label,
                "sets": item.sets,
                "reps_target": item.reps_target,
                "target_rpe": item.target_rpe,
                "tempo": item.tempo,
                "rest_seconds": item.rest_seconds,
                "coaching_cues": list(item.coaching_cues or []),
                "modifications": list(item.modifications or []),
              }
              for item in exercises
            ],
          )
        )
      return result

  async def record_generation(self, audit: GenerationAudit) -> None:
    async with self._session_factory() as session:
      session.add(
        AIGenerationLog(
          entity_id=audit.program_id,
          entity_type="ai_program",
          generation_type="program",
          status=audit.status,
          ai_provider=audit.provider,
          ai_model=audit.model,
          prompt_version=audit.prompt_version,
          input_tokens=audit.input_tokens,
          output_tokens=audit.output_tokens,
          estimated_cost_usd=audit.estimated_cost_usd,
          latency_ms=audit.latency_ms,
          retry_count=audit.retry_count,
          call_count=audit.call_count,
        )
      )
      await session.commit()

  async def create_revision(self, program_id: str, *, revision_number: int, snapshot: dict[str, Any], change_description: str, created_by: str | None) -> None:
    async with self._session_factory() as session:
      stmt = insert(ProgramRevision).values(program_id=program_id, revision_number=revision_number, program_snapshot=snapshot, change_description=change_description, created_by=created_by)
      stmt = stmt.on_conflict_do_update(constraint="ux_program_revisions_program_revision", set_={"program_snapshot": snapshot, "change_description": change_description})
      await session.execute(stmt)
      await session.commit()
