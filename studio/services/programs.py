import logging

from fastapi import HTTPException, status

from studio.api.models import ProgramDetailResponse, ProgramWorkoutResponse
from studio.config import Settings
from studio.storage.factory import get_repositories
from studio.storage.programs_repo import StoredWorkout

logger = logging.getLogger(__name__)

_PROGRAM_NOT_FOUND_MSG = "Program not found."


def _workout_response(workout: StoredWorkout) -> ProgramWorkoutResponse:
  return ProgramWorkoutResponse(
    week_number=workout.week_number,
    day_number=workout.day_number,
    session_order=workout.session_order,
    workout_name=workout.workout_name,
    workout_focus=workout.workout_focus,
    session_type=workout.session_type,
    planned_duration_minutes=workout.planned_duration_minutes,
    movement_patterns_covered=list(workout.movement_patterns_covered),
    ai_rationale=workout.ai_rationale,
    exercises=[dict(exercise) for exercise in workout.exercises],
  )


async def get_program_detail(program_id: str, settings: Settings) -> ProgramDetailResponse:
  """Return a generated program with its workouts, or raise 404."""
  repo = get_repositories(settings).programs
  program = await repo.get_program(program_id)
  if program is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_PROGRAM_NOT_FOUND_MSG)

  # Workouts come back ordered by week then day.
  workouts = await repo.list_workouts(program_id)
  logger.debug("Loaded program %s with %d workout(s)", program_id, len(workouts))
  return ProgramDetailResponse(
    program_id=program["id"],
    program_name=program["program_name"],
    description=program.get("description"),
    ai_rationale=program.get("ai_rationale"),
    total_weeks=program["total_weeks"],
    sessions_per_week=program["sessions_per_week"],
    trainer_id=program.get("trainer_id"),
    client_profile_id=program.get("client_profile_id"),
    movement_balance_summary=dict(program.get("movement_balance_summary") or {}),
    ai_model=program.get("ai_model"),
    workouts=[_workout_response(workout) for workout in workouts],
  )
