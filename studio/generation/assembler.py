"""Merge chunk outputs, validate them against the candidate pool, and persist the artifact."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from studio.ai.errors import ProgramValidationError
from studio.generation.contracts import Artifact, CandidatePool, GeneratedProgram, GeneratedWeek, GenerationAudit, PartialResult, ProgramRequest
from studio.storage.programs_repo import ProgramsRepository

logger = logging.getLogger(__name__)


def merge_weeks(partials: Sequence[PartialResult]) -> tuple[list[GeneratedWeek], int]:
  """Concatenate weeks in arrival order, keep the first copy of each week number, and sort.

  Returns the merged weeks and the number of discarded duplicates.
  """
  seen: dict[int, GeneratedWeek] = {}
  total = 0
  for partial in partials:
    for week in partial.program.weekly_structure:
      total += 1
      if week.week_number not in seen:
        seen[week.week_number] = week
  weeks = sorted(seen.values(), key=lambda week: week.week_number)
  return weeks, total - len(weeks)


def validate_program(header: GeneratedProgram | None, weeks: Sequence[GeneratedWeek], valid_ids: frozenset[str]) -> list[str]:
  """Return every structural and referential violation; an empty list means valid."""
  errors: list[str] = []
  if header is None or not (header.program_name or "").strip():
    errors.append("Missing program_name")
  if not weeks:
    errors.append("Missing weekly_structure")

  for week in weeks:
    if not week.workouts:
      errors.append(f"Week {week.week_number} has no workouts")
      continue
    days: set[int] = set()
    for workout in week.workouts:
      # Workouts are stored per (week, day); a repeated day would overwrite its sibling.
      if workout.day_number in days:
        errors.append(f"Week {week.week_number} has duplicate day {workout.day_number}")
      days.add(workout.day_number)
      if not workout.exercises:
        errors.append(f"Week {week.week_number}, day {workout.day_number} has no exercises")
        continue
      for exercise in workout.exercises:
        if exercise.exercise_id not in valid_ids:
          errors.append(f"Invalid exercise_id: {exercise.exercise_id}")
  return errors


def _balance(weeks: Sequence[GeneratedWeek], pool: CandidatePool) -> tuple[dict[str, int], dict[str, int]]:
  by_id = {exercise.id: exercise for exercise in pool.exercises}
  movements: Counter[str] = Counter()
  categories: Counter[str] = Counter()
  for week in weeks:
    for workout in week.workouts:
      for item in workout.exercises:
        exercise = by_id.get(item.exercise_id)
        if exercise is None:
          continue
        movements[exercise.movement_pattern or "unknown"] += 1
        categories[exercise.category or "unknown"] += 1
  return dict(movements), dict(categories)


class ResultAssembler:
  """Turn ordered partial results into a persisted artifact."""

  def __init__(self, programs_repo: ProgramsRepository) -> None:
    self._programs_repo = programs_repo

  def assemble(self, partials: Sequence[PartialResult], pool: CandidatePool, request: ProgramRequest, *, program_id: str) -> Artifact:
    """Merge, deduplicate, sort and validate. Raises ``ProgramValidationError``."""
    weeks, discarded = merge_weeks(partials)
    if discarded:
      logger.warning("Removed %d duplicate week(s) while assembling program %s", discarded, program_id)
    logger.info("Final structure for program %s: %d unique week(s) %s", program_id, len(weeks), [week.week_number for week in weeks])

    header = partials[0].program if partials else None
    errors = validate_program(header, weeks, pool.ids)
    if errors:
      logger.error("Program %s failed validation: %s", program_id, errors)
      raise ProgramValidationError(errors)

    movements, categories = _balance(weeks, pool)
    last = partials[-1]
    return Artifact(
      program_id=program_id,
      program_name=header.program_name.strip(),
      description=header.description,
      ai_rationale=header.ai_rationale,
      weeks=weeks,
      total_weeks=request.total_weeks,
      sessions_per_week=request.sessions_per_week,
      session_duration_minutes=request.session_duration_minutes,
      trainer_id=request.trainer_id,
      client_profile_id=request.client_profile_id,
      duplicates_discarded=discarded,
      movement_balance_summary=movements,
      category_balance_summary=categories,
      provider=last.provider,
      model=last.model,
    )

  async def persist(self, artifact: Artifact, audit: GenerationAudit) -> int:
    """Write the program with its children, then the audit row and the first revision.

    Program and workout writes are idempotent and fatal on failure. The
    revision snapshot is best effort: a failure is logged and the job still
    completes.
    """
    saved = await self._programs_repo.save_program(artifact)
    logger.info("Saved %d workout(s) for program %s", saved, artifact.program_id)
    await self._programs_repo.record_generation(audit)
    try:
      await self._programs_repo.create_revision(artifact.program_id, revision_number=1, snapshot=artifact.snapshot(), change_description="Initial AI-generated program", created_by=artifact.trainer_id)
    except Exception:  # noqa: BLE001
      logger.warning("Failed to create revision for program %s", artifact.program_id, exc_info=True)
    return saved
