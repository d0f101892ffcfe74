"""Split a program into deadline- and token-bounded generation chunks."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from studio.config import GenerationLimits
from studio.generation.contracts import Chunk, GeneratedWeek

logger = logging.getLogger(__name__)

CONTEXT_WINDOW_WEEKS = 2
SAMPLE_EXERCISES_PER_WORKOUT = 3


def estimate_tokens(units: int, groups_per_unit: int, limits: GenerationLimits) -> int:
  """Linear output-size estimate for a chunk of ``units`` weeks."""
  return limits.token_base_estimate + units * groups_per_unit * limits.per_group_token_estimate


def token_budget(estimated_tokens: int, limits: GenerationLimits) -> int:
  """Clamp an estimate into ``[token_floor, token_ceiling]``."""
  return min(limits.token_ceiling, max(limits.token_floor, estimated_tokens))


def resolve_chunk_size(requested_units: int, limits: GenerationLimits, max_units_per_chunk: int | None = None) -> int:
  """Small programs run as one chunk; larger ones use the fixed chunk size."""
  if requested_units <= limits.small_program_threshold:
    return requested_units
  size = limits.chunk_size
  if max_units_per_chunk is not None:
    size = min(size, max(1, max_units_per_chunk))
  return size


def plan_chunks(requested_units: int, groups_per_unit: int, limits: GenerationLimits, *, max_units_per_chunk: int | None = None) -> list[Chunk]:
  """Return contiguous chunks that cover ``[1, requested_units]`` exactly once."""
  if requested_units < 1:
    raise ValueError("requested_units must be at least 1.")
  if groups_per_unit < 1:
    raise ValueError("groups_per_unit must be at least 1.")

  size = resolve_chunk_size(requested_units, limits, max_units_per_chunk)
  count = math.ceil(requested_units / size)
  chunks: list[Chunk] = []
  for index in range(count):
    start = index * size + 1
    end = min((index + 1) * size, requested_units)
    estimated = estimate_tokens(end - start + 1, groups_per_unit, limits)
    chunks.append(Chunk(index=index, start_unit=start, end_unit=end, token_budget=token_budget(estimated, limits), estimated_tokens=estimated))

  logger.info("Planned %d chunk(s) of up to %d week(s) for a %d-week program", count, size, requested_units)
  return chunks


def build_carried_context(weeks: Sequence[GeneratedWeek], *, window: int = CONTEXT_WINDOW_WEEKS) -> list[dict[str, Any]]:
  """Summarize the last ``window`` assembled weeks for the next chunk's prompt.

  Only workout names, focus, exercise counts and a few exercise ids are
  carried, so prompt size stays bounded however long the program is.
  """
  if not weeks or window <= 0:
    return []
  summary: list[dict[str, Any]] = []
  for week in list(weeks)[-window:]:
    workouts = []
    for workout in week.workouts:
      workouts.append(
        {
          "workout_name": workout.workout_name,
          "workout_focus": workout.workout_focus,
          "exercise_count": len(workout.exercises),
          "sample_exercises": [exercise.exercise_id for exercise in workout.exercises[:SAMPLE_EXERCISES_PER_WORKOUT]],
        }
      )
    summary.append({"week_number": week.week_number, "workouts": workouts})
  return summary
