"""Unit tests for chunk planning and carried context."""

from __future__ import annotations

import pytest

from studio.config import GenerationLimits
from studio.generation.chunk_planner import build_carried_context, estimate_tokens, plan_chunks, token_budget
from studio.generation.contracts import GeneratedWeek


def _covered_units(chunks) -> list[int]:
  units: list[int] = []
  for chunk in chunks:
    units.extend(range(chunk.start_unit, chunk.end_unit + 1))
  return units


@pytest.mark.parametrize("weeks", [1, 2, 3, 4, 5, 8, 13, 52])
def test_ranges_are_contiguous_and_cover_every_week_once(weeks: int, limits: GenerationLimits) -> None:
  chunks = plan_chunks(weeks, 3, limits)
  assert _covered_units(chunks) == list(range(1, weeks + 1))
  for previous, current in zip(chunks, chunks[1:], strict=False):
    assert current.start_unit == previous.end_unit + 1
  assert [chunk.index for chunk in chunks] == list(range(len(chunks)))


def test_small_programs_use_one_chunk(limits: GenerationLimits) -> None:
  chunks = plan_chunks(3, 4, limits)
  assert len(chunks) == 1
  assert (chunks[0].start_unit, chunks[0].end_unit) == (1, 3)


def test_large_programs_use_fixed_chunk_size_with_clipped_tail(limits: GenerationLimits) -> None:
  chunks = plan_chunks(7, 3, limits)
  assert [(chunk.start_unit, chunk.end_unit) for chunk in chunks] == [(1, 2), (3, 4), (5, 6), (7, 7)]
  assert chunks[-1].label() == "week 7"
  assert chunks[0].label() == "week 1-2"


def test_max_units_hint_can_only_shrink_chunks(limits: GenerationLimits) -> None:
  assert len(plan_chunks(8, 3, limits, max_units_per_chunk=1)) == 8
  assert len(plan_chunks(8, 3, limits, max_units_per_chunk=5)) == 4


def test_token_budget_is_clamped_between_floor_and_ceiling(limits: GenerationLimits) -> None:
  assert estimate_tokens(2, 3, limits) == 5000 + 2 * 3 * 1080
  assert token_budget(estimate_tokens(1, 1, limits), limits) == limits.token_floor
  assert token_budget(estimate_tokens(3, 7, limits), limits) == limits.token_ceiling
  chunks = plan_chunks(8, 4, limits)
  assert all(limits.token_floor <= chunk.token_budget <= limits.token_ceiling for chunk in chunks)
  assert chunks[0].token_budget == 5000 + 2 * 4 * 1080


def test_invalid_inputs_are_rejected(limits: GenerationLimits) -> None:
  with pytest.raises(ValueError):
    plan_chunks(0, 3, limits)
  with pytest.raises(ValueError):
    plan_chunks(4, 0, limits)


def test_chunk_size_is_configurable() -> None:
  chunks = plan_chunks(9, 2, GenerationLimits(chunk_size=4))
  assert [(chunk.start_unit, chunk.end_unit) for chunk in chunks] == [(1, 4), (5, 8), (9, 9)]


def _week(number: int, workouts: int = 2, exercises: int = 5) -> GeneratedWeek:
  return GeneratedWeek.model_validate(
    {
      "week_number": number,
      "workouts": [
        {"day_number": day, "workout_name": f"W{number}D{day}", "workout_focus": "strength", "exercises": [{"exercise_id": f"ex-{number}-{day}-{index}"} for index in range(exercises)]}
        for day in range(1, workouts + 1)
      ],
    }
  )


def test_carried_context_keeps_only_the_last_two_weeks() -> None:
  context = build_carried_context([_week(1), _week(2), _week(3), _week(4)])
  assert [item["week_number"] for item in context] == [3, 4]


def test_carried_context_samples_three_exercise_ids_per_workout() -> None:
  context = build_carried_context([_week(1, workouts=1, exercises=6)])
  workout = context[0]["workouts"][0]
  assert workout == {"workout_name": "W1D1", "workout_focus": "strength", "exercise_count": 6, "sample_exercises": ["ex-1-1-0", "ex-1-1-1", "ex-1-1-2"]}


def test_carried_context_is_empty_without_prior_weeks() -> None:
  assert build_carried_context([]) == []
