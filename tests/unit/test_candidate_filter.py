"""Unit tests for the exercise candidate funnel."""

from __future__ import annotations

import pytest

from studio.ai.errors import InsufficientCandidatesError
from studio.generation.candidate_filter import CandidateFilter, allowed_levels, ensure_sufficient, exact_match
from studio.generation.contracts import ConstraintSet
from tests.support import bodyweight_catalog, make_exercise


def _mixed_catalog():
  return [
    make_exercise("push-up", name="Push-Up", category="chest", movement_pattern="push_horizontal"),
    make_exercise("db-press", name="Dumbbell Shoulder Press", category="shoulders", equipment="dumbbell", is_bodyweight=False, movement_pattern="push_vertical", primary_muscles=("shoulders",)),
    make_exercise("bb-squat", name="Barbell Back Squat", category="legs", equipment="barbell", is_bodyweight=False, level="intermediate", movement_pattern="squat"),
    make_exercise("ez-curl", name="EZ Bar Curl", category="arms", equipment="e-z curl bar", is_bodyweight=False, movement_pattern="isolation", primary_muscles=("biceps",)),
    make_exercise("cable-row", name="Seated Cable Row", category="back", equipment="cable", is_bodyweight=False, movement_pattern="pull_horizontal", primary_muscles=("lats",)),
    make_exercise("muscle-up", name="Muscle-Up", category="back", level="expert", movement_pattern="pull_vertical", primary_muscles=("lats",)),
    make_exercise("burpee", name="Burpee", category="full body", exercise_type="plyometrics", movement_pattern="plyometric"),
    make_exercise("jump-rope", name="Jump Rope", category="full body", exercise_type="cardio", movement_pattern="locomotion"),
  ]


def _assert_funnel_reconstructs(stats) -> None:
  assert stats.total_available == stats.rejected_total + stats.final_count


def test_no_constraints_keeps_every_bodyweight_item() -> None:
  pool = CandidateFilter().filter(bodyweight_catalog(20), ConstraintSet(experience_level="beginner"))
  assert len(pool) == 20
  assert pool.stats.rejected_total == 0
  _assert_funnel_reconstructs(pool.stats)


def test_empty_equipment_list_means_bodyweight_only() -> None:
  pool = CandidateFilter().filter(_mixed_catalog(), ConstraintSet(experience_level="advanced"))
  assert pool.ids == {"push-up", "muscle-up", "burpee", "jump-rope"}
  assert pool.stats.filtered_by_equipment == 4
  _assert_funnel_reconstructs(pool.stats)


def test_equipment_synonyms_and_substrings_match() -> None:
  constraints = ConstraintSet(experience_level="advanced", available_equipment=("Barbell", "dumbbells"))
  pool = CandidateFilter().filter(_mixed_catalog(), constraints)
  # "barbell" also unlocks bar variants; "dumbbells" matches "dumbbell".
  assert {"db-press", "bb-squat", "ez-curl"} <= pool.ids
  assert "cable-row" not in pool.ids


def test_level_ceiling_is_monotonic_across_tiers() -> None:
  assert allowed_levels("complete_beginner") == ("beginner",)
  assert allowed_levels("beginner") == ("beginner", "intermediate")
  assert allowed_levels("advanced") == ("beginner", "intermediate", "advanced")
  assert set(allowed_levels("beginner")) <= set(allowed_levels("intermediate")) <= set(allowed_levels("elite"))


def test_expert_items_are_treated_as_advanced() -> None:
  catalog = _mixed_catalog()
  beginner = CandidateFilter().filter(catalog, ConstraintSet(experience_level="beginner", available_equipment=("barbell",)))
  advanced = CandidateFilter().filter(catalog, ConstraintSet(experience_level="advanced", available_equipment=("barbell",)))
  assert "muscle-up" not in beginner.ids
  assert "muscle-up" in advanced.ids
  assert beginner.stats.filtered_by_experience >= 1


def test_injury_keywords_match_body_regions_and_implied_patterns() -> None:
  constraints = ConstraintSet(experience_level="advanced", available_equipment=("dumbbell", "barbell", "cable"), exclusions=("No overhead pressing",))
  pool = CandidateFilter().filter(_mixed_catalog(), constraints)
  assert "db-press" not in pool.ids
  assert pool.stats.filtered_by_injuries >= 1
  _assert_funnel_reconstructs(pool.stats)


def test_substring_match_works_in_both_directions() -> None:
  catalog = [make_exercise("row", name="Row", category="back", movement_pattern="pull_horizontal", primary_muscles=("lats",))]
  # The keyword contains the tag ("lower back" contains "back").
  pool = CandidateFilter().filter(catalog, ConstraintSet(exclusions=("lower back",)))
  assert len(pool) == 0
  assert pool.stats.filtered_by_injuries == 1


def test_exact_matcher_is_stricter_than_default() -> None:
  catalog = [make_exercise("row", name="Row", category="back", movement_pattern="pull_horizontal", primary_muscles=("lats",))]
  # No implied-tag rule fires for this keyword, so only the matcher decides.
  constraints = ConstraintSet(exclusions=("lats pull",))
  default_pool = CandidateFilter().filter(catalog, constraints)
  strict_pool = CandidateFilter(matcher=exact_match).filter(catalog, constraints)
  assert len(default_pool) == 0
  assert len(strict_pool) == 1


def test_aversions_match_name_and_type() -> None:
  constraints = ConstraintSet(experience_level="advanced", aversions=("burpees", "cardio"))
  pool = CandidateFilter().filter(_mixed_catalog(), constraints)
  assert "burpee" not in pool.ids
  assert "jump-rope" not in pool.ids
  assert pool.stats.filtered_by_aversions == 2
  _assert_funnel_reconstructs(pool.stats)


def test_each_removal_is_attributed_to_one_stage() -> None:
  catalog = _mixed_catalog()
  constraints = ConstraintSet(experience_level="beginner", available_equipment=("dumbbell",), exclusions=("shoulder",), aversions=("jump",))
  pool = CandidateFilter().filter(catalog, constraints)
  stats = pool.stats
  assert stats.total_available == len(catalog)
  assert stats.final_count == len(pool)
  _assert_funnel_reconstructs(stats)


def test_custom_rules_replace_the_defaults() -> None:
  def _category_only(keyword, tags):
    return keyword == tags.category

  catalog = _mixed_catalog()
  pool = CandidateFilter(conflict_rules=[_category_only], aversion_rules=[]).filter(catalog, ConstraintSet(experience_level="advanced", exclusions=("chest",), aversions=("burpee",)))
  assert "push-up" not in pool.ids
  assert "burpee" in pool.ids


def test_ensure_sufficient_raises_before_generation() -> None:
  pool = CandidateFilter().filter(bodyweight_catalog(7), ConstraintSet())
  with pytest.raises(InsufficientCandidatesError) as exc_info:
    ensure_sufficient(pool, groups_per_unit=2, minimum_per_group=4)
  assert exc_info.value.available == 7
  assert exc_info.value.required == 8
  assert "only 7 available" in exc_info.value.user_message()


def test_ensure_sufficient_accepts_exact_minimum() -> None:
  pool = CandidateFilter().filter(bodyweight_catalog(8), ConstraintSet())
  ensure_sufficient(pool, groups_per_unit=2, minimum_per_group=4)
