"""Constraint funnel that narrows the exercise catalog to a feasible pool.

Stages run sequentially on the survivors of the previous stage, so every
removed exercise is attributed to exactly one stage and the stats always
reconstruct the funnel:

  total_available == filtered_by_equipment + filtered_by_experience
                     + filtered_by_injuries + filtered_by_aversions + final_count

Conflict and aversion checks are lists of predicates over a normalized tag
record. The default matcher is case-insensitive substring containment in both
directions; pass ``matcher=exact_match`` (or any ``Matcher``) for a stricter
policy without changing the stages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from studio.ai.errors import InsufficientCandidatesError
from studio.generation.contracts import LEVEL_ORDER, CandidatePool, ConstraintSet, Exercise, FilterStats

logger = logging.getLogger(__name__)

Matcher = Callable[[str, str], bool]

_BODYWEIGHT_EQUIPMENT = {"", "body only", "bodyweight", "none"}
_LEVEL_ALIASES = {"expert": "advanced", "elite": "advanced"}
# Highest catalog difficulty each experience tier may use.
_LEVEL_CEILING = {
  "complete_beginner": "beginner",
  "beginner": "intermediate",
  "intermediate": "advanced",
  "advanced": "advanced",
  "elite": "advanced",
}
_DEFAULT_CEILING = "intermediate"


def contains_either_way(keyword: str, value: str) -> bool:
  """Return True when either non-empty string contains the other."""
  if not keyword or not value:
    return False
  return keyword in value or value in keyword


def exact_match(keyword: str, value: str) -> bool:
  """Stricter matcher: equality of normalized tags only."""
  return bool(keyword) and keyword == value


@dataclass(frozen=True)
class ExerciseTags:
  """Lower-cased view of the fields the exclusion rules inspect."""

  name: str
  category: str
  movement: str
  regions: tuple[str, ...]
  exercise_type: str

  @classmethod
  def from_exercise(cls, exercise: Exercise) -> ExerciseTags:
    return cls(
      name=_norm(exercise.name),
      category=_norm(exercise.category),
      movement=_norm(exercise.movement_pattern),
      regions=tuple(_norm(region) for region in exercise.body_regions if region),
      exercise_type=_norm(exercise.exercise_type),
    )


ExclusionRule = Callable[[str, ExerciseTags], bool]


def _norm(value: str | None) -> str:
  return (value or "").strip().lower()


def field_rule(field_name: str, matcher: Matcher) -> ExclusionRule:
  """Match the keyword against one tag field (or every region when the field is a tuple)."""

  def _rule(keyword: str, tags: ExerciseTags) -> bool:
    value = getattr(tags, field_name)
    if isinstance(value, tuple):
      return any(matcher(keyword, item) for item in value)
    return matcher(keyword, value)

  _rule.__name__ = f"{field_name}_rule"
  return _rule


def implied_tag_rule(trigger: str, field_name: str, needle: str) -> ExclusionRule:
  """Exclude when the keyword mentions ``trigger`` and the field contains ``needle``."""

  def _rule(keyword: str, tags: ExerciseTags) -> bool:
    return trigger in keyword and needle in getattr(tags, field_name)

  _rule.__name__ = f"{trigger}_implies_{needle}"
  return _rule


def default_conflict_rules(matcher: Matcher = contains_either_way) -> list[ExclusionRule]:
  """Rules used to drop exercises that conflict with injury restrictions."""
  return [
    field_rule("name", matcher),
    field_rule("category", matcher),
    field_rule("movement", matcher),
    field_rule("regions", matcher),
    implied_tag_rule("overhead", "movement", "push_vertical"),
    implied_tag_rule("squat", "movement", "squat"),
    implied_tag_rule("hinge", "movement", "hinge"),
    implied_tag_rule("shoulder", "category", "shoulder"),
    implied_tag_rule("knee", "category", "leg"),
    implied_tag_rule("knee", "movement", "squat"),
    implied_tag_rule("back", "category", "back"),
  ]


def default_aversion_rules(matcher: Matcher = contains_either_way) -> list[ExclusionRule]:
  """Rules used to drop exercises the client refuses to do."""
  return [
    field_rule("name", matcher),
    field_rule("exercise_type", matcher),
    implied_tag_rule("cardio", "exercise_type", "cardio"),
    implied_tag_rule("plyo", "exercise_type", "plyometric"),
    implied_tag_rule("burpee", "name", "burpee"),
    implied_tag_rule("running", "name", "run"),
  ]


def _equipment_matches(equipment: str, available: str) -> bool:
  if equipment == available or equipment in available or available in equipment:
    return True
  if available == "barbell" and "bar" in equipment:
    return True
  if available == "bar" and "barbell" in equipment:
    return True
  if "dumbbell" in available and "dumbbell" in equipment:
    return True
  return False


def _is_bodyweight(exercise: Exercise) -> bool:
  return exercise.is_bodyweight or _norm(exercise.equipment) in _BODYWEIGHT_EQUIPMENT


def allowed_levels(experience_level: str) -> tuple[str, ...]:
  """Return catalog difficulties permitted for an experience tier, lowest first."""
  ceiling = _LEVEL_CEILING.get(_norm(experience_level), _DEFAULT_CEILING)
  return LEVEL_ORDER[: LEVEL_ORDER.index(ceiling) + 1]


class CandidateFilter:
  """Four-stage funnel over the exercise catalog."""

  def __init__(self, *, conflict_rules: Sequence[ExclusionRule] | None = None, aversion_rules: Sequence[ExclusionRule] | None = None, matcher: Matcher = contains_either_way) -> None:
    self._conflict_rules = list(conflict_rules) if conflict_rules is not None else default_conflict_rules(matcher)
    self._aversion_rules = list(aversion_rules) if aversion_rules is not None else default_aversion_rules(matcher)

  def filter(self, catalog: Iterable[Exercise], constraints: ConstraintSet) -> CandidatePool:
    """Run every stage and return the surviving pool with its funnel stats."""
    survivors = list(catalog)
    stats = FilterStats(total_available=len(survivors))

    before = len(survivors)
    survivors = self._by_equipment(survivors, constraints.available_equipment)
    stats.filtered_by_equipment = before - len(survivors)

    before = len(survivors)
    survivors = self._by_experience(survivors, constraints.experience_level)
    stats.filtered_by_experience = before - len(survivors)

    exclusions = [_norm(keyword) for keyword in constraints.exclusions if _norm(keyword)]
    if exclusions:
      before = len(survivors)
      survivors = self._exclude(survivors, exclusions, self._conflict_rules)
      stats.filtered_by_injuries = before - len(survivors)

    aversions = [_norm(keyword) for keyword in constraints.aversions if _norm(keyword)]
    if aversions:
      before = len(survivors)
      survivors = self._exclude(survivors, aversions, self._aversion_rules)
      stats.filtered_by_aversions = before - len(survivors)

    stats.final_count = len(survivors)
    logger.info(
      "Exercise filter: total=%d equipment=-%d experience=-%d injuries=-%d aversions=-%d final=%d",
      stats.total_available,
      stats.filtered_by_equipment,
      stats.filtered_by_experience,
      stats.filtered_by_injuries,
      stats.filtered_by_aversions,
      stats.final_count,
    )
    return CandidatePool(exercises=tuple(survivors), stats=stats)

  def _by_equipment(self, exercises: list[Exercise], available_equipment: Sequence[str]) -> list[Exercise]:
    available = [_norm(item) for item in available_equipment if _norm(item)]
    kept: list[Exercise] = []
    for exercise in exercises:
      if _is_bodyweight(exercise):
        kept.append(exercise)
        continue
      equipment = _norm(exercise.equipment)
      if any(_equipment_matches(equipment, item) for item in available):
        kept.append(exercise)
    return kept

  def _by_experience(self, exercises: list[Exercise], experience_level: str) -> list[Exercise]:
    allowed = set(allowed_levels(experience_level))
    return [exercise for exercise in exercises if _LEVEL_ALIASES.get(_norm(exercise.level), _norm(exercise.level)) in allowed]

  def _exclude(self, exercises: list[Exercise], keywords: list[str], rules: Sequence[ExclusionRule]) -> list[Exercise]:
    kept: list[Exercise] = []
    for exercise in exercises:
      tags = ExerciseTags.from_exercise(exercise)
      if any(rule(keyword, tags) for keyword in keywords for rule in rules):
        logger.debug("Excluded exercise %s (%s)", exercise.id, exercise.name)
        continue
      kept.append(exercise)
    return kept


def ensure_sufficient(pool: CandidatePool, *, groups_per_unit: int, minimum_per_group: int) -> None:
  """Fail fast before any completion call when the pool cannot fill every session."""
  required = groups_per_unit * minimum_per_group
  if len(pool) < required:
    raise InsufficientCandidatesError(available=len(pool), required=required)
