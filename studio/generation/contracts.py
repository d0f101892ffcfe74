"""Shared data contracts for the program generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

LEVEL_ORDER: tuple[str, ...] = ("beginner", "intermediate", "advanced")


@dataclass(frozen=True)
class Exercise:
  """Catalog item eligible for selection into a program."""

  id: str
  name: str
  category: str | None = None
  equipment: str | None = None
  level: str = "beginner"
  movement_pattern: str | None = None
  primary_muscles: tuple[str, ...] = ()
  secondary_muscles: tuple[str, ...] = ()
  exercise_type: str | None = None
  is_bodyweight: bool = False

  @property
  def body_regions(self) -> tuple[str, ...]:
    return self.primary_muscles + self.secondary_muscles


@dataclass(frozen=True)
class ConstraintSet:
  """Caller constraints applied by the candidate filter."""

  experience_level: str = "beginner"
  available_equipment: tuple[str, ...] = ()
  exclusions: tuple[str, ...] = ()
  aversions: tuple[str, ...] = ()


@dataclass
class FilterStats:
  """Funnel counts; each removed item is attributed to exactly one stage."""

  total_available: int = 0
  filtered_by_equipment: int = 0
  filtered_by_experience: int = 0
  filtered_by_injuries: int = 0
  filtered_by_aversions: int = 0
  final_count: int = 0

  @property
  def rejected_total(self) -> int:
    return self.filtered_by_equipment + self.filtered_by_experience + self.filtered_by_injuries + self.filtered_by_aversions

  def as_dict(self) -> dict[str, int]:
    return {
      "total_available": self.total_available,
      "filtered_by_equipment": self.filtered_by_equipment,
      "filtered_by_experience": self.filtered_by_experience,
      "filtered_by_injuries": self.filtered_by_injuries,
      "filtered_by_aversions": self.filtered_by_aversions,
      "final_count": self.final_count,
    }


@dataclass(frozen=True)
class CandidatePool:
  """Filtered exercises plus the stats that explain the funnel."""

  exercises: tuple[Exercise, ...]
  stats: FilterStats

  def __len__(self) -> int:
    return len(self.exercises)

  @property
  def ids(self) -> frozenset[str]:
    return frozenset(exercise.id for exercise in self.exercises)


@dataclass(frozen=True)
class Chunk:
  """One bounded sub-request covering weeks ``start_unit`` through ``end_unit``."""

  index: int
  start_unit: int
  end_unit: int
  token_budget: int
  estimated_tokens: int

  @property
  def unit_count(self) -> int:
    return self.end_unit - self.start_unit + 1

  @property
  def is_first(self) -> bool:
    return self.index == 0

  def label(self) -> str:
    if self.start_unit == self.end_unit:
      return f"week {self.start_unit}"
    return f"week {self.start_unit}-{self.end_unit}"


class GeneratedExercise(BaseModel):
  """Exercise prescription inside a generated workout."""

  model_config = ConfigDict(extra="allow")

  exercise_id: str
  exercise_order: int | None = None
  block_label: str | None = None
  sets: int | None = None
  reps_target: str | None = None
  target_rpe: float | None = None
  tempo: str | None = None
  rest_seconds: int | None = None
  coaching_cues: list[str] = Field(default_factory=list)
  modifications: list[str] = Field(default_factory=list)


class GeneratedWorkout(BaseModel):
  """One session inside a generated week."""

  model_config = ConfigDict(extra="allow")

  day_number: int
  workout_name: str = ""
  workout_focus: str | None = None
  session_type: str | None = None
  movement_patterns_covered: list[str] = Field(default_factory=list)
  planes_of_motion_covered: list[str] = Field(default_factory=list)
  ai_rationale: str | None = None
  exercises: list[GeneratedExercise] = Field(default_factory=list)


class GeneratedWeek(BaseModel):
  """One week of a generated program."""

  model_config = ConfigDict(extra="allow")

  week_number: int
  workouts: list[GeneratedWorkout] = Field(default_factory=list)


class GeneratedProgram(BaseModel):
  """Structured payload returned by the completion service for one chunk."""

  model_config = ConfigDict(extra="allow")

  program_name: str | None = None
  description: str | None = None
  total_weeks: int | None = None
  sessions_per_week: int | None = None
  ai_rationale: str | None = None
  movement_balance_summary: dict[str, Any] | None = None
  weekly_structure: list[GeneratedWeek] = Field(default_factory=list)
  error: str | None = None


@dataclass(frozen=True)
class PartialResult:
  """Parsed output of one successfully executed chunk."""

  chunk: Chunk
  program: GeneratedProgram
  termination_reason: str
  input_tokens: int
  output_tokens: int
  model: str
  provider: str
  parse_risk: bool = False


@dataclass
class Artifact:
  """Assembled, deduplicated and validated program ready for persistence."""

  program_id: str
  program_name: str
  description: str | None
  ai_rationale: str | None
  weeks: list[GeneratedWeek]
  total_weeks: int
  sessions_per_week: int
  session_duration_minutes: int | None = None
  trainer_id: str | None = None
  client_profile_id: str | None = None
  duplicates_discarded: int = 0
  movement_balance_summary: dict[str, int] = field(default_factory=dict)
  category_balance_summary: dict[str, int] = field(default_factory=dict)
  usage: dict[str, Any] = field(default_factory=dict)
  latency_ms: int = 0
  provider: str | None = None
  model: str | None = None

  @property
  def workout_count(self) -> int:
    return sum(len(week.workouts) for week in self.weeks)

  def snapshot(self) -> dict[str, Any]:
    """Return a JSON-serializable view used for revisions and job results."""
    return {
      "program_id": self.program_id,
      "program_name": self.program_name,
      "description": self.description,
      "ai_rationale": self.ai_rationale,
      "total_weeks": self.total_weeks,
      "sessions_per_week": self.sessions_per_week,
      "movement_balance_summary": dict(self.movement_balance_summary),
      "category_balance_summary": dict(self.category_balance_summary),
      "weekly_structure": [week.model_dump(mode="json") for week in self.weeks],
    }


@dataclass(frozen=True)
class GenerationAudit:
  """Derived audit record written after a successful generation."""

  program_id: str
  status: str
  provider: str
  model: str
  prompt_version: str
  input_tokens: int
  output_tokens: int
  estimated_cost_usd: float
  latency_ms: int
  retry_count: int = 0
  call_count: int = 0


@dataclass(frozen=True)
class ProgramRequest:
  """Normalized inputs for one generation job."""

  total_weeks: int
  sessions_per_week: int
  session_duration_minutes: int | None
  constraints: ConstraintSet
  primary_goal: str | None = None
  secondary_goals: tuple[str, ...] = ()
  trainer_id: str | None = None
  client_profile_id: str | None = None
  training_location: str | None = None

  @classmethod
  def from_payload(cls, payload: dict[str, Any], *, constraints: ConstraintSet | None = None) -> ProgramRequest:
    """Build a request from a stored job payload, optionally overriding the constraints."""
    resolved = constraints or ConstraintSet(
      experience_level=str(payload.get("experience_level") or "beginner"),
      available_equipment=tuple(payload.get("available_equipment") or ()),
      exclusions=tuple(payload.get("injury_restrictions") or ()),
      aversions=tuple(payload.get("exercise_aversions") or ()),
    )
    return cls(
      total_weeks=int(payload["total_weeks"]),
      sessions_per_week=int(payload["sessions_per_week"]),
      session_duration_minutes=payload.get("session_duration_minutes"),
      constraints=resolved,
      primary_goal=payload.get("primary_goal"),
      secondary_goals=tuple(payload.get("secondary_goals") or ()),
      trainer_id=payload.get("trainer_id"),
      client_profile_id=payload.get("client_profile_id"),
      training_location=payload.get("training_location"),
    )
