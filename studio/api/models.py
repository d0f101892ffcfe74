from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator, model_validator

from studio.jobs.models import JobStatus

EXPERIENCE_LEVELS = ("complete_beginner", "beginner", "intermediate", "advanced", "expert", "elite")


def _clean_list(values: list[str] | None) -> list[str]:
  if not values:
    return []
  return [value.strip() for value in values if value and value.strip()]


class GenerateProgramRequest(BaseModel):
  """Request payload for workout program generation.

  Either reference a stored client profile or supply the manual fields
  (goal, experience level and equipment) directly.
  """

  total_weeks: StrictInt = Field(ge=1, le=52, description="Program length in weeks.")
  sessions_per_week: StrictInt = Field(ge=1, le=7, description="Workouts per week.")
  session_duration_minutes: StrictInt | None = Field(default=None, ge=10, le=240)
  client_profile_id: StrictStr | None = Field(default=None, description="Resolve constraints from this client profile.")
  trainer_id: StrictStr | None = None
  primary_goal: StrictStr | None = None
  secondary_goals: list[StrictStr] = Field(default_factory=list)
  experience_level: StrictStr | None = None
  available_equipment: list[StrictStr] | None = None
  injury_restrictions: list[StrictStr] = Field(default_factory=list)
  exercise_aversions: list[StrictStr] = Field(default_factory=list)
  training_location: StrictStr | None = None
  idempotency_key: StrictStr | None = Field(default=None, max_length=128)
  model_config = ConfigDict(extra="forbid")

  @field_validator("experience_level")
  @classmethod
  def normalize_experience_level(cls, value: str | None) -> str | None:
    if value is None:
      return None
    normalized = value.strip().lower()
    if normalized not in EXPERIENCE_LEVELS:
      raise ValueError(f"experience_level must be one of: {', '.join(EXPERIENCE_LEVELS)}")
    return normalized

  @field_validator("secondary_goals", "injury_restrictions", "exercise_aversions")
  @classmethod
  def strip_blank_entries(cls, values: list[str]) -> list[str]:
    return _clean_list(values)

  @model_validator(mode="after")
  def validate_manual_mode(self) -> GenerateProgramRequest:
    """Manual requests must carry the fields a profile would otherwise provide."""
    if self.client_profile_id:
      return self
    missing = [name for name in ("primary_goal", "experience_level", "available_equipment") if getattr(self, name) is None]
    if missing:
      raise ValueError(f"{', '.join(missing)} required when client_profile_id is not provided.")
    return self

  def to_job_payload(self) -> dict[str, Any]:
    """Return the request as stored on the job record."""
    payload = self.model_dump(mode="python", exclude={"idempotency_key"})
    payload["available_equipment"] = _clean_list(self.available_equipment)
    return payload


class JobCreateResponse(BaseModel):
  """Response payload for job creation."""

  job_id: StrictStr
  status: JobStatus
  message: StrictStr


class JobStatusResponse(BaseModel):
  """Status payload for a background generation job."""

  job_id: StrictStr
  status: JobStatus
  progress_percent: StrictInt = 0
  current_step: StrictInt = 0
  total_steps: StrictInt = 0
  progress_message: StrictStr | None = None
  error_message: StrictStr | None = None
  program_id: StrictStr | None = None


class ProgramWorkoutResponse(BaseModel):
  """One stored workout with its ordered exercises."""

  week_number: StrictInt
  day_number: StrictInt
  session_order: StrictInt
  workout_name: StrictStr
  workout_focus: StrictStr | None = None
  session_type: StrictStr | None = None
  planned_duration_minutes: StrictInt | None = None
  movement_patterns_covered: list[StrictStr] = Field(default_factory=list)
  ai_rationale: StrictStr | None = None
  exercises: list[dict[str, Any]] = Field(default_factory=list)


class ProgramDetailResponse(BaseModel):
  """A generated program header plus its workouts in week/day order."""

  program_id: StrictStr
  program_name: StrictStr
  description: StrictStr | None = None
  ai_rationale: StrictStr | None = None
  total_weeks: StrictInt
  sessions_per_week: StrictInt
  trainer_id: StrictStr | None = None
  client_profile_id: StrictStr | None = None
  movement_balance_summary: dict[str, int] = Field(default_factory=dict)
  ai_model: StrictStr | None = None
  workouts: list[ProgramWorkoutResponse] = Field(default_factory=list)
