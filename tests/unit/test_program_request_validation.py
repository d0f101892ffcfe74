"""Unit tests for program request validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from studio.api.models import GenerateProgramRequest


def _valid_payload() -> dict[str, object]:
  return {
    "total_weeks": 8,
    "sessions_per_week": 3,
    "session_duration_minutes": 45,
    "primary_goal": "strength",
    "experience_level": "Beginner",
    "available_equipment": ["dumbbell", " ", "bench"],
    "injury_restrictions": ["knee", ""],
    "idempotency_key": "req-123",
  }


def test_manual_request_normalizes_fields() -> None:
  request = GenerateProgramRequest.model_validate(_valid_payload())
  assert request.experience_level == "beginner"
  assert request.injury_restrictions == ["knee"]
  payload = request.to_job_payload()
  assert payload["available_equipment"] == ["dumbbell", "bench"]
  assert "idempotency_key" not in payload


def test_empty_equipment_list_is_a_valid_manual_request() -> None:
  payload = _valid_payload()
  payload["available_equipment"] = []
  assert GenerateProgramRequest.model_validate(payload).to_job_payload()["available_equipment"] == []


def test_profile_request_needs_only_shape_fields() -> None:
  request = GenerateProgramRequest.model_validate({"total_weeks": 4, "sessions_per_week": 2, "client_profile_id": "client-7"})
  assert request.primary_goal is None


@pytest.mark.parametrize(
  ("mutator", "expected_message"),
  [
    (lambda payload: payload.pop("primary_goal"), "primary_goal required when client_profile_id is not provided"),
    (lambda payload: payload.pop("available_equipment"), "available_equipment required"),
    (lambda payload: payload.update({"experience_level": "guru"}), "experience_level must be one of"),
    (lambda payload: payload.update({"total_weeks": 0}), "greater than or equal to 1"),
    (lambda payload: payload.update({"total_weeks": "8"}), "valid integer"),
    (lambda payload: payload.update({"sessions_per_week": 8}), "less than or equal to 7"),
    (lambda payload: payload.update({"topic": "unexpected"}), "Extra inputs are not permitted"),
  ],
)
def test_generate_program_request_rejects_invalid_values(mutator, expected_message: str) -> None:
  payload = _valid_payload()
  mutator(payload)
  with pytest.raises(ValidationError) as exc_info:
    GenerateProgramRequest.model_validate(payload)
  assert expected_message in str(exc_info.value)
