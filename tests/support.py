"""Test doubles and builders shared by unit and integration tests."""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from typing import Any

from studio.ai.providers.base import Completion, CompletionModel
from studio.generation.contracts import Exercise
from studio.jobs.models import JobRecord
from studio.storage.factory import Repositories
from studio.storage.memory import InMemoryCatalogRepository, InMemoryJobsRepository, InMemoryProfilesRepository, InMemoryProgramsRepository

_WEEKS_RE = re.compile(r"GENERATE_WEEKS: (?:\[(\d+), (\d+)\]|(\d+))")


def make_exercise(exercise_id: str, **overrides: Any) -> Exercise:
  values: dict[str, Any] = {
    "name": f"Exercise {exercise_id}",
    "category": "full body",
    "equipment": "body only",
    "level": "beginner",
    "movement_pattern": "squat",
    "primary_muscles": ("quadriceps",),
    "exercise_type": "strength",
    "is_bodyweight": True,
  }
  values.update(overrides)
  return Exercise(id=exercise_id, **values)


def bodyweight_catalog(count: int = 20) -> list[Exercise]:
  return [make_exercise(f"bw-{index:02d}") for index in range(count)]


def requested_weeks(prompt: str) -> list[int]:
  """Read the week range a chunk prompt asks for."""
  match = _WEEKS_RE.search(prompt)
  if match is None:
    raise AssertionError("prompt has no GENERATE_WEEKS marker")
  if match.group(3):
    return [int(match.group(3))]
  return list(range(int(match.group(1)), int(match.group(2)) + 1))


def library_ids(prompt: str) -> list[str]:
  """Read the candidate ids embedded in a user prompt."""
  section = prompt.split("EXERCISE LIBRARY", 1)[1].split("\n", 1)[1]
  library = json.loads(section.split("\n", 1)[0])
  return [item["id"] for item in library]


def program_payload(weeks: list[int], sessions: int, exercise_ids: list[str], *, name: str = "Foundation Strength") -> dict[str, Any]:
  structure = []
  for week in weeks:
    workouts = []
    for day in range(1, sessions + 1):
      picks = [exercise_ids[(week + day + offset) % len(exercise_ids)] for offset in range(4)]
      workouts.append(
        {
          "day_number": day,
          "workout_name": f"Week {week} Day {day}",
          "workout_focus": "full body",
          "exercises": [{"exercise_id": exercise_id, "exercise_order": order, "sets": 3, "reps_target": "8-10"} for order, exercise_id in enumerate(picks, start=1)],
        }
      )
    structure.append({"week_number": week, "workouts": workouts})
  return {"program_name": name, "description": "Progressive block", "ai_rationale": "Balanced patterns", "weekly_structure": structure}


def completion(text: str, *, truncated: bool = False, input_tokens: int = 1000, output_tokens: int = 2000) -> Completion:
  return Completion(
    text=text,
    termination_reason="truncated" if truncated else "complete",
    input_tokens=input_tokens,
    output_tokens=output_tokens,
    model="claude-sonnet-4-5-20250929",
    provider="anthropic",
    raw_stop_reason="max_tokens" if truncated else "end_turn",
  )


Responder = Callable[[str, int], Completion]


def program_responder(sessions: int, *, fenced: bool = False) -> Responder:
  """Answer every chunk prompt with a valid program for exactly the requested weeks."""

  def _respond(prompt: str, max_tokens: int) -> Completion:
    text = json.dumps(program_payload(requested_weeks(prompt), sessions, library_ids(prompt)))
    if fenced:
      text = f"```json\n{text}\n```"
    return completion(text)

  return _respond


class ScriptedModel(CompletionModel):
  """Completion model double that replays scripted responses in order.

  Each step is a ``Completion``, an exception to raise, or a responder called
  with ``(prompt, max_tokens)``. The last step repeats once the script runs out.
  """

  name = "claude-sonnet-4-5-20250929"
  provider = "anthropic"

  def __init__(self, *steps: Completion | BaseException | Responder) -> None:
    self._steps = list(steps)
    self.calls: list[dict[str, Any]] = []

  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    self.calls.append({"system": system, "prompt": prompt, "max_tokens": max_tokens, "temperature": temperature})
    step = self._steps[min(len(self.calls), len(self._steps)) - 1]
    if isinstance(step, BaseException):
      raise step
    if isinstance(step, Completion):
      return step
    return step(prompt, max_tokens)


class HangingModel(CompletionModel):
  """Completion model that never returns until cancelled."""

  name = "claude-sonnet-4-5-20250929"
  provider = "anthropic"

  def __init__(self) -> None:
    self.calls = 0
    self.cancelled = False

  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    self.calls += 1
    try:
      await asyncio.Event().wait()
    except asyncio.CancelledError:
      self.cancelled = True
      raise
    raise AssertionError("unreachable")


def build_repositories(catalog: list[Exercise] | None = None, profiles: list[Any] | None = None) -> Repositories:
  return Repositories(jobs=InMemoryJobsRepository(), programs=InMemoryProgramsRepository(), catalog=InMemoryCatalogRepository(catalog), profiles=InMemoryProfilesRepository(profiles))


def manual_request(total_weeks: int, sessions_per_week: int, **overrides: Any) -> dict[str, Any]:
  request: dict[str, Any] = {
    "total_weeks": total_weeks,
    "sessions_per_week": sessions_per_week,
    "session_duration_minutes": 45,
    "primary_goal": "general_fitness",
    "experience_level": "beginner",
    "available_equipment": [],
    "injury_restrictions": [],
    "exercise_aversions": [],
    "trainer_id": "trainer-1",
  }
  request.update(overrides)
  return request


async def seed_job(repositories: Repositories, request: dict[str, Any], *, job_id: str = "job-1", status: str = "queued") -> JobRecord:
  record = JobRecord(job_id=job_id, request=request, status=status, created_at="2026-01-01T00:00:00Z", updated_at="2026-01-01T00:00:00Z")
  await repositories.jobs.create_job(record)
  return record
