"""Unit tests for merging, validating and persisting assembled programs."""

from __future__ import annotations

import pytest

from studio.ai.errors import ProgramValidationError
from studio.generation.assembler import ResultAssembler, merge_weeks, validate_program
from studio.generation.contracts import CandidatePool, Chunk, ConstraintSet, FilterStats, GeneratedProgram, GenerationAudit, PartialResult, ProgramRequest
from studio.storage.memory import InMemoryProgramsRepository
from tests.support import bodyweight_catalog, program_payload

CATALOG = bodyweight_catalog(12)
IDS = [exercise.id for exercise in CATALOG]
POOL = CandidatePool(exercises=tuple(CATALOG), stats=FilterStats(total_available=12, final_count=12))
REQUEST = ProgramRequest(total_weeks=4, sessions_per_week=2, session_duration_minutes=45, constraints=ConstraintSet(), trainer_id="trainer-1")


def _partial(index: int, weeks: list[int], *, name: str = "Foundation Strength", ids: list[str] | None = None) -> PartialResult:
  chunk = Chunk(index=index, start_unit=weeks[0], end_unit=weeks[-1], token_budget=10000, estimated_tokens=10000)
  program = GeneratedProgram.model_validate(program_payload(weeks, 2, ids or IDS, name=name))
  return PartialResult(chunk=chunk, program=program, termination_reason="complete", input_tokens=100, output_tokens=200, model="claude-sonnet-4-5-20250929", provider="anthropic")


def _audit() -> GenerationAudit:
  return GenerationAudit(program_id="prog-1", status="completed", provider="anthropic", model="claude-sonnet-4-5-20250929", prompt_version="v1.0.0", input_tokens=300, output_tokens=600, estimated_cost_usd=0.01, latency_ms=1200)


def test_merge_keeps_first_occurrence_and_counts_duplicates() -> None:
  first = _partial(0, [1, 2], name="First")
  overlap = _partial(1, [2, 3], name="Second")
  weeks, discarded = merge_weeks([first, overlap])
  assert [week.week_number for week in weeks] == [1, 2, 3]
  assert discarded == 1
  assert weeks[1] is first.program.weekly_structure[1]


def test_merge_sorts_by_week_number() -> None:
  weeks, discarded = merge_weeks([_partial(0, [3, 4]), _partial(1, [1, 2])])
  assert [week.week_number for week in weeks] == [1, 2, 3, 4]
  assert discarded == 0


def test_artificial_duplicates_collapse_to_distinct_weeks() -> None:
  partials = [_partial(0, [1, 2]), _partial(1, [3, 4]), _partial(2, [3, 4]), _partial(3, [4])]
  artifact = ResultAssembler(InMemoryProgramsRepository()).assemble(partials, POOL, REQUEST, program_id="prog-1")
  assert [week.week_number for week in artifact.weeks] == [1, 2, 3, 4]
  assert artifact.duplicates_discarded == 3


def test_header_comes_from_first_chunk() -> None:
  artifact = ResultAssembler(InMemoryProgramsRepository()).assemble([_partial(0, [1, 2], name="Opening Block"), _partial(1, [3, 4], name="Other")], POOL, REQUEST, program_id="prog-1")
  assert artifact.program_name == "Opening Block"
  assert artifact.workout_count == 8


def test_dangling_exercise_reference_is_rejected() -> None:
  partial = _partial(0, [1], ids=["ghost-1", "ghost-2", "ghost-3", "ghost-4"])
  with pytest.raises(ProgramValidationError) as exc_info:
    ResultAssembler(InMemoryProgramsRepository()).assemble([partial], POOL, REQUEST, program_id="prog-1")
  assert any("Invalid exercise_id: ghost-" in error for error in exc_info.value.errors)


def test_structural_checks_report_every_problem() -> None:
  header = GeneratedProgram.model_validate({"program_name": " ", "weekly_structure": []})
  assert validate_program(header, [], frozenset(IDS)) == ["Missing program_name", "Missing weekly_structure"]
  empty_day = GeneratedProgram.model_validate({"program_name": "X", "weekly_structure": [{"week_number": 1, "workouts": [{"day_number": 1, "exercises": []}]}, {"week_number": 2, "workouts": []}]})
  errors = validate_program(empty_day, empty_day.weekly_structure, frozenset(IDS))
  assert errors == ["Week 1, day 1 has no exercises", "Week 2 has no workouts"]


def test_repeated_day_within_a_week_is_rejected() -> None:
  payload = program_payload([1, 2], 2, IDS)
  first_week = payload["weekly_structure"][0]
  first_week["workouts"].insert(1, {**first_week["workouts"][0], "workout_name": "Second session on day 1"})
  partial = PartialResult(chunk=Chunk(index=0, start_unit=1, end_unit=2, token_budget=10000, estimated_tokens=10000), program=GeneratedProgram.model_validate(payload), termination_reason="complete", input_tokens=100, output_tokens=200, model="claude-sonnet-4-5-20250929", provider="anthropic")

  with pytest.raises(ProgramValidationError) as exc_info:
    ResultAssembler(InMemoryProgramsRepository()).assemble([partial], POOL, REQUEST, program_id="prog-1")
  assert exc_info.value.errors == ["Week 1 has duplicate day 1"]


@pytest.mark.anyio
async def test_persist_is_idempotent_for_workout_children() -> None:
  repo = InMemoryProgramsRepository()
  assembler = ResultAssembler(repo)
  artifact = assembler.assemble([_partial(0, [1, 2])], POOL, REQUEST, program_id="prog-1")
  assert await assembler.persist(artifact, _audit()) == 4
  await assembler.persist(artifact, _audit())
  workouts = await repo.list_workouts("prog-1")
  assert len(workouts) == 4
  assert all(len(workout.exercises) == 4 for workout in workouts)
  assert len(repo.revisions) == 1
  assert repo.revisions[0]["revision_number"] == 1


@pytest.mark.anyio
async def test_rerun_with_fewer_weeks_drops_stale_workouts() -> None:
  repo = InMemoryProgramsRepository()
  assembler = ResultAssembler(repo)
  await assembler.persist(assembler.assemble([_partial(0, [1, 2, 3])], POOL, REQUEST, program_id="prog-1"), _audit())
  assert len(await repo.list_workouts("prog-1")) == 6

  await assembler.persist(assembler.assemble([_partial(0, [1, 2])], POOL, REQUEST, program_id="prog-1"), _audit())
  workouts = await repo.list_workouts("prog-1")
  assert [(workout.week_number, workout.day_number) for workout in workouts] == [(1, 1), (1, 2), (2, 1), (2, 2)]


@pytest.mark.anyio
async def test_revision_failure_is_not_fatal() -> None:
  class _FlakyRevisions(InMemoryProgramsRepository):
    async def create_revision(self, *args, **kwargs) -> None:
      raise RuntimeError("revision store offline")

  repo = _FlakyRevisions()
  assembler = ResultAssembler(repo)
  artifact = assembler.assemble([_partial(0, [1, 2])], POOL, REQUEST, program_id="prog-1")
  assert await assembler.persist(artifact, _audit()) == 4
  assert await repo.get_program("prog-1") is not None
  assert len(repo.audits) == 1
