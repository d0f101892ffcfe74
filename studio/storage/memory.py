"""In-process repositories used when no database is configured."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

from studio.generation.contracts import Artifact, Exercise, GenerationAudit
from studio.jobs.models import JobRecord, JobStatus, is_terminal
from studio.storage.profiles_repo import ClientProfile
from studio.storage.programs_repo import StoredWorkout, workouts_from_artifact
from studio.utils.timefmt import now_iso


class InMemoryJobsRepository:
  """Job store guarded by one lock so terminal transitions are atomic."""

  def __init__(self) -> None:
    self._records: dict[str, JobRecord] = {}
    self._lock = asyncio.Lock()

  async def create_job(self, record: JobRecord) -> None:
    async with self._lock:
      self._records[record.job_id] = replace(record, logs=list(record.logs))

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._lock:
      record = self._records.get(job_id)
      return replace(record, logs=list(record.logs)) if record else None

  async def claim_job(self, job_id: str) -> JobRecord | None:
    async with self._lock:
      record = self._records.get(job_id)
      if record is None or record.status != "queued":
        return None
      timestamp = now_iso()
      updated = replace(record, status="running", started_at=timestamp, updated_at=timestamp)
      self._records[job_id] = updated
      return replace(updated, logs=list(updated.logs))

  async def update_progress(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress_percent: int | None = None,
    current_step: int | None = None,
    total_steps: int | None = None,
    progress_message: str | None = None,
    program_id: str | None = None,
    deadline_at: str | None = None,
    logs: list[str] | None = None,
    cost: dict[str, Any] | None = None,
  ) -> JobRecord | None:
    if status is not None and is_terminal(status):
      raise ValueError("Terminal statuses must go through transition_terminal.")
    async with self._lock:
      record = self._records.get(job_id)
      if record is None:
        return None
      if record.terminal:
        return replace(record, logs=list(record.logs))
      changes: dict[str, Any] = {"updated_at": now_iso()}
      for key, value in (("status", status), ("progress_percent", progress_percent), ("current_step", current_step), ("total_steps", total_steps), ("progress_message", progress_message), ("program_id", program_id), ("deadline_at", deadline_at), ("cost", cost)):
        if value is not None:
          changes[key] = value
      if logs is not None:
        changes["logs"] = list(logs)
      updated = replace(record, **changes)
      self._records[job_id] = updated
      return replace(updated, logs=list(updated.logs))

  async def transition_terminal(
    self,
    job_id: str,
    status: JobStatus,
    *,
    error_message: str | None = None,
    error_code: str | None = None,
    progress_percent: int | None = None,
    current_step: int | None = None,
    progress_message: str | None = None,
    program_id: str | None = None,
    result_json: dict[str, Any] | None = None,
    cost: dict[str, Any] | None = None,
    logs: list[str] | None = None,
  ) -> JobRecord | None:
    if not is_terminal(status):
      raise ValueError(f"{status} is not a terminal status.")
    async with self._lock:
      record = self._records.get(job_id)
      if record is None or record.terminal:
        return None
      timestamp = now_iso()
      changes: dict[str, Any] = {"status": status, "updated_at": timestamp, "completed_at": timestamp, "error_message": error_message, "error_code": error_code}
      for key, value in (("progress_percent", progress_percent), ("current_step", current_step), ("progress_message", progress_message), ("program_id", program_id), ("result_json", result_json), ("cost", cost)):
        if value is not None:
          changes[key] = value
      if logs is not None:
        changes["logs"] = list(logs)
      updated = replace(record, **changes)
      self._records[job_id] = updated
      return replace(updated, logs=list(updated.logs))

  async def find_queued(self, limit: int = 5) -> list[JobRecord]:
    async with self._lock:
      queued = [record for record in self._records.values() if record.status == "queued"]
      queued.sort(key=lambda record: record.created_at)
      return [replace(record, logs=list(record.logs)) for record in queued[:limit]]

  async def find_by_idempotency_key(self, idempotency_key: str) -> JobRecord | None:
    async with self._lock:
      for record in self._records.values():
        if record.idempotency_key == idempotency_key:
          return replace(record, logs=list(record.logs))
      return None


class InMemoryProgramsRepository:
  """Program store keyed by program id; workouts keyed by (week, day)."""

  def __init__(self) -> None:
    self._programs: dict[str, dict[str, Any]] = {}
    self._workouts: dict[str, dict[tuple[int, int], StoredWorkout]] = {}
    self.audits: list[GenerationAudit] = []
    self.revisions: list[dict[str, Any]] = []
    self._lock = asyncio.Lock()

  async def save_program(self, artifact: Artifact) -> int:
    async with self._lock:
      self._programs[artifact.program_id] = {
        "id": artifact.program_id,
        "program_name": artifact.program_name,
        "description": artifact.description,
        "ai_rationale": artifact.ai_rationale,
        "total_weeks": artifact.total_weeks,
        "sessions_per_week": artifact.sessions_per_week,
        "trainer_id": artifact.trainer_id,
        "client_profile_id": artifact.client_profile_id,
        "movement_balance_summary": dict(artifact.movement_balance_summary),
        "ai_model": artifact.model,
      }
      rows = workouts_from_artifact(artifact)
      # Replace the whole set so rows from an earlier, larger run do not linger.
      self._workouts[artifact.program_id] = {(row.week_number, row.day_number): row for row in rows}
      return len(rows)

  async def get_program(self, program_id: str) -> dict[str, Any] | None:
    async with self._lock:
      program = self._programs.get(program_id)
      return dict(program) if program else None

  async def list_workouts(self, program_id: str) -> list[StoredWorkout]:
    async with self._lock:
      bucket = self._workouts.get(program_id, {})
      return [bucket[key] for key in sorted(bucket)]

  async def record_generation(self, audit: GenerationAudit) -> None:
    async with self._lock:
      self.audits.append(audit)

  async def create_revision(self, program_id: str, *, revision_number: int, snapshot: dict[str, Any], change_description: str, created_by: str | None) -> None:
    async with self._lock:
      self.revisions = [item for item in self.revisions if not (item["program_id"] == program_id and item["revision_number"] == revision_number)]
      self.revisions.append({"program_id": program_id, "revision_number": revision_number, "program_snapshot": snapshot, "change_description": change_description, "created_by": created_by})


class InMemoryCatalogRepository:
  """Static exercise library."""

  def __init__(self, exercises: list[Exercise] | None = None) -> None:
    self._exercises = list(exercises or [])

  async def list_exercises(self) -> list[Exercise]:
    return list(self._exercises)


class InMemoryProfilesRepository:
  """Static client profiles."""

  def __init__(self, profiles: list[ClientProfile] | None = None) -> None:
    self._profiles = {profile.id: profile for profile in profiles or []}

  async def get_profile(self, profile_id: str) -> ClientProfile | None:
    return self._profiles.get(profile_id)
