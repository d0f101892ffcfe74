"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update

from studio.core.database import get_session_factory
from studio.jobs.models import TERMINAL_STATUSES, JobRecord, JobStatus, is_terminal
from studio.schema.jobs import GenerationJob
from studio.storage.jobs_repo import JobsRepository
from studio.utils.timefmt import now_iso


class PostgresJobsRepository(JobsRepository):
  """Persist jobs to Postgres; terminal transitions are guarded UPDATEs."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    async with self._session_factory() as session:
      # Map the record onto the ORM row; JSON columns carry the request and logs.
      job = GenerationJob(
        job_id=record.job_id,
        request_json=record.request,
        status=record.status,
        program_id=record.program_id,
        trainer_id=record.trainer_id,
        progress_percent=record.progress_percent,
        current_step=record.current_step,
        total_steps=record.total_steps,
        progress_message=record.progress_message,
        logs_json=list(record.logs),
        created_at=record.created_at,
        updated_at=record.updated_at,
        idempotency_key=record.idempotency_key,
      )
      session.add(job)
      await session.commit()

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def claim_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      # Only one worker can move a queued row to running; losers get no row back.
      stmt = update(GenerationJob).where(GenerationJob.job_id == job_id, GenerationJob.status == "queued").values(status="running", started_at=datetime.now(UTC), updated_at=now_iso()).returning(GenerationJob)
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      return self._model_to_record(row) if row is not None else None

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

    # Only the fields the caller supplied are written.
    values: dict[str, Any] = {"updated_at": now_iso()}
    if status is not None:
      values["status"] = status
    if progress_percent is not None:
      values["progress_percent"] = progress_percent
    if current_step is not None:
      values["current_step"] = current_step
    if total_steps is not None:
      values["total_steps"] = total_steps
    if progress_message is not None:
      values["progress_message"] = progress_message
    if program_id is not None:
      values["program_id"] = program_id
    if deadline_at is not None:
      values["deadline_at"] = deadline_at
    if logs is not None:
      values["logs_json"] = list(logs)
    if cost is not None:
      values["cost_json"] = cost

    # Progress writes after a terminal status match no rows.
    async with self._session_factory() as session:
      stmt = update(GenerationJob).where(GenerationJob.job_id == job_id, GenerationJob.status.not_in(TERMINAL_STATUSES)).values(**values).returning(GenerationJob)
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        # Missing or already terminal: report the stored state unchanged.
        row = await session.get(GenerationJob, job_id)
      return self._model_to_record(row) if row is not None else None

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

    # Error fields are always written so a completed job clears stale ones.
    timestamp = now_iso()
    values: dict[str, Any] = {"status": status, "updated_at": timestamp, "completed_at": timestamp, "error_message": error_message, "error_code": error_code}
    if progress_percent is not None:
      values["progress_percent"] = progress_percent
    if current_step is not None:
      values["current_step"] = current_step
    if progress_message is not None:
      values["progress_message"] = progress_message
    if program_id is not None:
      values["program_id"] = program_id
    if result_json is not None:
      values["result_json"] = result_json
    if cost is not None:
      values["cost_json"] = cost
    if logs is not None:
      values["logs_json"] = list(logs)

    # Compare-and-swap: the first terminal writer wins, later ones get None.
    async with self._session_factory() as session:
      stmt = update(GenerationJob).where(GenerationJob.job_id == job_id, GenerationJob.status.not_in(TERMINAL_STATUSES)).values(**values).returning(GenerationJob)
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      return self._model_to_record(row) if row is not None else None

  async def find_queued(self, limit: int = 5) -> list[JobRecord]:
    async with self._session_factory() as session:
      # Oldest first so the queue drains in submission order.
      stmt = select(GenerationJob).where(GenerationJob.status == "queued").order_by(GenerationJob.created_at.asc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def find_by_idempotency_key(self, idempotency_key: str) -> JobRecord | None:
    async with self._session_factory() as session:
      stmt = select(GenerationJob).where(GenerationJob.idempotency_key == idempotency_key).order_by(GenerationJob.created_at.asc()).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._model_to_record(row)

  def _model_to_record(self, row: GenerationJob) -> JobRecord:
    # JSON columns come back as plain lists and dicts.
    return JobRecord(
      job_id=row.job_id,
      request=row.request_json,
      status=row.status,
      created_at=row.created_at,
      updated_at=row.updated_at,
      program_id=row.program_id,
      trainer_id=row.trainer_id,
      progress_percent=int(row.progress_percent or 0),
      current_step=int(row.current_step or 0),
      total_steps=int(row.total_steps or 0),
      progress_message=row.progress_message,
      error_message=row.error_message,
      error_code=row.error_code,
      deadline_at=row.deadline_at,
      started_at=row.started_at.isoformat() if row.started_at is not None else None,
      completed_at=row.completed_at,
      logs=list(row.logs_json or []),
      result_json=row.result_json,
      cost=row.cost_json,
      idempotency_key=row.idempotency_key,
    )
