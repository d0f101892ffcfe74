from __future__ import annotations

from sqlalchemy import DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studio.core.database import Base

_UTC_NOW_TEXT = """to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""


class GenerationJob(Base):
  __tablename__ = "generation_jobs"
  __table_args__ = (
    Index("ux_generation_jobs_idempotency_key", "idempotency_key", unique=True, postgresql_where=text("idempotency_key IS NOT NULL")),
    Index("ix_generation_jobs_status_created", "status", "created_at"),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  request_json: Mapped[dict] = mapped_column(JSONB, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  program_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  trainer_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  progress_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  total_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  progress_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  error_code: Mapped[str | None] = mapped_column(String, nullable=True)
  logs_json: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  result_json: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  cost_json: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  deadline_at: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text(_UTC_NOW_TEXT))
  started_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text(_UTC_NOW_TEXT))
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
  idempotency_key: Mapped[str | None] = mapped_column(String, nullable=True)
