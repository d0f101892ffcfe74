"""Domain models for asynchronous program generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["queued", "running", "validating", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"queued", "running", "validating"})


def is_terminal(status: str) -> bool:
  """Return True when a status can no longer change."""
  return status in TERMINAL_STATUSES


@dataclass
class JobRecord:
  """Represents a background program generation job."""

  job_id: str
  request: dict[str, Any]
  status: JobStatus
  created_at: str
  updated_at: str
  program_id: str | None = None
  trainer_id: str | None = None
  progress_percent: int = 0
  current_step: int = 0
  total_steps: int = 0
  progress_message: str | None = None
  error_message: str | None = None
  error_code: str | None = None
  deadline_at: str | None = None
  started_at: str | None = None
  completed_at: str | None = None
  logs: list[str] = field(default_factory=list)
  result_json: dict[str, Any] | None = None
  cost: dict[str, Any] | None = None
  idempotency_key: str | None = None

  @property
  def terminal(self) -> bool:
    return is_terminal(self.status)
