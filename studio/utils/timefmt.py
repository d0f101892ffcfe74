"""Timestamp helpers shared by repositories and the job pipeline."""

from __future__ import annotations

import time
from datetime import UTC, datetime

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def now_iso() -> str:
  """Return the current UTC time in the persisted string format."""
  return time.strftime(DATE_FORMAT, time.gmtime())


def iso_from_epoch(epoch_seconds: float) -> str:
  """Format an epoch timestamp with the persisted string format."""
  return datetime.fromtimestamp(epoch_seconds, UTC).strftime(DATE_FORMAT)
