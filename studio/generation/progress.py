"""Human-readable progress for polling clients.

These helpers are pure: they never touch the job record and never influence
control flow. The tracker in ``studio.jobs.progress`` decides when to publish.
"""

from __future__ import annotations

from studio.generation.contracts import Chunk

PHASE_FILTERING = "filtering"
PHASE_FILTERED = "filtered"
PHASE_CHUNK_STARTED = "chunk_started"
PHASE_CHUNK_COMPLETED = "chunk_completed"
PHASE_VALIDATING = "validating"
PHASE_SAVING = "saving"
PHASE_COMPLETED = "completed"
PHASE_FAILED = "failed"

FILTERING_PERCENT = 5
FILTERED_PERCENT = 10
CHUNKS_END_PERCENT = 85
VALIDATING_PERCENT = 87
SAVING_PERCENT = 93


def total_steps(chunk_count: int) -> int:
  """Filter (2 steps) + start/finish per chunk + validate, save and complete."""
  return 2 + 2 * chunk_count + 3


def chunk_percent(completed_chunks: int, chunk_count: int) -> int:
  """Linear interpolation from 10% to 85% across the chunk loop."""
  if chunk_count <= 0:
    return FILTERED_PERCENT
  span = CHUNKS_END_PERCENT - FILTERED_PERCENT
  return round(FILTERED_PERCENT + (completed_chunks / chunk_count) * span)


def progress_message(phase: str, *, chunk: Chunk | None = None, chunk_count: int = 0, count: int | None = None) -> str:
  """Return the polling message for a phase (and chunk, where relevant)."""
  if phase == PHASE_FILTERING:
    return "Filtering exercises from library..."
  if phase == PHASE_FILTERED:
    return f"Filtered to {count or 0} exercises"
  if phase == PHASE_CHUNK_STARTED and chunk is not None:
    label = chunk.label().capitalize()
    return f"Generating {label} (chunk {chunk.index + 1}/{chunk_count})..."
  if phase == PHASE_CHUNK_COMPLETED and chunk is not None:
    return f"{chunk.label().capitalize()} complete"
  if phase == PHASE_VALIDATING:
    return "Validating program structure..."
  if phase == PHASE_SAVING:
    return f"Saving {count or 0} workouts and exercises..."
  if phase == PHASE_COMPLETED:
    return "Program generation complete!"
  if phase == PHASE_FAILED:
    return "Program generation failed"
  return "Working..."
