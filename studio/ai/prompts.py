"""Prompt builders for program generation."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from studio.generation.contracts import Chunk, Exercise, ProgramRequest

SYSTEM_PROMPT = """You are an experienced strength and conditioning coach who designs safe, progressive training programs.

Respond with ONLY a JSON object in this shape:
{
  "program_name": "string",
  "description": "string",
  "total_weeks": 0,
  "sessions_per_week": 0,
  "ai_rationale": "string",
  "movement_balance_summary": {"push_horizontal": 0},
  "weekly_structure": [
    {
      "week_number": 1,
      "workouts": [
        {
          "day_number": 1,
          "workout_name": "string",
          "workout_focus": "string",
          "session_type": "string",
          "movement_patterns_covered": ["string"],
          "planes_of_motion_covered": ["string"],
          "ai_rationale": "string",
          "exercises": [
            {"exercise_id": "id from the library", "exercise_order": 1, "block_label": "A", "sets": 3, "reps_target": "8-10", "target_rpe": 7, "tempo": "3-1-1-0", "rest_seconds": 90, "coaching_cues": ["string"], "modifications": ["string"]}
          ]
        }
      ]
    }
  ]
}

Every exercise_id MUST come from the provided exercise library. If the constraints make a program impossible, return {"error": "reason"} instead."""


def _compact_exercise(exercise: Exercise) -> dict[str, Any]:
  return {"id": exercise.id, "name": exercise.name, "category": exercise.category, "equipment": exercise.equipment or "body only", "level": exercise.level, "movement_pattern": exercise.movement_pattern}


def build_user_prompt(request: ProgramRequest, exercises: Sequence[Exercise]) -> str:
  """Render request parameters and the compact exercise library."""
  constraints = request.constraints
  client = {
    "primary_goal": request.primary_goal,
    "secondary_goals": list(request.secondary_goals),
    "experience_level": constraints.experience_level,
    "available_equipment": list(constraints.available_equipment),
    "training_location": request.training_location,
    "injury_restrictions": list(constraints.exclusions),
    "exercise_aversions": list(constraints.aversions),
  }
  program = {"total_weeks": request.total_weeks, "sessions_per_week": request.sessions_per_week, "session_duration_minutes": request.session_duration_minutes}
  library = [_compact_exercise(exercise) for exercise in exercises]
  return (
    f"CLIENT:\n{json.dumps(client, ensure_ascii=True)}\n\n"
    f"PROGRAM:\n{json.dumps(program, ensure_ascii=True)}\n\n"
    f"EXERCISE LIBRARY ({len(library)} exercises):\n{json.dumps(library, ensure_ascii=True)}"
  )


def build_chunk_instruction(chunk: Chunk, *, total_units: int, groups_per_unit: int, carried_context: list[dict[str, Any]]) -> str:
  """Instruction appended to the user prompt for one chunk."""
  if chunk.is_first or not carried_context:
    return (
      f"IMPORTANT: Generate weeks {chunk.start_unit} through {chunk.end_unit} of the {total_units}-week program "
      f"as the FOUNDATION phase. Include {groups_per_unit} sessions per week."
    )
  return (
    f"PREVIOUS WEEKS CONTEXT:\n{json.dumps(carried_context, indent=2, ensure_ascii=True)}\n\n"
    f"IMPORTANT: Generate weeks {chunk.start_unit} through {chunk.end_unit} as the NEXT progression phase after the weeks above.\n"
    "- Show measurable progression from the previous weeks (intensity, volume, or complexity)\n"
    "- Do NOT repeat the sample exercises above verbatim or in the same order\n"
    "- Keep movement patterns balanced while introducing variety\n"
    f"- Include {groups_per_unit} sessions per week"
  )


def build_chunk_prompt(base_prompt: str, chunk: Chunk, *, total_units: int, groups_per_unit: int, carried_context: list[dict[str, Any]]) -> str:
  """Combine the shared user prompt with the chunk's week range and instruction."""
  weeks = str(chunk.start_unit) if chunk.start_unit == chunk.end_unit else f"[{chunk.start_unit}, {chunk.end_unit}]"
  instruction = build_chunk_instruction(chunk, total_units=total_units, groups_per_unit=groups_per_unit, carried_context=carried_context)
  return f"{base_prompt}\n\nGENERATE_WEEKS: {weeks}\n\n{instruction}"
