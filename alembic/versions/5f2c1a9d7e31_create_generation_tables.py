"""Create catalog, job and program tables.

Revision ID: 5f2c1a9d7e31
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5f2c1a9d7e31"
down_revision = None
branch_labels = None
depends_on = None

_UTC_NOW_TEXT = """to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""


def _string_array(name: str) -> sa.Column:
  return sa.Column(name, postgresql.ARRAY(sa.String()), nullable=False, server_default="{}")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "exercises",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("anatomical_category", sa.String(), nullable=True),
    sa.Column("equipment", sa.String(), nullable=True),
    sa.Column("level", sa.String(), nullable=False, server_default="beginner"),
    sa.Column("movement_pattern", sa.String(), nullable=True),
    _string_array("primary_muscles"),
    _string_array("secondary_muscles"),
    sa.Column("exercise_type", sa.String(), nullable=True),
    sa.Column("is_bodyweight", sa.Boolean(), nullable=False, server_default=sa.false()),
  )
  op.create_index("ix_exercises_name", "exercises", ["name"], unique=False)

  op.create_table(
    "client_profiles",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("experience_level", sa.String(), nullable=False),
    sa.Column("primary_goal", sa.String(), nullable=False),
    _string_array("secondary_goals"),
    _string_array("available_equipment"),
    sa.Column("training_location", sa.String(), nullable=True),
    sa.Column("injuries", postgresql.JSONB(), nullable=True),
    _string_array("physical_limitations"),
    _string_array("exercise_aversions"),
    _string_array("preferred_exercise_types"),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )

  op.create_table(
    "generation_jobs",
    sa.Column("job_id", sa.String(), primary_key=True),
    sa.Column("request_json", postgresql.JSONB(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("program_id", sa.String(), nullable=True),
    sa.Column("trainer_id", sa.String(), nullable=True),
    sa.Column("progress_percent", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("current_step", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("total_steps", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("progress_message", sa.Text(), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("error_code", sa.String(), nullable=True),
    sa.Column("logs_json", postgresql.JSONB(), nullable=True),
    sa.Column("result_json", postgresql.JSONB(), nullable=True),
    sa.Column("cost_json", postgresql.JSONB(), nullable=True),
    sa.Column("deadline_at", sa.String(), nullable=True),
    sa.Column("created_at", sa.String(), nullable=False, server_default=sa.text(_UTC_NOW_TEXT)),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("updated_at", sa.String(), nullable=False, server_default=sa.text(_UTC_NOW_TEXT)),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.Column("idempotency_key", sa.String(), nullable=True),
  )
  op.create_index("ix_generation_jobs_program_id", "generation_jobs", ["program_id"], unique=False)
  op.create_index("ix_generation_jobs_trainer_id", "generation_jobs", ["trainer_id"], unique=False)
  op.create_index("ix_generation_jobs_status_created", "generation_jobs", ["status", "created_at"], unique=False)
  op.create_index("ux_generation_jobs_idempotency_key", "generation_jobs", ["idempotency_key"], unique=True, postgresql_where=sa.text("idempotency_key IS NOT NULL"))

  op.create_table(
    "ai_programs",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("trainer_id", sa.String(), nullable=True),
    sa.Column("client_profile_id", sa.String(), nullable=True),
    sa.Column("program_name", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("ai_rationale", sa.Text(), nullable=True),
    sa.Column("total_weeks", sa.Integer(), nullable=False),
    sa.Column("sessions_per_week", sa.Integer(), nullable=False),
    sa.Column("session_duration_minutes", sa.Integer(), nullable=True),
    sa.Column("movement_balance_summary", postgresql.JSONB(), nullable=True),
    sa.Column("ai_model", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )
  op.create_index("ix_ai_programs_trainer_id", "ai_programs", ["trainer_id"], unique=False)
  op.create_index("ix_ai_programs_client_profile_id", "ai_programs", ["client_profile_id"], unique=False)

  op.create_table(
    "ai_workouts",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("program_id", sa.String(), sa.ForeignKey("ai_programs.id", ondelete="CASCADE"), nullable=False),
    sa.Column("week_number", sa.Integer(), nullable=False),
    sa.Column("day_number", sa.Integer(), nullable=False),
    sa.Column("session_order", sa.Integer(), nullable=True),
    sa.Column("workout_name", sa.String(), nullable=False),
    sa.Column("workout_focus", sa.String(), nullable=True),
    sa.Column("session_type", sa.String(), nullable=True),
    sa.Column("planned_duration_minutes", sa.Integer(), nullable=True),
    _string_array("movement_patterns_covered"),
    _string_array("planes_of_motion_covered"),
    sa.Column("ai_rationale", sa.Text(), nullable=True),
    sa.UniqueConstraint("program_id", "week_number", "day_number", name="ux_ai_workouts_program_week_day"),
  )
  op.create_index("ix_ai_workouts_program_id", "ai_workouts", ["program_id"], unique=False)

  op.create_table(
    "ai_workout_exercises",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("workout_id", sa.Integer(), sa.ForeignKey("ai_workouts.id", ondelete="CASCADE"), nullable=False),
    sa.Column("exercise_id", sa.String(), sa.ForeignKey("exercises.id"), nullable=False),
    sa.Column("exercise_order", sa.Integer(), nullable=False),
    sa.Column("block_label", sa.String(), nullable=True),
    sa.Column("sets", sa.Integer(), nullable=True),
    sa.Column("reps_target", sa.String(), nullable=True),
    sa.Column("target_rpe", sa.Float(), nullable=True),
    sa.Column("tempo", sa.String(), nullable=True),
    sa.Column("rest_seconds", sa.Integer(), nullable=True),
    _string_array("coaching_cues"),
    _string_array("modifications"),
  )
  op.create_index("ix_ai_workout_exercises_workout_id", "ai_workout_exercises", ["workout_id"], unique=False)
  op.create_index("ix_ai_workout_exercises_exercise_id", "ai_workout_exercises", ["exercise_id"], unique=False)

  op.create_table(
    "ai_generation_logs",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("entity_id", sa.String(), nullable=False),
    sa.Column("entity_type", sa.String(), nullable=False),
    sa.Column("generation_type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("ai_provider", sa.String(), nullable=False),
    sa.Column("ai_model", sa.String(), nullable=False),
    sa.Column("prompt_version", sa.String(), nullable=False),
    sa.Column("input_tokens", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("output_tokens", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("estimated_cost_usd", sa.Numeric(12, 6), nullable=False, server_default="0"),
    sa.Column("latency_ms", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("call_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )
  op.create_index("ix_ai_generation_logs_entity_id", "ai_generation_logs", ["entity_id"], unique=False)

  op.create_table(
    "program_revisions",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("program_id", sa.String(), sa.ForeignKey("ai_programs.id", ondelete="CASCADE"), nullable=False),
    sa.Column("revision_number", sa.Integer(), nullable=False),
    sa.Column("program_snapshot", postgresql.JSONB(), nullable=False),
    sa.Column("change_description", sa.Text(), nullable=True),
    sa.Column("created_by", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.UniqueConstraint("program_id", "revision_number", name="ux_program_revisions_program_revision"),
  )
  op.create_index("ix_program_revisions_program_id", "program_revisions", ["program_id"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  for table in ("program_revisions", "ai_generation_logs", "ai_workout_exercises", "ai_workouts", "ai_programs", "generation_jobs", "client_profiles", "exercises"):
    op.drop_table(table)
