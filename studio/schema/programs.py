from __future__ import annotations

from sqlalchemy import ARRAY, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studio.core.database import Base


class AIProgram(Base):
  __tablename__ = "ai_programs"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  trainer_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  client_profile_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  program_name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  ai_rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
  total_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
  sessions_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
  session_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
  movement_balance_summary: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  ai_model: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class AIWorkout(Base):
  __tablename__ = "ai_workouts"
  __table_args__ = (UniqueConstraint("program_id", "week_number", "day_number", name="ux_ai_workouts_program_week_day"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  program_id: Mapped[str] = mapped_column(ForeignKey("ai_programs.id", ondelete="CASCADE"), nullable=False, index=True)
  week_number: Mapped[int] = mapped_column(Integer, nullable=False)
  day_number: Mapped[int] = mapped_column(Integer, nullable=False)
  session_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
  workout_name: Mapped[str] = mapped_column(String, nullable=False)
  workout_focus: Mapped[str | None] = mapped_column(String, nullable=True)
  session_type: Mapped[str | None] = mapped_column(String, nullable=True)
  planned_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
  movement_patterns_covered: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  planes_of_motion_covered: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  ai_rationale: Mapped[str | None] = mapped_column(Text, nullable=True)


class AIWorkoutExercise(Base):
  __tablename__ = "ai_workout_exercises"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  workout_id: Mapped[int] = mapped_column(ForeignKey("ai_workouts.id", ondelete="CASCADE"), nullable=False, index=True)
  exercise_id: Mapped[str] = mapped_column(ForeignKey("exercises.id"), nullable=False, index=True)
  exercise_order: Mapped[int] = mapped_column(Integer, nullable=False)
  block_label: Mapped[str | None] = mapped_column(String, nullable=True)
  sets: Mapped[int | None] = mapped_column(Integer, nullable=True)
  reps_target: Mapped[str | None] = mapped_column(String, nullable=True)
  target_rpe: Mapped[float | None] = mapped_column(Float, nullable=True)
  tempo: Mapped[str | None] = mapped_column(String, nullable=True)
  rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
  coaching_cues: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  modifications: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)


class AIGenerationLog(Base):
  __tablename__ = "ai_generation_logs"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  entity_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  entity_type: Mapped[str] = mapped_column(String, nullable=False)
  generation_type: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  ai_provider: Mapped[str] = mapped_column(String, nullable=False)
  ai_model: Mapped[str] = mapped_column(String, nullable=False)
  prompt_version: Mapped[str] = mapped_column(String, nullable=False)
  input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  estimated_cost_usd: Mapped[float] = mapped_column(Numeric(12, 6), nullable=False, default=0)
  latency_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  call_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProgramRevision(Base):
  __tablename__ = "program_revisions"
  __table_args__ = (UniqueConstraint("program_id", "revision_number", name="ux_program_revisions_program_revision"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  program_id: Mapped[str] = mapped_column(ForeignKey("ai_programs.id", ondelete="CASCADE"), nullable=False, index=True)
  revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
  program_snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
  change_description: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_by: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
