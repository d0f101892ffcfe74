from __future__ import annotations

from sqlalchemy import ARRAY, Boolean, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studio.core.database import Base


class ExerciseRow(Base):
  __tablename__ = "exercises"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  name: Mapped[str] = mapped_column(String, nullable=False, index=True)
  anatomical_category: Mapped[str | None] = mapped_column(String, nullable=True)
  equipment: Mapped[str | None] = mapped_column(String, nullable=True)
  level: Mapped[str] = mapped_column(String, nullable=False, default="beginner")
  movement_pattern: Mapped[str | None] = mapped_column(String, nullable=True)
  primary_muscles: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  secondary_muscles: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  exercise_type: Mapped[str | None] = mapped_column(String, nullable=True)
  is_bodyweight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ClientProfileRow(Base):
  __tablename__ = "client_profiles"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  experience_level: Mapped[str] = mapped_column(String, nullable=False)
  primary_goal: Mapped[str] = mapped_column(String, nullable=False)
  secondary_goals: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  available_equipment: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  training_location: Mapped[str | None] = mapped_column(String, nullable=True)
  # [{"body_part": str, "restrictions": [str], "severity": str | None}]
  injuries: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  physical_limitations: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  exercise_aversions: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  preferred_exercise_types: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
  updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
