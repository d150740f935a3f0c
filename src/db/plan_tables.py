"""AI/custom diet and workout plans, plus per-day completion flags."""
from __future__ import annotations

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint,
)

from src.db.tables import Base, _uuid, utcnow

PLAN_TYPES = ("diet", "workout", "combined")


class UserPlanRow(Base):
    """Structured plan stored as JSON. At most one active per (user, type);
    PlanRepository enforces this on create and activate."""
    __tablename__ = "user_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False)
    content = Column(JSON, nullable=False, default=dict)

    daily_calories = Column(Integer, default=0)
    macro_carbs = Column(Integer, default=0)
    macro_protein = Column(Integer, default=0)
    macro_fat = Column(Integer, default=0)

    is_active = Column(Boolean, default=False)
    is_custom = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_user_plans_user_type_active", "user_id", "type", "is_active"),
    )


class DailyProgressRow(Base):
    __tablename__ = "daily_progress"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_id = Column(String(36), ForeignKey("user_plans.id", ondelete="CASCADE"), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    diet_completed = Column(Boolean, default=False)
    workout_completed = Column(Boolean, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "plan_id", "date", name="uq_daily_progress_plan_date"),
    )
