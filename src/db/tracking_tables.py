"""Meal logging tables — meals, their food lines and the daily rollup."""
from __future__ import annotations

from sqlalchemy import (
    Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint,
)

from src.db.tables import Base, _uuid, utcnow


class MealRow(Base):
    """A meal on a nutritional day. Totals are derived from MealFoodRow."""
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    meal_type_id = Column(String(36), ForeignKey("meal_types.id"), nullable=False)
    date = Column(Date, nullable=False)
    name = Column(String(255), nullable=True)

    total_calories = Column(Integer, default=0)
    total_protein = Column(Float, default=0.0)
    total_carbs = Column(Float, default=0.0)
    total_fat = Column(Float, default=0.0)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_meals_user_date", "user_id", "date"),
        Index("ix_meals_user_created", "user_id", "created_at"),
    )


class MealFoodRow(Base):
    """Food line inside a meal.

    Nutrition is a snapshot taken when the line is added; later edits to
    the food do not change it.
    """
    __tablename__ = "meal_foods"

    id = Column(String(36), primary_key=True, default=_uuid)
    meal_id = Column(String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    food_id = Column(String(36), ForeignKey("foods.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String(20), default="g")  # g, ml, units, spoons, cups

    calories = Column(Float, nullable=False)
    protein = Column(Float, nullable=False)
    carbs = Column(Float, nullable=False)
    fat = Column(Float, nullable=False)


class DailyNutritionRow(Base):
    """One row per user per nutritional day — totals plus the goals in force."""
    __tablename__ = "daily_nutrition"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    total_calories = Column(Integer, default=0)
    total_protein = Column(Float, default=0.0)
    total_carbs = Column(Float, default=0.0)
    total_fat = Column(Float, default=0.0)

    goal_calories = Column(Integer, nullable=True)
    goal_protein = Column(Integer, nullable=True)
    goal_carbs = Column(Integer, nullable=True)
    goal_fat = Column(Integer, nullable=True)

    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_nutrition_user_date"),
    )
