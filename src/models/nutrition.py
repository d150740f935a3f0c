"""Nutrition data models shared by services and API responses.

JSON field names are camelCase (``caloriesPer100g``); Python attributes
stay snake_case. Either form is accepted on input.
"""
from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_UPPER_AFTER_DIGIT = re.compile(r"(?<=\d)[A-Z]")


def camel_alias(name: str) -> str:
    """``calories_per_100g`` -> ``caloriesPer100g`` (pydantic's to_camel gives ``Per100G``)."""
    return _UPPER_AFTER_DIGIT.sub(lambda m: m.group(0).lower(), to_camel(name))


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=camel_alias,
        populate_by_name=True,
        from_attributes=True,
    )


class MacroTotals(CamelModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class ProcessedFood(CamelModel):
    """A food normalised to per-100g values (USDA or local fallback)."""
    usda_fdc_id: int = 0
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    calories_per_100g: float = 0
    protein_per_100g: float = 0
    carbs_per_100g: float = 0
    fat_per_100g: float = 0
    fiber_per_100g: float = 0
    sugar_per_100g: float = 0
    sodium_per_100g: float = 0


class FoodEstimate(CamelModel):
    name: str
    quantity: float = 1
    unit: str = "unidades"
    estimated_calories: float = 0
    estimated_protein: float = 0
    estimated_carbs: float = 0
    estimated_fat: float = 0


class MealAnalysis(CamelModel):
    foods: list[FoodEstimate] = []
    total_calories: float = 0
    confidence: float = Field(0.0, ge=0, le=1)


class RecipeSuggestion(CamelModel):
    name: str
    description: str = ""
    ingredients: list[str] = []
    estimated_calories: float = 0
    estimated_protein: float = 0
    estimated_carbs: float = 0
    estimated_fat: float = 0
    cooking_time: int = 0
    difficulty: Literal["easy", "medium", "hard"] = "easy"


class PersonalizedRecommendation(CamelModel):
    recipe: RecipeSuggestion
    reason: str
    nutrition_match: Literal["calories", "protein", "carbs", "fat", "balanced"] = "balanced"
    priority: Literal["high", "medium", "low"] = "medium"


class GeneratedPlan(CamelModel):
    """Plan produced by the AI service (or its fallback) before storage."""
    name: str
    description: str = ""
    type: Literal["diet", "workout", "combined"]
    content: dict[str, Any] = {}
    daily_calories: int = 0
    macro_carbs: int = 0
    macro_protein: int = 0
    macro_fat: int = 0
