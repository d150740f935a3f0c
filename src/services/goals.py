"""Daily calorie and macro goals from body stats.

Mifflin-St Jeor BMR, scaled by an activity factor, shifted by a fixed
offset per goal and split 25% protein / 25% fat / 50% carbs.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

from src.services.rounding import round_half_up, round_int


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class Goal(str, Enum):
    LOSE = "lose"
    MAINTAIN = "maintain"
    GAIN = "gain"


ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

GOAL_OFFSETS = {
    Goal.LOSE: -500,
    Goal.MAINTAIN: 0,
    Goal.GAIN: 300,
}

PROTEIN_SHARE = 0.25
FAT_SHARE = 0.25
CARBS_SHARE = 0.50
KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_FAT = 9
KCAL_PER_G_CARBS = 4


@dataclass
class NutritionGoals:
    bmr: float
    tdee: float
    daily_calories: int
    daily_protein: int
    daily_carbs: int
    daily_fat: int

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_bmr(weight: float, height: float, age: int) -> float:
    return 10 * weight + 6.25 * height - 5 * age + 5


def calculate_goals(
    weight: float, height: float, age: int,
    activity_level: str, goal: str,
) -> NutritionGoals:
    """Raises ValueError for an unknown activity level or goal."""
    multiplier = ACTIVITY_MULTIPLIERS[ActivityLevel(activity_level)]
    offset = GOAL_OFFSETS[Goal(goal)]

    bmr = calculate_bmr(weight, height, age)
    tdee = bmr * multiplier
    calories = round_int(tdee + offset)

    return NutritionGoals(
        bmr=bmr,
        tdee=round_half_up(tdee, 1),
        daily_calories=calories,
        daily_protein=round_int(calories * PROTEIN_SHARE / KCAL_PER_G_PROTEIN),
        daily_carbs=round_int(calories * CARBS_SHARE / KCAL_PER_G_CARBS),
        daily_fat=round_int(calories * FAT_SHARE / KCAL_PER_G_FAT),
    )
