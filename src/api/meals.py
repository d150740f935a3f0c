"""Meal logging API — meals on a nutritional day and their food lines."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.food import FoodOut
from src.auth import require_user
from src.db.engine import get_session
from src.db.repository import FoodRepository, MealDetail, MealRepository, MealTypeRepository, scale_food
from src.db.user_tables import UserRow
from src.models import CamelModel, MacroTotals
from src.services.nutritional_day import as_utc, nutritional_day, parse_day
from src.services.rounding import round_half_up

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["meals"])

Unit = Literal["g", "ml", "units", "spoons", "cups"]


# ── Schemas ──────────────────────────────────────────────────────────────────

class MealCreate(CamelModel):
    meal_type_id: str
    date: Optional[str] = None
    name: Optional[str] = Field(None, max_length=255)
    created_at: Optional[datetime] = None


class MealFoodAdd(CamelModel):
    food_id: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit: Unit = "g"
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    # Used when no valid foodId is given and a custom food is created on the fly
    name: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=255)


class MealTypeRef(CamelModel):
    id: str
    name: str
    icon: Optional[str] = None


class MealFoodOut(CamelModel):
    id: str
    food_id: str
    quantity: float
    unit: str
    calories: float
    protein: float
    carbs: float
    fat: float
    food: Optional[FoodOut] = None


class MealOut(CamelModel):
    id: str
    meal_type_id: str
    date: date
    name: Optional[str] = None
    total_calories: int
    total_protein: float
    total_carbs: float
    total_fat: float
    created_at: datetime
    meal_type: Optional[MealTypeRef] = None
    foods: list[MealFoodOut] = []


def meal_payload(detail: MealDetail) -> MealOut:
    meal = detail.meal
    return MealOut(
        id=meal.id,
        meal_type_id=meal.meal_type_id,
        date=meal.date,
        name=meal.name,
        total_calories=meal.total_calories or 0,
        total_protein=meal.total_protein or 0,
        total_carbs=meal.total_carbs or 0,
        total_fat=meal.total_fat or 0,
        created_at=as_utc(meal.created_at),
        meal_type=MealTypeRef.model_validate(detail.meal_type) if detail.meal_type else None,
        foods=[
            MealFoodOut(
                id=ml.line.id, food_id=ml.line.food_id, quantity=ml.line.quantity, unit=ml.line.unit or "g",
                calories=ml.line.calories, protein=ml.line.protein, carbs=ml.line.carbs, fat=ml.line.fat,
                food=FoodOut.model_validate(ml.food) if ml.food else None,
            )
            for ml in detail.lines
        ],
    )


def _parse_date(value: str) -> date:
    try:
        return parse_day(value)
    except ValueError:
        raise HTTPException(400, "Invalid date, expected YYYY-MM-DD")


async def _own_meal(meal_id: str, user: UserRow, repo: MealRepository):
    meal = await repo.get(meal_id, user.id)
    if meal is None:
        raise HTTPException(404, "Meal not found")
    return meal


# ── Meals ────────────────────────────────────────────────────────────────────

@router.get("/meals", response_model=list[MealOut])
async def list_meals(
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    day = _parse_date(date) if date else None
    details = await MealRepository(session).list_meals(user.id, day)
    return [meal_payload(d) for d in details]


@router.post("/meals", response_model=MealOut, status_code=201)
async def create_meal(
    req: MealCreate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Create an empty meal. ``date`` defaults to the nutritional day of ``createdAt`` (or now)."""
    meal_type = await MealTypeRepository(session).get(req.meal_type_id)
    if meal_type is None or (meal_type.user_id is not None and meal_type.user_id != user.id):
        raise HTTPException(400, "Invalid meal type")

    created_at = as_utc(req.created_at) if req.created_at else None
    day = _parse_date(req.date) if req.date else parse_day(nutritional_day(created_at))

    repo = MealRepository(session)
    meal = await repo.create(user.id, meal_type.id, day, req.name, created_at)
    await session.commit()
    return meal_payload(MealDetail(meal=meal, meal_type=meal_type))


@router.delete("/meals/{meal_id}")
async def delete_meal(
    meal_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = MealRepository(session)
    meal = await _own_meal(meal_id, user, repo)
    await repo.delete(meal)
    await session.commit()
    return {"success": True}


@router.post("/meals/{meal_id}/foods", response_model=MealOut, status_code=201)
async def add_meal_food(
    meal_id: str,
    req: MealFoodAdd,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Add a food line and recompute the meal totals.

    Without a valid ``foodId`` a custom food is created from the given
    nutrients, scaled to per-100g.
    """
    repo = MealRepository(session)
    foods = FoodRepository(session)
    meal = await _own_meal(meal_id, user, repo)

    food = await foods.get_visible(req.food_id, user.id) if req.food_id else None
    if food is None:
        if req.calories is None:
            raise HTTPException(400, "Provide a valid foodId or the food's nutrients")
        per_100g = 100 / req.quantity
        food = await foods.create(user.id, {
            "name": req.name or "Alimento Personalizado",
            "category": req.category or "Personalizado",
            "calories_per_100g": round_half_up(req.calories * per_100g, 2),
            "protein_per_100g": round_half_up((req.protein or 0) * per_100g, 2),
            "carbs_per_100g": round_half_up((req.carbs or 0) * per_100g, 2),
            "fat_per_100g": round_half_up((req.fat or 0) * per_100g, 2),
        })
        logger.info("Created custom food %s for meal %s", food.id, meal.id)

    if req.calories is None:
        nutrition = scale_food(food, req.quantity, req.unit)
    else:
        nutrition = MacroTotals(
            calories=req.calories, protein=req.protein or 0,
            carbs=req.carbs or 0, fat=req.fat or 0,
        )

    await repo.add_food(meal, food.id, req.quantity, req.unit, nutrition)
    await session.commit()
    return meal_payload(await repo.detail(meal))


@router.delete("/meals/{meal_id}/foods/{food_id}", response_model=MealOut)
async def remove_meal_food(
    meal_id: str,
    food_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = MealRepository(session)
    meal = await _own_meal(meal_id, user, repo)
    removed = await repo.remove_food(meal, food_id)
    if not removed:
        raise HTTPException(404, "Food not found in meal")
    await session.commit()
    return meal_payload(await repo.detail(meal))
