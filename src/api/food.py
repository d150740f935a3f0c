"""Food catalog API — global and custom foods, USDA lookup, meal types."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import get_current_user, require_user
from src.db.engine import get_session
from src.db.repository import FoodRepository, MealTypeRepository
from src.db.user_tables import UserRow
from src.models import CamelModel, ProcessedFood
from src.services.usda import UsdaFoodService

router = APIRouter(prefix="/api", tags=["food"])


def get_usda_service() -> UsdaFoodService:
    return UsdaFoodService()


# ── Schemas ──────────────────────────────────────────────────────────────────

class FoodOut(CamelModel):
    id: str
    usda_fdc_id: Optional[int] = None
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    calories_per_100g: float
    protein_per_100g: float
    carbs_per_100g: float
    fat_per_100g: float
    fiber_per_100g: Optional[float] = None
    sugar_per_100g: Optional[float] = None
    sodium_per_100g: Optional[float] = None
    is_custom: bool = False
    user_id: Optional[str] = None


class FoodCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=255)
    calories_per_100g: float = Field(..., ge=0)
    protein_per_100g: float = Field(0, ge=0)
    carbs_per_100g: float = Field(0, ge=0)
    fat_per_100g: float = Field(0, ge=0)
    fiber_per_100g: float = Field(0, ge=0)
    sugar_per_100g: float = Field(0, ge=0)
    sodium_per_100g: float = Field(0, ge=0)


class FoodUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=255)
    calories_per_100g: Optional[float] = Field(None, ge=0)
    protein_per_100g: Optional[float] = Field(None, ge=0)
    carbs_per_100g: Optional[float] = Field(None, ge=0)
    fat_per_100g: Optional[float] = Field(None, ge=0)
    fiber_per_100g: Optional[float] = Field(None, ge=0)
    sugar_per_100g: Optional[float] = Field(None, ge=0)
    sodium_per_100g: Optional[float] = Field(None, ge=0)


class FromUsdaRequest(CamelModel):
    usda_food: ProcessedFood


class MealTypeOut(CamelModel):
    id: str
    name: str
    icon: Optional[str] = None
    is_default: bool = False
    user_id: Optional[str] = None


class MealTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: Optional[str] = Field(None, max_length=50)


# ── Foods ────────────────────────────────────────────────────────────────────

@router.get("/foods", response_model=list[FoodOut])
async def list_foods(
    search: Optional[str] = Query(None, max_length=100),
    user: Optional[UserRow] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Global foods plus the caller's own custom foods."""
    return await FoodRepository(session).list_foods(user.id if user else None, search)


@router.get("/foods/search", response_model=list[ProcessedFood])
async def search_usda(
    query: str = Query("", max_length=100),
    usda: UsdaFoodService = Depends(get_usda_service),
):
    """Search USDA FoodData Central (Portuguese queries are translated)."""
    if len(query.strip()) < 3:
        raise HTTPException(400, "Query must be at least 3 characters")
    return await usda.search_foods(query.strip())


@router.get("/foods/usda/{fdc_id}", response_model=ProcessedFood)
async def usda_details(fdc_id: int, usda: UsdaFoodService = Depends(get_usda_service)):
    food = await usda.get_food_details(fdc_id)
    if food is None:
        raise HTTPException(404, "Food not found")
    return food


@router.post("/foods/from-usda", response_model=FoodOut, status_code=201)
async def create_from_usda(
    req: FromUsdaRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    food = await FoodRepository(session).create_from_processed(user.id, req.usda_food)
    await session.commit()
    return food


@router.post("/foods", response_model=FoodOut, status_code=201)
async def create_food(
    req: FoodCreate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    food = await FoodRepository(session).create(user.id, req.model_dump())
    await session.commit()
    return food


async def _own_food(food_id: str, user: UserRow, repo: FoodRepository):
    food = await repo.get(food_id)
    if food is None or food.user_id != user.id:
        raise HTTPException(404, "Food not found")
    return food


@router.patch("/foods/{food_id}", response_model=FoodOut)
async def update_food(
    food_id: str,
    req: FoodUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = FoodRepository(session)
    food = await _own_food(food_id, user, repo)
    food = await repo.update(food, req.model_dump(exclude_unset=True, exclude_none=True))
    await session.commit()
    return food


@router.delete("/foods/{food_id}")
async def delete_food(
    food_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = FoodRepository(session)
    food = await _own_food(food_id, user, repo)
    await repo.delete(food)
    await session.commit()
    return {"success": True}


# ── Meal types ───────────────────────────────────────────────────────────────

@router.get("/meal-types", response_model=list[MealTypeOut])
async def list_meal_types(
    user: Optional[UserRow] = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await MealTypeRepository(session).list_types(user.id if user else None)


@router.post("/meal-types", response_model=MealTypeOut, status_code=201)
async def create_meal_type(
    req: MealTypeCreate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    meal_type = await MealTypeRepository(session).create(user.id, req.name, req.icon)
    await session.commit()
    return meal_type
