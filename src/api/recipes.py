"""User recipes — CRUD plus ingredients with derived totals."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.food import FoodOut
from src.auth import require_user
from src.db.engine import get_session
from src.db.repository import FoodRepository, RecipeDetail, RecipeRepository
from src.db.user_tables import UserRow
from src.models import CamelModel

router = APIRouter(prefix="/api", tags=["recipes"])


# ── Schemas ──────────────────────────────────────────────────────────────────

class IngredientIn(CamelModel):
    food_id: str
    quantity: float = Field(..., gt=0)
    unit: str = "g"


class RecipeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    servings: int = Field(1, ge=1, le=100)
    is_favorite: bool = False
    ingredients: list[IngredientIn] = []


class RecipeUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    servings: Optional[int] = Field(None, ge=1, le=100)
    is_favorite: Optional[bool] = None


class IngredientOut(CamelModel):
    id: str
    food_id: str
    quantity: float
    unit: str
    food: Optional[FoodOut] = None


class RecipeOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    servings: int
    total_calories: int
    total_protein: float
    total_carbs: float
    total_fat: float
    is_favorite: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ingredients: list[IngredientOut] = []


def recipe_payload(detail: RecipeDetail) -> RecipeOut:
    r = detail.recipe
    return RecipeOut(
        id=r.id, name=r.name, description=r.description, instructions=r.instructions,
        servings=r.servings or 1,
        total_calories=r.total_calories or 0, total_protein=r.total_protein or 0,
        total_carbs=r.total_carbs or 0, total_fat=r.total_fat or 0,
        is_favorite=bool(r.is_favorite), created_at=r.created_at, updated_at=r.updated_at,
        ingredients=[
            IngredientOut(
                id=ing.id, food_id=ing.food_id, quantity=ing.quantity, unit=ing.unit or "g",
                food=FoodOut.model_validate(food) if food else None,
            )
            for ing, food in detail.ingredients
        ],
    )


async def _own_recipe(recipe_id: str, user: UserRow, repo: RecipeRepository):
    recipe = await repo.get(recipe_id, user.id)
    if recipe is None:
        raise HTTPException(404, "Recipe not found")
    return recipe


async def _add_ingredient(repo: RecipeRepository, foods: FoodRepository, user: UserRow, recipe, ing: IngredientIn):
    if await foods.get_visible(ing.food_id, user.id) is None:
        raise HTTPException(400, f"Unknown food: {ing.food_id}")
    await repo.add_ingredient(recipe, ing.food_id, ing.quantity, ing.unit)


# ── Routes ───────────────────────────────────────────────────────────────────

@router.get("/recipes", response_model=list[RecipeOut])
async def list_recipes(user: UserRow = Depends(require_user), session: AsyncSession = Depends(get_session)):
    return [recipe_payload(d) for d in await RecipeRepository(session).list_recipes(user.id)]


@router.post("/recipes", response_model=RecipeOut, status_code=201)
async def create_recipe(
    req: RecipeCreate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = RecipeRepository(session)
    foods = FoodRepository(session)
    recipe = await repo.create(user.id, req.model_dump(exclude={"ingredients"}))
    for ing in req.ingredients:
        await _add_ingredient(repo, foods, user, recipe, ing)
    await session.commit()
    return recipe_payload(await repo.detail(recipe))


@router.patch("/recipes/{recipe_id}", response_model=RecipeOut)
async def update_recipe(
    recipe_id: str,
    req: RecipeUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = RecipeRepository(session)
    recipe = await _own_recipe(recipe_id, user, repo)
    await repo.update(recipe, req.model_dump(exclude_unset=True, exclude_none=True))
    await session.commit()
    return recipe_payload(await repo.detail(recipe))


@router.post("/recipes/{recipe_id}/ingredients", response_model=RecipeOut, status_code=201)
async def add_ingredient(
    recipe_id: str,
    req: IngredientIn,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = RecipeRepository(session)
    recipe = await _own_recipe(recipe_id, user, repo)
    await _add_ingredient(repo, FoodRepository(session), user, recipe, req)
    await session.commit()
    return recipe_payload(await repo.detail(recipe))


@router.delete("/recipes/{recipe_id}")
async def delete_recipe(
    recipe_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = RecipeRepository(session)
    recipe = await _own_recipe(recipe_id, user, repo)
    await repo.delete(recipe)
    await session.commit()
    return {"success": True}
