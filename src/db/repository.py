"""Repositories — async CRUD over the NutrIA tables.

Repositories flush but never commit; the request handler owns the
transaction boundary.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.plan_tables import DailyProgressRow, UserPlanRow
from src.db.tables import FoodRow, MealTypeRow, RecipeIngredientRow, RecipeRow, utcnow
from src.db.tracking_tables import DailyNutritionRow, MealFoodRow, MealRow
from src.models import MacroTotals, ProcessedFood
from src.services.rounding import round_half_up, round_int

DEFAULT_MEAL_TYPES = [
    ("Café da Manhã", "coffee"),
    ("Almoço", "utensils"),
    ("Lanche", "cookie-bite"),
    ("Jantar", "bowl-food"),
    ("Ceia", "moon"),
]

# Grams represented by one unit of each supported measure
UNIT_TO_GRAMS = {
    "g": 1.0,
    "ml": 1.0,
    "spoons": 15.0,
    "cups": 240.0,
    "units": 100.0,
}


def _escape_like(value: str) -> str:
    """Escape LIKE wildcard characters in user input."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def scale_food(food: FoodRow, quantity: float, unit: str = "g") -> MacroTotals:
    """Nutrition for ``quantity`` ``unit`` of a per-100g food."""
    factor = quantity * UNIT_TO_GRAMS.get(unit, 1.0) / 100.0
    return MacroTotals(
        calories=round_half_up((food.calories_per_100g or 0) * factor, 2),
        protein=round_half_up((food.protein_per_100g or 0) * factor, 2),
        carbs=round_half_up((food.carbs_per_100g or 0) * factor, 2),
        fat=round_half_up((food.fat_per_100g or 0) * factor, 2),
    )


# ── Foods ─────────────────────────────────────────────────────────────────────

class FoodRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_foods(self, user_id: Optional[str] = None, search: Optional[str] = None,
                         limit: int = 200) -> list[FoodRow]:
        """Global foods plus the user's own, optionally filtered by name."""
        owner = FoodRow.user_id.is_(None)
        if user_id:
            owner = or_(owner, FoodRow.user_id == user_id)
        stmt = select(FoodRow).where(owner)
        if search:
            stmt = stmt.where(FoodRow.name.ilike(f"%{_escape_like(search)}%", escape="\\"))
        stmt = stmt.order_by(FoodRow.name).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, food_id: str) -> Optional[FoodRow]:
        return await self.session.get(FoodRow, food_id)

    async def get_visible(self, food_id: str, user_id: str) -> Optional[FoodRow]:
        """A food the user may reference: global or their own."""
        food = await self.get(food_id)
        if food is None or (food.user_id is not None and food.user_id != user_id):
            return None
        return food

    async def create(self, user_id: Optional[str], data: dict, is_custom: bool = True) -> FoodRow:
        row = FoodRow(user_id=user_id, is_custom=is_custom, **data)
        self.session.add(row)
        await self.session.flush()
        return row

    async def create_from_processed(self, user_id: str, food: ProcessedFood) -> FoodRow:
        data = food.model_dump()
        data["usda_fdc_id"] = data["usda_fdc_id"] or None
        return await self.create(user_id, data, is_custom=False)

    async def update(self, food: FoodRow, data: dict) -> FoodRow:
        for key, value in data.items():
            setattr(food, key, value)
        await self.session.flush()
        return food

    async def delete(self, food: FoodRow) -> None:
        # Meal lines keep their own snapshot but reference the food row
        meal_ids = (await self.session.scalars(
            select(MealFoodRow.meal_id).where(MealFoodRow.food_id == food.id).distinct()
        )).all()
        recipe_ids = (await self.session.scalars(
            select(RecipeIngredientRow.recipe_id).where(RecipeIngredientRow.food_id == food.id).distinct()
        )).all()
        await self.session.execute(delete(MealFoodRow).where(MealFoodRow.food_id == food.id))
        await self.session.execute(delete(RecipeIngredientRow).where(RecipeIngredientRow.food_id == food.id))
        await self.session.delete(food)
        await self.session.flush()

        meals = MealRepository(self.session)
        for meal_id in meal_ids:
            meal = await self.session.get(MealRow, meal_id)
            if meal is not None:
                await meals.update_totals(meal)
        recipes = RecipeRepository(self.session)
        for recipe_id in recipe_ids:
            recipe = await self.session.get(RecipeRow, recipe_id)
            if recipe is not None:
                await recipes.update_totals(recipe)

    async def seed_defaults(self, foods: Iterable[ProcessedFood]) -> int:
        """Insert global foods once. Returns how many were added."""
        count = await self.session.scalar(select(func.count(FoodRow.id)).where(FoodRow.user_id.is_(None)))
        if count:
            return 0
        added = 0
        for food in foods:
            data = food.model_dump()
            data["usda_fdc_id"] = data["usda_fdc_id"] or None
            self.session.add(FoodRow(user_id=None, is_custom=False, **data))
            added += 1
        await self.session.flush()
        return added


# ── Meal types ────────────────────────────────────────────────────────────────

class MealTypeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_types(self, user_id: Optional[str] = None) -> list[MealTypeRow]:
        owner = MealTypeRow.user_id.is_(None)
        if user_id:
            owner = or_(owner, MealTypeRow.user_id == user_id)
        result = await self.session.execute(
            select(MealTypeRow).where(owner).order_by(MealTypeRow.is_default.desc())
        )
        return list(result.scalars().all())

    async def get(self, meal_type_id: str) -> Optional[MealTypeRow]:
        return await self.session.get(MealTypeRow, meal_type_id)

    async def create(self, user_id: str, name: str, icon: Optional[str] = None) -> MealTypeRow:
        row = MealTypeRow(user_id=user_id, name=name, icon=icon, is_default=False)
        self.session.add(row)
        await self.session.flush()
        return row

    async def seed_defaults(self) -> int:
        """Create the five default meal types if no defaults exist yet."""
        existing = await self.session.scalar(
            select(func.count(MealTypeRow.id)).where(MealTypeRow.is_default.is_(True))
        )
        if existing:
            return 0
        for name, icon in DEFAULT_MEAL_TYPES:
            self.session.add(MealTypeRow(name=name, icon=icon, is_default=True))
        await self.session.flush()
        return len(DEFAULT_MEAL_TYPES)


# ── Meals ─────────────────────────────────────────────────────────────────────

@dataclass
class MealLine:
    line: MealFoodRow
    food: Optional[FoodRow]


@dataclass
class MealDetail:
    meal: MealRow
    meal_type: Optional[MealTypeRow]
    lines: list[MealLine] = field(default_factory=list)


class MealRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, meal_id: str, user_id: str) -> Optional[MealRow]:
        meal = await self.session.get(MealRow, meal_id)
        if meal is None or meal.user_id != user_id:
            return None
        return meal

    async def list_meals(self, user_id: str, day: Optional[date] = None) -> list[MealDetail]:
        """Meals with their type and food lines, newest first."""
        stmt = (
            select(MealRow, MealTypeRow)
            .outerjoin(MealTypeRow, MealRow.meal_type_id == MealTypeRow.id)
            .where(MealRow.user_id == user_id)
        )
        if day is not None:
            stmt = stmt.where(MealRow.date == day)
        stmt = stmt.order_by(MealRow.created_at.desc())
        rows = (await self.session.execute(stmt)).all()
        details = {meal.id: MealDetail(meal=meal, meal_type=mt) for meal, mt in rows}
        if not details:
            return []

        lines = await self.session.execute(
            select(MealFoodRow, FoodRow)
            .outerjoin(FoodRow, MealFoodRow.food_id == FoodRow.id)
            .where(MealFoodRow.meal_id.in_(list(details)))
        )
        for line, food in lines.all():
            details[line.meal_id].lines.append(MealLine(line=line, food=food))
        return list(details.values())

    async def detail(self, meal: MealRow) -> MealDetail:
        meal_type = await self.session.get(MealTypeRow, meal.meal_type_id)
        lines = await self.session.execute(
            select(MealFoodRow, FoodRow)
            .outerjoin(FoodRow, MealFoodRow.food_id == FoodRow.id)
            .where(MealFoodRow.meal_id == meal.id)
        )
        return MealDetail(
            meal=meal, meal_type=meal_type,
            lines=[MealLine(line=line, food=food) for line, food in lines.all()],
        )

    async def create(self, user_id: str, meal_type_id: str, day: date,
                     name: Optional[str] = None, created_at: Optional[datetime] = None) -> MealRow:
        row = MealRow(
            user_id=user_id, meal_type_id=meal_type_id, date=day, name=name,
            created_at=created_at or utcnow(),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def add_food(self, meal: MealRow, food_id: str, quantity: float, unit: str,
                       nutrition: MacroTotals) -> MealFoodRow:
        line = MealFoodRow(
            meal_id=meal.id, food_id=food_id, quantity=quantity, unit=unit,
            calories=nutrition.calories, protein=nutrition.protein,
            carbs=nutrition.carbs, fat=nutrition.fat,
        )
        self.session.add(line)
        await self.session.flush()
        await self.update_totals(meal)
        return line

    async def remove_food(self, meal: MealRow, food_id: str) -> int:
        """Drop every line of ``food_id`` from the meal. Returns rows removed."""
        result = await self.session.execute(
            delete(MealFoodRow).where(MealFoodRow.meal_id == meal.id, MealFoodRow.food_id == food_id)
        )
        await self.update_totals(meal)
        return result.rowcount or 0

    async def delete(self, meal: MealRow) -> None:
        await self.session.execute(delete(MealFoodRow).where(MealFoodRow.meal_id == meal.id))
        await self.session.delete(meal)
        await self.session.flush()

    async def update_totals(self, meal: MealRow) -> MealRow:
        """Recompute totals from the meal's lines (kcal whole, macros 1 decimal)."""
        row = (await self.session.execute(
            select(
                func.coalesce(func.sum(MealFoodRow.calories), 0),
                func.coalesce(func.sum(MealFoodRow.protein), 0),
                func.coalesce(func.sum(MealFoodRow.carbs), 0),
                func.coalesce(func.sum(MealFoodRow.fat), 0),
            ).where(MealFoodRow.meal_id == meal.id)
        )).one()
        meal.total_calories = round_int(row[0])
        meal.total_protein = round_half_up(row[1], 1)
        meal.total_carbs = round_half_up(row[2], 1)
        meal.total_fat = round_half_up(row[3], 1)
        await self.session.flush()
        return meal

    async def meals_between(self, user_id: str, start: datetime, end: datetime) -> list[tuple[MealRow, Optional[MealTypeRow]]]:
        """Meals created in ``[start, end)``, oldest first."""
        result = await self.session.execute(
            select(MealRow, MealTypeRow)
            .outerjoin(MealTypeRow, MealRow.meal_type_id == MealTypeRow.id)
            .where(MealRow.user_id == user_id, MealRow.created_at >= start, MealRow.created_at < end)
            .order_by(MealRow.created_at)
        )
        return [(meal, mt) for meal, mt in result.all()]

    async def totals_between(self, user_id: str, start: datetime, end: datetime) -> tuple[MacroTotals, int]:
        row = (await self.session.execute(
            select(
                func.coalesce(func.sum(MealRow.total_calories), 0),
                func.coalesce(func.sum(MealRow.total_protein), 0),
                func.coalesce(func.sum(MealRow.total_carbs), 0),
                func.coalesce(func.sum(MealRow.total_fat), 0),
                func.count(MealRow.id),
            ).where(MealRow.user_id == user_id, MealRow.created_at >= start, MealRow.created_at < end)
        )).one()
        return MacroTotals(calories=row[0], protein=row[1], carbs=row[2], fat=row[3]), row[4]

    async def totals_by_date(self, user_id: str, first: date, last: date) -> tuple[MacroTotals, int]:
        """Sum of meal totals whose ``date`` lies in ``[first, last]``."""
        row = (await self.session.execute(
            select(
                func.coalesce(func.sum(MealRow.total_calories), 0),
                func.coalesce(func.sum(MealRow.total_protein), 0),
                func.coalesce(func.sum(MealRow.total_carbs), 0),
                func.coalesce(func.sum(MealRow.total_fat), 0),
                func.count(MealRow.id),
            ).where(MealRow.user_id == user_id, MealRow.date >= first, MealRow.date <= last)
        )).one()
        return MacroTotals(calories=row[0], protein=row[1], carbs=row[2], fat=row[3]), row[4]


# ── Recipes ───────────────────────────────────────────────────────────────────

@dataclass
class RecipeDetail:
    recipe: RecipeRow
    ingredients: list[tuple[RecipeIngredientRow, Optional[FoodRow]]] = field(default_factory=list)


class RecipeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, recipe_id: str, user_id: str) -> Optional[RecipeRow]:
        recipe = await self.session.get(RecipeRow, recipe_id)
        if recipe is None or recipe.user_id != user_id:
            return None
        return recipe

    async def list_recipes(self, user_id: str) -> list[RecipeDetail]:
        result = await self.session.execute(
            select(RecipeRow).where(RecipeRow.user_id == user_id).order_by(RecipeRow.created_at.desc())
        )
        details = {r.id: RecipeDetail(recipe=r) for r in result.scalars().all()}
        if not details:
            return []
        rows = await self.session.execute(
            select(RecipeIngredientRow, FoodRow)
            .outerjoin(FoodRow, RecipeIngredientRow.food_id == FoodRow.id)
            .where(RecipeIngredientRow.recipe_id.in_(list(details)))
        )
        for ingredient, food in rows.all():
            details[ingredient.recipe_id].ingredients.append((ingredient, food))
        return list(details.values())

    async def detail(self, recipe: RecipeRow) -> RecipeDetail:
        rows = await self.session.execute(
            select(RecipeIngredientRow, FoodRow)
            .outerjoin(FoodRow, RecipeIngredientRow.food_id == FoodRow.id)
            .where(RecipeIngredientRow.recipe_id == recipe.id)
        )
        return RecipeDetail(recipe=recipe, ingredients=[(ing, food) for ing, food in rows.all()])

    async def create(self, user_id: str, data: dict) -> RecipeRow:
        row = RecipeRow(user_id=user_id, **data)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, recipe: RecipeRow, data: dict) -> RecipeRow:
        for key, value in data.items():
            setattr(recipe, key, value)
        recipe.updated_at = utcnow()
        await self.session.flush()
        return recipe

    async def add_ingredient(self, recipe: RecipeRow, food_id: str, quantity: float, unit: str = "g") -> RecipeIngredientRow:
        row = RecipeIngredientRow(recipe_id=recipe.id, food_id=food_id, quantity=quantity, unit=unit)
        self.session.add(row)
        await self.session.flush()
        await self.update_totals(recipe)
        return row

    async def delete(self, recipe: RecipeRow) -> None:
        await self.session.execute(delete(RecipeIngredientRow).where(RecipeIngredientRow.recipe_id == recipe.id))
        await self.session.delete(recipe)
        await self.session.flush()

    async def update_totals(self, recipe: RecipeRow) -> RecipeRow:
        """Sum ingredient nutrition: food per-100g x quantity / 100."""
        rows = await self.session.execute(
            select(RecipeIngredientRow, FoodRow)
            .join(FoodRow, RecipeIngredientRow.food_id == FoodRow.id)
            .where(RecipeIngredientRow.recipe_id == recipe.id)
        )
        total = MacroTotals()
        for ingredient, food in rows.all():
            part = scale_food(food, ingredient.quantity, ingredient.unit or "g")
            total.calories += part.calories
            total.protein += part.protein
            total.carbs += part.carbs
            total.fat += part.fat
        recipe.total_calories = round_int(total.calories)
        recipe.total_protein = round_half_up(total.protein, 1)
        recipe.total_carbs = round_half_up(total.carbs, 1)
        recipe.total_fat = round_half_up(total.fat, 1)
        recipe.updated_at = utcnow()
        await self.session.flush()
        return recipe


# ── Daily nutrition ───────────────────────────────────────────────────────────

class NutritionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str, day: date) -> Optional[DailyNutritionRow]:
        result = await self.session.execute(
            select(DailyNutritionRow).where(DailyNutritionRow.user_id == user_id, DailyNutritionRow.date == day)
        )
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, day: date, totals: MacroTotals,
                     goals: Optional[dict] = None) -> DailyNutritionRow:
        row = await self.get(user_id, day)
        if row is None:
            row = DailyNutritionRow(user_id=user_id, date=day)
            self.session.add(row)
        row.total_calories = round_int(totals.calories)
        row.total_protein = totals.protein
        row.total_carbs = totals.carbs
        row.total_fat = totals.fat
        for key, value in (goals or {}).items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        await self.session.flush()
        return row

    async def history(self, user_id: str, first: date, last: date) -> list[DailyNutritionRow]:
        result = await self.session.execute(
            select(DailyNutritionRow)
            .where(DailyNutritionRow.user_id == user_id,
                   DailyNutritionRow.date >= first, DailyNutritionRow.date <= last)
            .order_by(DailyNutritionRow.date)
        )
        return list(result.scalars().all())


# ── Plans ─────────────────────────────────────────────────────────────────────

class PlanRepository:
    """User plans. Keeps at most one active plan per (user, type)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, plan_id: str, user_id: str) -> Optional[UserPlanRow]:
        plan = await self.session.get(UserPlanRow, plan_id)
        if plan is None or plan.user_id != user_id:
            return None
        return plan

    async def _deactivate_type(self, user_id: str, plan_type: str, keep_id: Optional[str] = None) -> None:
        stmt = update(UserPlanRow).where(
            UserPlanRow.user_id == user_id,
            UserPlanRow.type == plan_type,
            UserPlanRow.is_active.is_(True),
        )
        if keep_id:
            stmt = stmt.where(UserPlanRow.id != keep_id)
        await self.session.execute(
            stmt.values(is_active=False, updated_at=utcnow()).execution_options(synchronize_session="fetch")
        )

    async def create(self, user_id: str, data: dict, activate: bool = True) -> UserPlanRow:
        if activate:
            await self._deactivate_type(user_id, data["type"])
        row = UserPlanRow(user_id=user_id, is_active=activate, **data)
        self.session.add(row)
        await self.session.flush()
        return row

    async def activate(self, plan: UserPlanRow) -> UserPlanRow:
        await self._deactivate_type(plan.user_id, plan.type, keep_id=plan.id)
        plan.is_active = True
        plan.updated_at = utcnow()
        await self.session.flush()
        return plan

    async def active(self, user_id: str, plan_type: Optional[str] = None) -> list[UserPlanRow]:
        stmt = select(UserPlanRow).where(UserPlanRow.user_id == user_id, UserPlanRow.is_active.is_(True))
        if plan_type:
            stmt = stmt.where(UserPlanRow.type == plan_type)
        result = await self.session.execute(stmt.order_by(UserPlanRow.created_at.desc()))
        return list(result.scalars().all())

    async def history(self, user_id: str, plan_type: Optional[str] = None) -> list[UserPlanRow]:
        """Inactive plans, newest first."""
        stmt = select(UserPlanRow).where(UserPlanRow.user_id == user_id, UserPlanRow.is_active.is_(False))
        if plan_type:
            stmt = stmt.where(UserPlanRow.type == plan_type)
        result = await self.session.execute(stmt.order_by(UserPlanRow.created_at.desc()))
        return list(result.scalars().all())

    async def delete(self, plan: UserPlanRow) -> None:
        await self.session.execute(delete(DailyProgressRow).where(DailyProgressRow.plan_id == plan.id))
        await self.session.delete(plan)
        await self.session.flush()

    async def progress_for_date(self, user_id: str, day: str) -> list[DailyProgressRow]:
        result = await self.session.execute(
            select(DailyProgressRow).where(DailyProgressRow.user_id == user_id, DailyProgressRow.date == day)
        )
        return list(result.scalars().all())

    async def set_progress(self, user_id: str, plan: UserPlanRow, day: str, kind: str,
                           completed: bool, notes: Optional[str] = None) -> DailyProgressRow:
        result = await self.session.execute(
            select(DailyProgressRow).where(and_(
                DailyProgressRow.user_id == user_id,
                DailyProgressRow.plan_id == plan.id,
                DailyProgressRow.date == day,
            ))
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = DailyProgressRow(user_id=user_id, plan_id=plan.id, date=day,
                                   diet_completed=False, workout_completed=False)
            self.session.add(row)
        if kind == "diet":
            row.diet_completed = completed
        else:
            row.workout_completed = completed
        if notes is not None:
            row.notes = notes
        await self.session.flush()
        return row
