"""Diet and workout plans — AI generation, custom plans, activation, daily progress."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_user
from src.db.engine import get_session
from src.db.plan_tables import UserPlanRow
from src.db.repository import PlanRepository
from src.db.user_tables import UserRow
from src.models import CamelModel, GeneratedPlan, MacroTotals
from src.services.ai import AIService, get_ai_service, user_context
from src.services.nutritional_day import parse_day

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["plans"])

PlanType = Literal["diet", "workout", "combined"]


# ── Schemas ──────────────────────────────────────────────────────────────────

class GenerateRequest(CamelModel):
    description: str = Field("", max_length=2000)


class PlanCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    type: PlanType
    content: dict[str, Any] = {}
    daily_calories: int = Field(0, ge=0)
    macro_carbs: int = Field(0, ge=0)
    macro_protein: int = Field(0, ge=0)
    macro_fat: int = Field(0, ge=0)
    is_active: bool = True


class PlanOut(CamelModel):
    id: str
    name: str
    description: str = ""
    type: str
    content: dict[str, Any] = {}
    daily_calories: int = 0
    macro_carbs: int = 0
    macro_protein: int = 0
    macro_fat: int = 0
    is_active: bool = False
    is_custom: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProgressUpdate(CamelModel):
    plan_id: str
    date: str
    type: Literal["diet", "workout"]
    completed: bool
    notes: Optional[str] = Field(None, max_length=2000)


class ProgressOut(CamelModel):
    id: str
    plan_id: str
    date: str
    diet_completed: bool = False
    workout_completed: bool = False
    notes: Optional[str] = None


def user_goals(user: UserRow) -> MacroTotals:
    return MacroTotals(
        calories=user.daily_calories or 2000,
        protein=user.daily_protein or 120,
        carbs=user.daily_carbs or 250,
        fat=user.daily_fat or 67,
    )


async def store_generated_plan(session: AsyncSession, user: UserRow, plan: GeneratedPlan) -> UserPlanRow:
    """Save a generated plan as the user's active plan of its type."""
    row = await PlanRepository(session).create(user.id, {**plan.model_dump(), "is_custom": False})
    await session.commit()
    logger.info("Stored %s plan %s for user %s", row.type, row.id, user.id)
    return row


def _check_date(value: str) -> str:
    try:
        return parse_day(value).isoformat()
    except ValueError:
        raise HTTPException(400, "Invalid date, expected YYYY-MM-DD")


async def _own_plan(plan_id: str, user: UserRow, repo: PlanRepository) -> UserPlanRow:
    plan = await repo.get(plan_id, user.id)
    if plan is None:
        raise HTTPException(404, "Plan not found")
    return plan


# ── Generation ───────────────────────────────────────────────────────────────

@router.post("/generate-meal-plan", response_model=PlanOut, status_code=201)
async def generate_meal_plan(
    req: GenerateRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    if not req.description.strip():
        raise HTTPException(400, "Description is required")
    description = f"{req.description.strip()}\n\n{user_context(user)}"
    plan = await ai.generate_meal_plan(description, user_goals(user))
    return await store_generated_plan(session, user, plan)


@router.post("/generate-workout-plan", response_model=PlanOut, status_code=201)
async def generate_workout_plan(
    req: GenerateRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    if not req.description.strip():
        raise HTTPException(400, "Description is required")
    description = f"{req.description.strip()}\n\n{user_context(user)}"
    plan = await ai.generate_workout_plan(description)
    return await store_generated_plan(session, user, plan)


# ── User plans ───────────────────────────────────────────────────────────────

@router.post("/user-plans", response_model=PlanOut, status_code=201)
async def create_plan(
    req: PlanCreate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    data = req.model_dump(exclude={"is_active"})
    plan = await PlanRepository(session).create(user.id, {**data, "is_custom": True}, activate=req.is_active)
    await session.commit()
    return plan


@router.get("/user-plans/active", response_model=list[PlanOut])
async def active_plans(
    type: Optional[PlanType] = None,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    return await PlanRepository(session).active(user.id, type)


@router.get("/user-plans/history", response_model=list[PlanOut])
async def plan_history(
    type: Optional[PlanType] = None,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    return await PlanRepository(session).history(user.id, type)


@router.post("/user-plans/{plan_id}/activate", response_model=PlanOut)
async def activate_plan(
    plan_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = PlanRepository(session)
    plan = await repo.activate(await _own_plan(plan_id, user, repo))
    await session.commit()
    return plan


@router.delete("/user-plans/{plan_id}")
async def delete_plan(
    plan_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = PlanRepository(session)
    await repo.delete(await _own_plan(plan_id, user, repo))
    await session.commit()
    return {"success": True}


# ── Daily progress ───────────────────────────────────────────────────────────

@router.get("/daily-progress/{day}", response_model=list[ProgressOut])
async def daily_progress(
    day: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    return await PlanRepository(session).progress_for_date(user.id, _check_date(day))


@router.post("/daily-progress", response_model=ProgressOut)
async def update_progress(
    req: ProgressUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Mark the diet or workout part of a plan done (or not) for a date."""
    repo = PlanRepository(session)
    plan = await _own_plan(req.plan_id, user, repo)
    row = await repo.set_progress(user.id, plan, _check_date(req.date), req.type, req.completed, req.notes)
    await session.commit()
    return row


# ── Legacy meal plan routes (diet plans) ─────────────────────────────────────

@router.get("/my-meal-plan", response_model=Optional[PlanOut])
async def my_meal_plan(user: UserRow = Depends(require_user), session: AsyncSession = Depends(get_session)):
    """The active diet plan, or null."""
    plans = await PlanRepository(session).active(user.id, "diet")
    return plans[0] if plans else None


@router.get("/my-meal-plans/history", response_model=list[PlanOut])
async def my_meal_plan_history(user: UserRow = Depends(require_user), session: AsyncSession = Depends(get_session)):
    return await PlanRepository(session).history(user.id, "diet")


@router.delete("/meal-plans/{plan_id}")
async def delete_meal_plan(
    plan_id: str,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    repo = PlanRepository(session)
    plan = await _own_plan(plan_id, user, repo)
    if plan.type != "diet":
        raise HTTPException(404, "Meal plan not found")
    await repo.delete(plan)
    await session.commit()
    return {"success": True}
