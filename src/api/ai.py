"""AI assistant API — chat, meal analysis, recipe ideas, recommendations."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.plans import store_generated_plan, user_goals
from src.auth import require_user
from src.db.engine import get_session
from src.db.user_tables import UserRow
from src.models import CamelModel, MacroTotals, MealAnalysis, PersonalizedRecommendation, RecipeSuggestion
from src.services.ai import AIService, get_ai_service, user_context
from src.services.chat import chat_history, plan_created_reply, plan_request_type
from src.services.recommendations import recommend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


# ── Schemas ──────────────────────────────────────────────────────────────────

class ChatRequest(CamelModel):
    message: str = Field(..., max_length=4000)


class ChatResponse(CamelModel):
    response: list[str]
    plan_id: Optional[str] = None


class AnalyzeMealRequest(CamelModel):
    description: str = Field("", max_length=2000)


class SuggestRecipesRequest(CamelModel):
    available_ingredients: list[str] = Field(default_factory=list, max_length=50)


class RecommendationRequest(CamelModel):
    current_nutrition: MacroTotals
    available_ingredients: Optional[list[str]] = None


# ── Routes ───────────────────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    ai: AIService = Depends(get_ai_service),
):
    """Chat with the nutrition assistant.

    "Create a diet/workout plan" style messages generate and activate the
    plan instead of answering in free text.
    """
    message = req.message.strip()
    if not message:
        raise HTTPException(400, "Message is required")

    plan_type = plan_request_type(message)
    plan_id = None
    if plan_type:
        logger.info("Chat requested a %s plan for user %s", plan_type, user.id)
        description = f"{message}\n\n{user_context(user)}"
        if plan_type == "workout":
            generated = await ai.generate_workout_plan(description)
        else:
            generated = await ai.generate_meal_plan(description, user_goals(user))
        plan = await store_generated_plan(session, user, generated)
        reply = plan_created_reply(plan)
        plan_id = plan.id
    else:
        reply = await ai.chat(message, chat_history.get(user.id), user)

    chat_history.add_exchange(user.id, message, reply)
    return ChatResponse(response=reply, plan_id=plan_id)


@router.post("/analyze-meal", response_model=MealAnalysis)
async def analyze_meal(
    req: AnalyzeMealRequest,
    user: UserRow = Depends(require_user),
    ai: AIService = Depends(get_ai_service),
):
    if not req.description.strip():
        raise HTTPException(400, "Description is required")
    return await ai.analyze_meal(req.description.strip())


@router.post("/suggest-recipes", response_model=list[RecipeSuggestion])
async def suggest_recipes(
    req: SuggestRecipesRequest,
    user: UserRow = Depends(require_user),
    ai: AIService = Depends(get_ai_service),
):
    ingredients = [i.strip() for i in req.available_ingredients if i.strip()]
    return await ai.suggest_recipes(ingredients)


@router.post("/personalized-recommendations", response_model=list[PersonalizedRecommendation])
async def personalized_recommendations(
    req: RecommendationRequest,
    user: UserRow = Depends(require_user),
):
    """Recipes for the rest of the day given what was already eaten."""
    if not user.is_profile_complete:
        raise HTTPException(400, "Complete your profile to get personalized recommendations")
    return recommend(req.current_nutrition, user_goals(user), req.available_ingredients)
