"""User API routes — registration, login, profile and nutrition goals."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import (
    LoginRequest, RefreshRequest, RegisterRequest, _bearer, create_tokens, hash_password,
    refresh_access_token, require_user, revoke_token, verify_password,
)
from src.db.engine import get_session
from src.db.tables import utcnow
from src.db.user_tables import UserRow
from src.models import CamelModel
from src.services.chat import chat_history
from src.services.goals import calculate_goals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])

ActivityLevelName = Literal["sedentary", "light", "moderate", "active", "very_active"]
GoalName = Literal["lose", "gain", "maintain"]


# ── Schemas ──────────────────────────────────────────────────────────────────

class UserOut(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[int] = None
    age: Optional[int] = None
    activity_level: Optional[str] = None
    goal: Optional[str] = None
    daily_calories: Optional[int] = None
    daily_protein: Optional[int] = None
    daily_carbs: Optional[int] = None
    daily_fat: Optional[int] = None
    notifications_enabled: Optional[bool] = None
    is_profile_complete: Optional[bool] = None
    created_at: Optional[datetime] = None


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    profile_image_url: Optional[str] = Field(None, max_length=500)
    notifications_enabled: Optional[bool] = None


class GoalsUpdate(CamelModel):
    weight: Optional[float] = Field(None, ge=30, le=300)
    height: Optional[int] = Field(None, ge=100, le=250)
    age: Optional[int] = Field(None, ge=13, le=120)
    goal: Optional[GoalName] = None
    activity_level: Optional[ActivityLevelName] = None
    daily_calories: Optional[int] = Field(None, ge=1200, le=5000)
    daily_protein: Optional[int] = Field(None, ge=50, le=300)
    daily_carbs: Optional[int] = Field(None, ge=100, le=600)
    daily_fat: Optional[int] = Field(None, ge=20, le=200)
    is_profile_complete: Optional[bool] = None


class GoalsPreviewRequest(CamelModel):
    weight: float = Field(..., ge=30, le=300)
    height: int = Field(..., ge=100, le=250)
    age: int = Field(..., ge=13, le=120)
    activity_level: ActivityLevelName = "moderate"
    goal: GoalName = "maintain"


class GoalsPreview(CamelModel):
    bmr: float
    tdee: float
    daily_calories: int
    daily_protein: int
    daily_carbs: int
    daily_fat: int


def user_payload(user: UserRow) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json", by_alias=True)


# ── Auth ─────────────────────────────────────────────────────────────────────

@router.post("/register", status_code=201)
async def register(req: RegisterRequest, session: AsyncSession = Depends(get_session)):
    """Create an account and return tokens, like /api/login."""
    email = req.email.strip().lower()
    if "@" not in email or len(req.password) < 6:
        raise HTTPException(400, "A valid email and a password of at least 6 characters are required")
    existing = await session.execute(select(UserRow).where(UserRow.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(409, "Email already registered")

    user = UserRow(
        email=email,
        password_hash=hash_password(req.password),
        first_name=req.first_name,
        last_name=req.last_name,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info("User registered: %s", user.id)
    return {"user": user_payload(user), **create_tokens(user.id)}


@router.post("/login")
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    """Log in with email + password, returns JWT tokens."""
    result = await session.execute(select(UserRow).where(UserRow.email == req.email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(401, "Invalid email or password")
    return {"user": user_payload(user), **create_tokens(user.id)}


@router.post("/logout")
async def logout(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Revoke the presented access token and drop the user's chat history."""
    await revoke_token(session, creds.credentials)
    await session.commit()
    chat_history.clear(user.id)
    logger.info("User logged out: %s", user.id)
    return {"success": True}


@router.post("/auth/refresh")
async def refresh(req: RefreshRequest, session: AsyncSession = Depends(get_session)):
    """Exchange a valid refresh token for a new access token."""
    tokens = await refresh_access_token(session, req.refresh_token)
    if not tokens:
        raise HTTPException(401, "Invalid or expired refresh token")
    return tokens


# ── Profile ──────────────────────────────────────────────────────────────────

@router.get("/user")
@router.get("/auth/user")
async def get_user(user: UserRow = Depends(require_user)):
    return user_payload(user)


@router.patch("/user")
async def update_profile(
    req: ProfileUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    for key, value in req.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    user.updated_at = utcnow()
    await session.commit()
    await session.refresh(user)
    return user_payload(user)


@router.patch("/user/goals")
async def update_goals(
    req: GoalsUpdate,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Update body stats and daily goals.

    Omitted macros are computed from the merged profile; 400 when they are
    omitted and the profile lacks weight, height or age.
    """
    data = req.model_dump(exclude_unset=True)
    for key in ("weight", "height", "age", "goal", "activity_level"):
        if data.get(key) is not None:
            setattr(user, key, data[key])

    macro_keys = ("daily_calories", "daily_protein", "daily_carbs", "daily_fat")
    given = {k: data[k] for k in macro_keys if data.get(k) is not None}

    if len(given) < len(macro_keys):
        if user.weight is None or user.height is None or user.age is None:
            raise HTTPException(400, "Provide daily goals or weight, height and age to calculate them")
        computed = calculate_goals(
            user.weight, user.height, user.age,
            user.activity_level or "moderate", user.goal or "maintain",
        )
        for key in macro_keys:
            setattr(user, key, given.get(key, getattr(computed, key)))
    else:
        for key, value in given.items():
            setattr(user, key, value)

    if data.get("is_profile_complete") is not None:
        user.is_profile_complete = data["is_profile_complete"]
    user.updated_at = utcnow()
    await session.commit()
    await session.refresh(user)
    return user_payload(user)


@router.post("/user/calculate-goals", response_model=GoalsPreview)
async def preview_goals(req: GoalsPreviewRequest):
    """Goal calculator preview; nothing is stored."""
    return GoalsPreview(**calculate_goals(req.weight, req.height, req.age, req.activity_level, req.goal).to_dict())
