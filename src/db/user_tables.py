"""User accounts, profile/goals and revoked tokens."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from src.db.tables import Base, _uuid, utcnow


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_image_url = Column(String(500), nullable=True)

    # Body stats feed the goal calculator
    weight = Column(Float, nullable=True)  # kg
    height = Column(Integer, nullable=True)  # cm
    age = Column(Integer, nullable=True)
    activity_level = Column(String(20), default="moderate")
    goal = Column(String(20), default="maintain")  # lose, gain, maintain

    daily_calories = Column(Integer, default=2000)
    daily_protein = Column(Integer, default=120)
    daily_carbs = Column(Integer, default=225)
    daily_fat = Column(Integer, default=67)

    notifications_enabled = Column(Boolean, default=True)
    is_profile_complete = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class RevokedTokenRow(Base):
    """JWT ids invalidated by /api/logout until they would expire anyway."""
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), default=utcnow)
