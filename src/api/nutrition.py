"""Nutrition totals and progress charts, all on nutritional-day boundaries."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_user
from src.db.engine import get_session
from src.db.repository import MealRepository, NutritionRepository
from src.db.user_tables import UserRow
from src.services.nutritional_day import (
    as_utc, day_name, local_zone, month_bounds, nutritional_day, nutritional_day_range,
    parse_day, period_bounds, week_start,
)
from src.services.rounding import round_half_up, round_int

router = APIRouter(prefix="/api", tags=["nutrition"])


def _day(value: Optional[str]) -> date:
    try:
        return parse_day(value or nutritional_day())
    except ValueError:
        raise HTTPException(400, "Invalid date, expected YYYY-MM-DD")


def _goals(user: UserRow) -> dict:
    return {
        "goal_calories": user.daily_calories,
        "goal_protein": user.daily_protein,
        "goal_carbs": user.daily_carbs,
        "goal_fat": user.daily_fat,
    }


@router.get("/nutrition/daily")
async def daily_nutrition(
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Totals of the meals created within the nutritional day; stored as the day's rollup."""
    day = _day(date)
    start, end = nutritional_day_range(day)
    totals, _ = await MealRepository(session).totals_between(user.id, start, end)
    totals.calories = round_int(totals.calories)
    totals.protein = round_int(totals.protein)
    totals.carbs = round_int(totals.carbs)
    totals.fat = round_int(totals.fat)

    await NutritionRepository(session).upsert(user.id, day, totals, _goals(user))
    await session.commit()
    return {
        "date": day.isoformat(),
        "calories": totals.calories,
        "protein": totals.protein,
        "carbs": totals.carbs,
        "fat": totals.fat,
    }


@router.get("/nutrition/history")
async def nutrition_history(
    period: str = Query("week"),
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    day = _day(date)
    try:
        first, last = period_bounds(period, day)
    except ValueError:
        raise HTTPException(400, "Period must be day, week or month")
    rows = await NutritionRepository(session).history(user.id, first, last)
    return {
        "period": period,
        "startDate": first.isoformat(),
        "endDate": last.isoformat(),
        "data": [
            {
                "date": r.date.isoformat(),
                "calories": r.total_calories or 0,
                "protein": r.total_protein or 0,
                "carbs": r.total_carbs or 0,
                "fat": r.total_fat or 0,
                "goalCalories": r.goal_calories,
                "goalProtein": r.goal_protein,
                "goalCarbs": r.goal_carbs,
                "goalFat": r.goal_fat,
            }
            for r in rows
        ],
    }


@router.get("/progress/hourly")
async def hourly_progress(
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """24 buckets of the nutritional day, keyed by the local hour a meal was logged."""
    day = _day(date)
    start, end = nutritional_day_range(day)
    meals = await MealRepository(session).meals_between(user.id, start, end)

    buckets = [
        {"hour": h, "calories": 0.0, "protein": 0.0, "carbs": 0.0, "fat": 0.0, "meals": []}
        for h in range(24)
    ]
    zone = local_zone()
    for meal, meal_type in meals:
        bucket = buckets[as_utc(meal.created_at).astimezone(zone).hour]
        bucket["calories"] += meal.total_calories or 0
        bucket["protein"] += meal.total_protein or 0
        bucket["carbs"] += meal.total_carbs or 0
        bucket["fat"] += meal.total_fat or 0
        bucket["meals"].append({
            "id": meal.id,
            "name": meal.name or (meal_type.name if meal_type else None),
            "mealType": meal_type.name if meal_type else None,
            "icon": meal_type.icon if meal_type else None,
            "calories": meal.total_calories or 0,
        })
    for bucket in buckets:
        bucket["calories"] = round_int(bucket["calories"])
        for key in ("protein", "carbs", "fat"):
            bucket[key] = round_half_up(bucket[key], 1)
    return buckets


@router.get("/progress/weekly")
async def weekly_progress(
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Sunday to Saturday, each day summed over its own nutritional-day range."""
    first = week_start(_day(date))
    repo = MealRepository(session)
    days = []
    for offset in range(7):
        day = first + timedelta(days=offset)
        start, end = nutritional_day_range(day)
        totals, count = await repo.totals_between(user.id, start, end)
        days.append({
            "date": day.isoformat(),
            "dayName": day_name(day),
            "calories": round_int(totals.calories),
            "protein": round_half_up(totals.protein, 1),
            "carbs": round_half_up(totals.carbs, 1),
            "fat": round_half_up(totals.fat, 1),
            "mealCount": count,
        })
    return days


@router.get("/progress/monthly")
async def monthly_progress(
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Sunday-start weeks covering the month, clipped to it and summed by meal date."""
    month_first, month_last = month_bounds(_day(date))
    repo = MealRepository(session)
    weeks = []
    start = week_start(month_first)
    while start <= month_last:
        ws = max(start, month_first)
        we = min(start + timedelta(days=6), month_last)
        totals, count = await repo.totals_by_date(user.id, ws, we)
        weeks.append({
            "weekStart": ws.isoformat(),
            "weekEnd": we.isoformat(),
            "calories": round_int(totals.calories),
            "protein": round_half_up(totals.protein, 1),
            "carbs": round_half_up(totals.carbs, 1),
            "fat": round_half_up(totals.fat, 1),
            "mealCount": count,
        })
        start += timedelta(days=7)
    return weeks
