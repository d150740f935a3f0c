"""Daily progress notifications scheduled with APScheduler.

One cron job per user fires at NOTIFICATION_HOUR and logs a summary of
the current nutritional day. Delivery to a device is not wired up; the
composed message is written to the log.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config.settings import settings
from src.db import engine as db_engine
from src.db.repository import MealRepository
from src.db.user_tables import UserRow
from src.models import MacroTotals
from src.services.nutritional_day import local_zone, nutritional_day, nutritional_day_range
from src.services.rounding import round_int

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def _job_id(user_id: str) -> str:
    return f"daily-progress:{user_id}"


def build_progress_message(consumed: MacroTotals, goals: MacroTotals) -> str:
    calories_remaining = round_int(goals.calories - consumed.calories)
    protein_remaining = round_int(goals.protein - consumed.protein)

    if calories_remaining > 0:
        return f"🎯 Faltam {calories_remaining} kcal e {protein_remaining}g de proteína para sua meta diária!"
    if calories_remaining < -200:
        return f"⚠️ Você passou {abs(calories_remaining)} kcal da sua meta hoje. Que tal uma caminhada?"
    return (
        "🎉 Parabéns! Você atingiu sua meta de calorias hoje! "
        f"Proteína: {round_int(consumed.protein)}/{round_int(goals.protein)}g"
    )


async def compose_progress_message(user_id: str) -> Optional[str]:
    """Progress message for the user's current nutritional day, or None if the user is gone."""
    async with db_engine.async_session() as session:
        user = await session.get(UserRow, user_id)
        if user is None:
            return None
        start, end = nutritional_day_range(nutritional_day())
        consumed, _ = await MealRepository(session).totals_between(user_id, start, end)
        goals = MacroTotals(
            calories=user.daily_calories or 2000,
            protein=user.daily_protein or 120,
            carbs=user.daily_carbs or 225,
            fat=user.daily_fat or 67,
        )
    return build_progress_message(consumed, goals)


async def send_daily_progress(user_id: str) -> None:
    """Scheduled job body."""
    try:
        message = await compose_progress_message(user_id)
    except Exception:
        logger.exception("Daily progress notification failed for user %s", user_id)
        return
    if message is None:
        logger.info("User %s no longer exists, cancelling notification", user_id)
        cancel_notification(user_id)
        return
    logger.info("📱 Daily notification for user %s: %s", user_id, message)


def schedule_daily_notification(user_id: str, now: Optional[datetime] = None) -> datetime:
    """(Re)register the user's daily job. Returns the next fire time."""
    trigger = CronTrigger(hour=settings.NOTIFICATION_HOUR, minute=0, timezone=local_zone())
    scheduler.add_job(
        send_daily_progress,
        trigger=trigger,
        args=[user_id],
        id=_job_id(user_id),
        name=f"Daily progress for {user_id}",
        replace_existing=True,
    )
    next_run = trigger.get_next_fire_time(None, now or datetime.now(local_zone()))
    logger.info("Daily notification scheduled for user %s at %s", user_id, next_run.isoformat())
    return next_run


def cancel_notification(user_id: str) -> bool:
    try:
        scheduler.remove_job(_job_id(user_id))
    except JobLookupError:
        return False
    logger.info("Daily notification cancelled for user %s", user_id)
    return True


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("Notification scheduler started")


def stop_scheduler():
    """Gracefully shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
