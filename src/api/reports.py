"""PDF exports and the daily progress notification schedule."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_user
from src.db.engine import get_session
from src.db.repository import NutritionRepository, PlanRepository
from src.db.user_tables import UserRow
from src.models import CamelModel
from src.services.notifications import cancel_notification, schedule_daily_notification
from src.services.nutritional_day import nutritional_day, parse_day, period_bounds
from src.services.pdf_reports import generate_nutrition_report, generate_plan_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


# ── Schemas ──────────────────────────────────────────────────────────────────

class PlanPdfRequest(CamelModel):
    plan_id: str


class ExportPdfRequest(CamelModel):
    start_date: str
    end_date: str
    type: Literal["daily", "weekly", "monthly", "custom"] = "custom"


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── PDFs ─────────────────────────────────────────────────────────────────────

@router.post("/export-plan-pdf")
async def export_plan_pdf(
    req: PlanPdfRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    plan = await PlanRepository(session).get(req.plan_id, user.id)
    if plan is None:
        raise HTTPException(404, "Plan not found")
    return _pdf(generate_plan_pdf(user, plan), f"plano-{plan.id[:8]}.pdf")


@router.get("/reports/nutrition-pdf")
async def nutrition_pdf(
    period: str = Query("weekly"),
    date: Optional[str] = Query(None),
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Daily, weekly (Sunday start) or monthly nutrition report."""
    if period not in ("daily", "weekly", "monthly"):
        raise HTTPException(400, "Period must be daily, weekly or monthly")
    try:
        first, last = period_bounds(period, date or nutritional_day())
    except ValueError:
        raise HTTPException(400, "Invalid date, expected YYYY-MM-DD")
    history = await NutritionRepository(session).history(user.id, first, last)
    content = generate_nutrition_report(user, history, first, last, period)
    return _pdf(content, f"relatorio-{period}-{first.isoformat()}.pdf")


@router.post("/export/pdf")
async def export_pdf(
    req: ExportPdfRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    try:
        first, last = parse_day(req.start_date), parse_day(req.end_date)
    except ValueError:
        raise HTTPException(400, "Invalid date, expected YYYY-MM-DD")
    if first > last:
        raise HTTPException(400, "startDate must not be after endDate")
    history = await NutritionRepository(session).history(user.id, first, last)
    content = generate_nutrition_report(user, history, first, last, req.type)
    return _pdf(content, f"relatorio-{first.isoformat()}-{last.isoformat()}.pdf")


# ── Notifications ────────────────────────────────────────────────────────────

@router.post("/notifications/schedule-daily")
async def schedule_daily(user: UserRow = Depends(require_user)):
    if not user.notifications_enabled:
        raise HTTPException(400, "Notifications are disabled for this account")
    next_run = schedule_daily_notification(user.id)
    return {"success": True, "scheduledFor": next_run.isoformat()}


@router.delete("/notifications/schedule-daily")
async def cancel_daily(user: UserRow = Depends(require_user)):
    return {"success": True, "cancelled": cancel_notification(user.id)}
