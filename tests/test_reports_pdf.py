"""Tests for nutrition report and plan PDFs."""
from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from src.services.pdf_reports import generate_nutrition_report, generate_plan_pdf


def _user(**extra):
    base = dict(first_name="Ana", last_name="Souza", email="ana@test.com",
                daily_calories=2000, daily_protein=150, daily_carbs=250, daily_fat=67)
    base.update(extra)
    return SimpleNamespace(**base)


def _day(d: date, kcal: float) -> SimpleNamespace:
    return SimpleNamespace(date=d, total_calories=kcal, total_protein=100.4,
                           total_carbs=180.5, total_fat=60)


def test_nutrition_report_renders_pdf():
    history = [_day(date(2026, 3, 1), 1850), _day(date(2026, 3, 2), 2100)]
    content = generate_nutrition_report(_user(), history, date(2026, 3, 1), date(2026, 3, 7), "weekly")
    assert content.startswith(b"%PDF")


def test_nutrition_report_without_history_or_goals():
    user = _user(first_name=None, last_name=None, daily_calories=None)
    content = generate_nutrition_report(user, [], date(2026, 3, 1), date(2026, 3, 1), "daily")
    assert content.startswith(b"%PDF")


def test_diet_plan_sheet():
    plan = SimpleNamespace(
        name="Cutting <verão>", description="Déficit moderado", daily_calories=1800,
        macro_protein=140, macro_carbs=180, macro_fat=55,
        content={"meals": {
            "monday": {
                "dinner": {"time": "19:30", "name": "Jantar", "description": "Peixe & salada", "calories": 450},
                "breakfast": {"time": "07:00", "name": "Café", "description": "Ovos e pão", "calories": 400},
            },
            "notes": "ignored",
        }},
    )
    assert generate_plan_pdf(_user(), plan).startswith(b"%PDF")


def test_workout_plan_sheet():
    plan = SimpleNamespace(
        name="Força", description=None, daily_calories=0,
        macro_protein=None, macro_carbs=None, macro_fat=None,
        content={"workouts": {"A": {"name": "Peito", "duration": "60 min", "exercises": [
            {"name": "Supino", "sets": 4, "reps": "8-10", "rest": "90s"},
        ]}}},
    )
    assert generate_plan_pdf(_user(), plan).startswith(b"%PDF")


# ── API ──────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_export_plan_pdf(client, auth):
    plan = (await client.post("/api/user-plans", headers=auth, json={
        "name": "Plano", "type": "diet", "dailyCalories": 1800,
        "content": {"meals": {"monday": {"lunch": {"name": "Almoço", "calories": 600}}}},
    })).json()

    resp = await client.post("/api/export-plan-pdf", headers=auth, json={"planId": plan["id"]})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    missing = await client.post("/api/export-plan-pdf", headers=auth, json={"planId": "nope"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_nutrition_pdf_periods(client, auth):
    resp = await client.get("/api/reports/nutrition-pdf", headers=auth,
                            params={"period": "monthly", "date": "2026-03-15"})
    assert resp.status_code == 200
    assert "relatorio-monthly-2026-03-01.pdf" in resp.headers["content-disposition"]

    bad = await client.get("/api/reports/nutrition-pdf", headers=auth, params={"period": "yearly"})
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_export_pdf_date_range(client, auth):
    ok = await client.post("/api/export/pdf", headers=auth,
                           json={"startDate": "2026-03-01", "endDate": "2026-03-10"})
    assert ok.status_code == 200
    assert ok.content.startswith(b"%PDF")

    reversed_range = await client.post("/api/export/pdf", headers=auth,
                                       json={"startDate": "2026-03-10", "endDate": "2026-03-01"})
    assert reversed_range.status_code == 400

    garbage = await client.post("/api/export/pdf", headers=auth,
                                json={"startDate": "ontem", "endDate": "2026-03-01"})
    assert garbage.status_code == 400


@pytest.mark.asyncio
async def test_pdf_requires_auth(client):
    resp = await client.post("/api/export/pdf", json={"startDate": "2026-03-01", "endDate": "2026-03-02"})
    assert resp.status_code == 401
