"""Tests for diet/workout plans, activation and daily progress."""
from __future__ import annotations

import pytest

from tests.conftest import TestSession
from src.db.plan_tables import UserPlanRow
from src.db.repository import PlanRepository


def _plan(name: str, type_: str = "diet", **extra) -> dict:
    return {"name": name, "type": type_, "dailyCalories": 1800, "macroProtein": 130,
            "macroCarbs": 200, "macroFat": 55, **extra}


async def _active_ids(client, auth, type_: str) -> list[str]:
    resp = await client.get("/api/user-plans/active", headers=auth, params={"type": type_})
    return [p["id"] for p in resp.json()]


@pytest.mark.asyncio
async def test_create_custom_plan(client, auth):
    resp = await client.post("/api/user-plans", headers=auth, json=_plan("Cutting"))
    assert resp.status_code == 201
    plan = resp.json()
    assert plan["isActive"] is True
    assert plan["isCustom"] is True
    assert plan["dailyCalories"] == 1800


@pytest.mark.asyncio
async def test_one_active_plan_per_type(client, auth):
    first = (await client.post("/api/user-plans", headers=auth, json=_plan("Primeiro"))).json()
    second = (await client.post("/api/user-plans", headers=auth, json=_plan("Segundo"))).json()
    workout = (await client.post("/api/user-plans", headers=auth, json=_plan("Treino", "workout"))).json()

    assert await _active_ids(client, auth, "diet") == [second["id"]]
    assert await _active_ids(client, auth, "workout") == [workout["id"]]
    history = (await client.get("/api/user-plans/history", headers=auth)).json()
    assert [p["id"] for p in history] == [first["id"]]

    resp = await client.post(f"/api/user-plans/{first['id']}/activate", headers=auth)
    assert resp.status_code == 200
    assert resp.json()["isActive"] is True
    assert await _active_ids(client, auth, "diet") == [first["id"]]
    assert await _active_ids(client, auth, "workout") == [workout["id"]]


@pytest.mark.asyncio
async def test_inactive_plan_does_not_deactivate_others(client, auth):
    active = (await client.post("/api/user-plans", headers=auth, json=_plan("Ativo"))).json()
    await client.post("/api/user-plans", headers=auth, json=_plan("Rascunho", isActive=False))
    assert await _active_ids(client, auth, "diet") == [active["id"]]


@pytest.mark.asyncio
async def test_repository_activate_keeps_single_active():
    async with TestSession() as session:
        repo = PlanRepository(session)
        a = await repo.create("u1", {"name": "A", "type": "diet", "content": {}})
        b = await repo.create("u1", {"name": "B", "type": "diet", "content": {}})
        await repo.activate(a)
        await session.commit()
        active = await repo.active("u1", "diet")
        assert [p.id for p in active] == [a.id]
        assert (await session.get(UserPlanRow, b.id)).is_active is False


@pytest.mark.asyncio
async def test_generate_meal_plan_fallback(client, auth):
    resp = await client.post("/api/generate-meal-plan", headers=auth, json={"description": "Quero emagrecer"})
    assert resp.status_code == 201
    plan = resp.json()
    assert plan["type"] == "diet"
    assert plan["isActive"] is True
    assert plan["isCustom"] is False
    assert plan["dailyCalories"] == 2000
    week = plan["content"]["meals"]
    assert len(week) == 7
    assert week["segunda"]["breakfast"]["calories"] == 500  # 25% of 2000
    assert week["segunda"]["lunch"]["calories"] == 700


@pytest.mark.asyncio
async def test_generate_workout_plan_fallback(client, auth):
    resp = await client.post("/api/generate-workout-plan", headers=auth, json={"description": "Hipertrofia"})
    assert resp.status_code == 201
    plan = resp.json()
    assert plan["type"] == "workout"
    assert plan["content"]["workoutType"] == "ABC"
    assert set(plan["content"]["workouts"]) == {"A", "B", "C"}


@pytest.mark.asyncio
async def test_generate_requires_description(client, auth):
    for path in ("/api/generate-meal-plan", "/api/generate-workout-plan"):
        resp = await client.post(path, headers=auth, json={"description": "   "})
        assert resp.status_code == 400


@pytest.mark.asyncio
async def test_legacy_meal_plan_routes(client, auth):
    assert (await client.get("/api/my-meal-plan", headers=auth)).json() is None

    old = (await client.post("/api/user-plans", headers=auth, json=_plan("Antigo"))).json()
    new = (await client.post("/api/user-plans", headers=auth, json=_plan("Novo"))).json()
    workout = (await client.post("/api/user-plans", headers=auth, json=_plan("Treino", "workout"))).json()

    assert (await client.get("/api/my-meal-plan", headers=auth)).json()["id"] == new["id"]
    history = (await client.get("/api/my-meal-plans/history", headers=auth)).json()
    assert [p["id"] for p in history] == [old["id"]]

    assert (await client.delete(f"/api/meal-plans/{workout['id']}", headers=auth)).status_code == 404
    assert (await client.delete(f"/api/meal-plans/{old['id']}", headers=auth)).json() == {"success": True}


@pytest.mark.asyncio
async def test_daily_progress_upsert(client, auth):
    plan = (await client.post("/api/user-plans", headers=auth, json=_plan("Plano"))).json()
    body = {"planId": plan["id"], "date": "2026-03-10", "type": "diet", "completed": True}
    resp = await client.post("/api/daily-progress", headers=auth, json=body)
    assert resp.status_code == 200
    assert resp.json()["dietCompleted"] is True
    assert resp.json()["workoutCompleted"] is False

    resp = await client.post("/api/daily-progress", headers=auth, json={
        **body, "type": "workout", "notes": "Treino leve",
    })
    entry = resp.json()
    assert entry["dietCompleted"] is True
    assert entry["workoutCompleted"] is True

    entries = (await client.get("/api/daily-progress/2026-03-10", headers=auth)).json()
    assert len(entries) == 1
    assert entries[0]["notes"] == "Treino leve"
    assert (await client.get("/api/daily-progress/2026-03-11", headers=auth)).json() == []


@pytest.mark.asyncio
async def test_daily_progress_bad_input(client, auth):
    resp = await client.post("/api/daily-progress", headers=auth, json={
        "planId": "missing", "date": "2026-03-10", "type": "diet", "completed": True,
    })
    assert resp.status_code == 404
    assert (await client.get("/api/daily-progress/ontem", headers=auth)).status_code == 400


@pytest.mark.asyncio
async def test_delete_plan_removes_progress(client, auth):
    plan = (await client.post("/api/user-plans", headers=auth, json=_plan("Plano"))).json()
    await client.post("/api/daily-progress", headers=auth, json={
        "planId": plan["id"], "date": "2026-03-10", "type": "diet", "completed": True,
    })
    assert (await client.delete(f"/api/user-plans/{plan['id']}", headers=auth)).json() == {"success": True}
    assert (await client.get("/api/daily-progress/2026-03-10", headers=auth)).json() == []
    assert (await client.delete(f"/api/user-plans/{plan['id']}", headers=auth)).status_code == 404


@pytest.mark.asyncio
async def test_plans_require_auth(client):
    assert (await client.get("/api/user-plans/active")).status_code == 401
