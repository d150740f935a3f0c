"""Tests for the AI service — mocked provider calls and local fallbacks."""
from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from src.api.main import app
from src.models import MacroTotals
from src.services.ai import (
    CHAT_SYSTEM_PROMPT, AIService, extract_json, fallback_meal_analysis, fallback_meal_plan,
    fallback_recipes, fallback_workout_plan, get_ai_service, parse_meal_description, user_context,
)
from src.services.chat import FALLBACK_REPLY

GOALS = MacroTotals(calories=2000, protein=150, carbs=250, fat=67)


def _service(reply: str | None = None, error: Exception | None = None) -> AIService:
    service = AIService(api_key="test-key", model="test-model")
    service.client = MagicMock()
    message = SimpleNamespace(content=[SimpleNamespace(text=reply or "")])
    service.client.messages.create = AsyncMock(return_value=message, side_effect=error)
    return service


def _connection_error() -> anthropic.APIConnectionError:
    return anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


class TestHelpers:
    def test_extract_json_code_fence(self):
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_extract_json_with_chatter(self):
        assert extract_json("Aqui está: [1, 2] pronto") == [1, 2]

    def test_extract_json_missing(self):
        with pytest.raises(ValueError):
            extract_json("sem json aqui")

    def test_user_context(self):
        user = SimpleNamespace(weight=70, height=175, age=25, goal="lose", activity_level="light",
                               daily_calories=1800, daily_protein=130, daily_carbs=200, daily_fat=60)
        ctx = user_context(user)
        assert ctx.startswith("PERFIL DO USUÁRIO:")
        assert "- Peso: 70 kg" in ctx
        assert "- Meta diária de calorias: 1800 kcal" in ctx
        assert user_context(None) == ""


class TestFallbacks:
    def test_parse_meal_description(self):
        foods = parse_meal_description("Comi 2 fatias de pão com 1 fatia de presunto e 3 ovos")
        by_name = {f.name: f for f in foods}
        assert by_name["Pão"].estimated_calories == 160
        assert by_name["Presunto"].quantity == 1
        assert by_name["Ovo"].estimated_protein == 18

    def test_fallback_analysis(self):
        analysis = fallback_meal_analysis("2 fatias de pão e 2 ovos")
        assert analysis.total_calories == 300
        assert analysis.confidence == 0.85

    def test_fallback_analysis_unknown_food(self):
        analysis = fallback_meal_analysis("uma pizza inteira")
        assert analysis.foods == []
        assert analysis.total_calories == 0

    def test_fallback_recipes(self):
        names = [r.name for r in fallback_recipes(["Frango", "arroz", "ovos"])]
        assert names == ["Frango com Arroz", "Omelete Nutritiva"]
        assert fallback_recipes(["tofu"]) == []

    def test_fallback_meal_plan_scaled_to_goals(self):
        plan = fallback_meal_plan(GOALS)
        assert plan.type == "diet"
        assert plan.daily_calories == 2000
        week = plan.content["meals"]
        assert list(week) == ["segunda", "terca", "quarta", "quinta", "sexta", "sabado", "domingo"]
        monday = week["segunda"]
        assert monday["breakfast"]["calories"] == 500
        assert monday["lunch"]["calories"] == 700
        assert monday["lanche"]["calories"] == 300
        assert monday["dinner"]["calories"] == 500
        assert monday["breakfast"]["protein"] == 38  # 150 * 0.25 = 37.5

    def test_fallback_workout_plan(self):
        plan = fallback_workout_plan()
        assert plan.type == "workout"
        assert plan.content["workoutType"] == "ABC"
        exercise = plan.content["workouts"]["A"]["exercises"][0]
        assert {"name", "sets", "reps", "rest"} <= set(exercise)


class TestDisabledService:
    @pytest.mark.asyncio
    async def test_chat_canned_reply(self):
        service = AIService(api_key="")
        assert service.enabled is False
        assert await service.chat("Oi") == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_plans_fall_back(self):
        service = AIService(api_key="")
        assert (await service.generate_meal_plan("dieta", GOALS)).name == "Plano Nutricional Personalizado"
        assert (await service.generate_workout_plan("treino")).name == "Plano de Treino ABC"


class TestMockedService:
    @pytest.mark.asyncio
    async def test_chat_sends_history_and_profile(self):
        service = _service("**Ótima pergunta!** Prefira frutas no lanche.")
        history = [
            {"role": "assistant", "content": "Olá!"},
            {"role": "user", "content": "Oi"},
            {"role": "assistant", "content": "Como posso ajudar?"},
        ]
        profile = SimpleNamespace(weight=70, height=None, age=None, goal=None, activity_level=None,
                                  daily_calories=2000, daily_protein=120, daily_carbs=225, daily_fat=67)
        reply = await service.chat("O que comer à tarde?", history, profile)
        assert reply == ["Ótima pergunta! Prefira frutas no lanche."]

        kwargs = service.client.messages.create.call_args.kwargs
        assert kwargs["system"] == CHAT_SYSTEM_PROMPT
        assert kwargs["model"] == "test-model"
        messages = kwargs["messages"]
        assert messages[0] == {"role": "user", "content": "Oi"}  # leading assistant turn dropped
        assert messages[-1]["role"] == "user"
        assert messages[-1]["content"].endswith("PERGUNTA: O que comer à tarde?")
        assert "- Peso: 70 kg" in messages[-1]["content"]

    @pytest.mark.asyncio
    async def test_chat_provider_error(self):
        service = _service(error=_connection_error())
        assert await service.chat("Oi") == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_analyze_meal(self):
        reply = json.dumps({
            "foods": [{"name": "Arroz", "quantity": 100, "unit": "g", "estimatedCalories": 130,
                       "estimatedProtein": 2.7, "estimatedCarbs": 28, "estimatedFat": 0.3}],
            "totalCalories": 130,
            "confidence": 0.9,
        })
        analysis = await _service(reply).analyze_meal("100g de arroz")
        assert analysis.total_calories == 130
        assert analysis.foods[0].estimated_carbs == 28
        assert analysis.confidence == 0.9

    @pytest.mark.asyncio
    async def test_analyze_meal_bad_json_falls_back(self):
        analysis = await _service("não sei").analyze_meal("2 ovos")
        assert analysis.confidence == 0.85
        assert analysis.total_calories == 140

    @pytest.mark.asyncio
    async def test_suggest_recipes(self):
        reply = json.dumps([{"name": "Panqueca de Banana", "ingredients": ["banana", "ovos"],
                             "estimatedCalories": 250, "cookingTime": 10, "difficulty": "easy"}])
        recipes = await _service(reply).suggest_recipes(["banana", "ovos"])
        assert [r.name for r in recipes] == ["Panqueca de Banana"]

    @pytest.mark.asyncio
    async def test_suggest_recipes_error(self):
        recipes = await _service(error=_connection_error()).suggest_recipes(["ovos"])
        assert [r.name for r in recipes] == ["Omelete Nutritiva"]

    @pytest.mark.asyncio
    async def test_generate_meal_plan(self):
        reply = "```json\n" + json.dumps({
            "name": "Plano Low Carb",
            "description": "Menos carboidratos",
            "dailyCalories": 1800.4, "macroCarbs": 120, "macroProtein": 140, "macroFat": 80,
            "meals": {"segunda": {"breakfast": {"name": "Ovos mexidos"}}},
        }) + "\n```"
        plan = await _service(reply).generate_meal_plan("low carb", GOALS)
        assert plan.name == "Plano Low Carb"
        assert plan.daily_calories == 1800
        assert plan.macro_carbs == 120
        assert plan.content == {"meals": {"segunda": {"breakfast": {"name": "Ovos mexidos"}}}}

    @pytest.mark.asyncio
    async def test_generate_meal_plan_missing_macros_use_goals(self):
        reply = json.dumps({"name": "Plano", "meals": {}})
        plan = await _service(reply).generate_meal_plan("x", GOALS)
        assert plan.daily_calories == 2000
        assert plan.macro_protein == 150

    @pytest.mark.asyncio
    async def test_generate_meal_plan_list_reply_falls_back(self):
        plan = await _service('[{"name": "x"}]').generate_meal_plan("x", GOALS)
        assert plan.name == "Plano Nutricional Personalizado"

    @pytest.mark.asyncio
    async def test_generate_meal_plan_non_numeric_calories_falls_back(self):
        reply = json.dumps({"name": "x", "meals": {}, "dailyCalories": "cerca de 2000"})
        plan = await _service(reply).generate_meal_plan("x", GOALS)
        assert plan.name == "Plano Nutricional Personalizado"
        assert plan.daily_calories == 2000

    @pytest.mark.asyncio
    async def test_generate_workout_plan_list_reply_falls_back(self):
        plan = await _service('["A", "B"]').generate_workout_plan("x")
        assert plan.name == "Plano de Treino ABC"

    @pytest.mark.asyncio
    async def test_generate_workout_plan(self):
        reply = json.dumps({"name": "Push Pull Legs", "workouts": {
            "A": {"name": "Push", "exercises": []},
            "B": {"name": "Pull", "exercises": []},
            "C": {"name": "Legs", "exercises": []},
        }})
        plan = await _service(reply).generate_workout_plan("ppl")
        assert plan.name == "Push Pull Legs"
        assert plan.content["workoutType"] == "ABC"

    @pytest.mark.asyncio
    async def test_generate_workout_plan_without_workouts_falls_back(self):
        plan = await _service(json.dumps({"name": "Vazio", "workouts": {}})).generate_workout_plan("x")
        assert plan.name == "Plano de Treino ABC"


# ── API ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_chat_endpoint_fallback(client, auth):
    resp = await client.post("/api/ai/chat", headers=auth, json={"message": "Oi, tudo bem?"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["response"] == FALLBACK_REPLY
    assert data["planId"] is None


@pytest.mark.asyncio
async def test_chat_empty_message(client, auth):
    resp = await client.post("/api/ai/chat", headers=auth, json={"message": "  "})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_chat_creates_workout_plan(client, auth):
    resp = await client.post("/api/ai/chat", headers=auth,
                             json={"message": "Quero criar um plano de treino para hipertrofia"})
    data = resp.json()
    assert data["planId"]
    assert data["response"][0].startswith("Plano de Treino Criado com Sucesso!")

    active = (await client.get("/api/user-plans/active", headers=auth, params={"type": "workout"})).json()
    assert [p["id"] for p in active] == [data["planId"]]


@pytest.mark.asyncio
async def test_chat_creates_diet_plan(client, auth):
    resp = await client.post("/api/ai/chat", headers=auth,
                             json={"message": "Pode montar um plano de dieta para mim?"})
    data = resp.json()
    assert data["response"][0].startswith("Plano Alimentar Criado com Sucesso!")
    plan = (await client.get("/api/my-meal-plan", headers=auth)).json()
    assert plan["id"] == data["planId"]


@pytest.mark.asyncio
async def test_chat_records_history(client, auth):
    from src.services.chat import chat_history

    user = (await client.get("/api/user", headers=auth)).json()
    await client.post("/api/ai/chat", headers=auth, json={"message": "Oi"})
    history = chat_history.get(user["id"])
    assert [h["role"] for h in history] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_analyze_meal_endpoint(client, auth):
    resp = await client.post("/api/ai/analyze-meal", headers=auth,
                             json={"description": "2 fatias de pão e 2 ovos"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalCalories"] == 300
    assert data["foods"][0]["estimatedCalories"] == 160

    resp = await client.post("/api/ai/analyze-meal", headers=auth, json={"description": ""})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_suggest_recipes_endpoint(client, auth):
    resp = await client.post("/api/ai/suggest-recipes", headers=auth,
                             json={"availableIngredients": ["frango", "arroz"]})
    assert [r["name"] for r in resp.json()] == ["Frango com Arroz"]


@pytest.mark.asyncio
async def test_recommendations_need_complete_profile(client, auth):
    body = {"currentNutrition": {"calories": 500, "protein": 30, "carbs": 60, "fat": 15}}
    resp = await client.post("/api/ai/personalized-recommendations", headers=auth, json=body)
    assert resp.status_code == 400

    await client.patch("/api/user/goals", headers=auth, json={
        "weight": 70, "height": 175, "age": 25, "isProfileComplete": True,
    })
    resp = await client.post("/api/ai/personalized-recommendations", headers=auth, json=body)
    assert resp.status_code == 200
    recs = resp.json()
    assert recs
    assert recs[0]["priority"] == "high"
    assert {"recipe", "reason", "nutritionMatch", "priority"} <= set(recs[0])


@pytest.mark.asyncio
async def test_ai_requires_auth(client):
    assert (await client.post("/api/ai/chat", json={"message": "Oi"})).status_code == 401


@pytest.mark.asyncio
async def test_generate_meal_plan_unusable_reply_is_not_a_server_error(client, auth):
    app.dependency_overrides[get_ai_service] = lambda: _service('[{"name": "x"}]')
    try:
        resp = await client.post("/api/generate-meal-plan", headers=auth, json={"description": "Quero emagrecer"})
    finally:
        app.dependency_overrides[get_ai_service] = lambda: AIService(api_key="")
    assert resp.status_code == 201
    assert resp.json()["name"] == "Plano Nutricional Personalizado"
