"""Tests for personalized recipe recommendations."""
from __future__ import annotations

from src.models import MacroTotals
from src.services.recommendations import recommend, remaining_nutrition

GOALS = MacroTotals(calories=2000, protein=150, carbs=250, fat=67)


def test_remaining_never_negative():
    left = remaining_nutrition(MacroTotals(calories=2500, protein=100, carbs=300, fat=10), GOALS)
    assert left.calories == 0
    assert left.protein == 50
    assert left.carbs == 0
    assert left.fat == 57


def test_start_of_day_prefers_protein_and_energy():
    recs = recommend(MacroTotals(), GOALS)
    names = [r.recipe.name for r in recs]

    assert len(recs) == 6
    assert names[-1] == "Macarrão Integral com Vegetais"
    assert recs[-1].priority == "medium"
    assert recs[-1].nutrition_match == "carbs"
    assert all(r.priority == "high" for r in recs[:-1])

    salmon = next(r for r in recs if r.recipe.name == "Salmão Grelhado com Quinoa")
    assert salmon.nutrition_match == "protein"
    assert "Rica em proteína (42g)" in salmon.reason


def test_end_of_day_prefers_light_meals():
    recs = recommend(MacroTotals(calories=1900, protein=145, carbs=245, fat=65), GOALS)
    names = [r.recipe.name for r in recs]

    assert names == [
        "Salada de Quinoa com Legumes",
        "Peixe ao Vapor com Legumes",
        "Omelete com Vegetais",
        "Bowl Brasileiro",
    ]
    assert [r.priority for r in recs] == ["high", "high", "low", "low"]
    assert recs[0].nutrition_match == "calories"
    assert recs[2].reason == "Refeição balanceada que complementa seu plano nutricional"


def test_ingredient_filter():
    recs = recommend(MacroTotals(), GOALS, ["Salmão"])
    assert [r.recipe.name for r in recs] == ["Salmão Grelhado com Quinoa"]
