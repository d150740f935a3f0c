"""Personalized recipe recommendations.

Scores a fixed set of Brazilian recipes against what the user still needs
today. No ML: the candidate set depends on the remaining macros and each
candidate gets a reason, the macro it serves best, and a priority.
"""
from __future__ import annotations

from typing import Optional

from src.models import MacroTotals, PersonalizedRecommendation, RecipeSuggestion

_PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


def _recipe(name, description, ingredients, kcal, protein, carbs, fat, minutes, difficulty) -> RecipeSuggestion:
    return RecipeSuggestion(
        name=name, description=description, ingredients=ingredients,
        estimated_calories=kcal, estimated_protein=protein,
        estimated_carbs=carbs, estimated_fat=fat,
        cooking_time=minutes, difficulty=difficulty,
    )


HIGH_PROTEIN = [
    _recipe("Salmão Grelhado com Quinoa", "Rico em proteína de alta qualidade e aminoácidos essenciais",
            ["salmão", "quinoa", "brócolis", "azeite", "limão"], 520, 42, 35, 22, 25, "medium"),
    _recipe("Frango com Batata Doce", "Combinação perfeita para ganho de massa muscular",
            ["peito de frango", "batata doce", "espinafre", "alho"], 480, 45, 42, 8, 30, "easy"),
]

HIGH_CARB = [
    _recipe("Bowl de Açaí com Granola", "Energia rápida e duradoura para treinos intensos",
            ["açaí", "banana", "granola", "mel", "castanhas"], 420, 8, 65, 15, 5, "easy"),
    _recipe("Macarrão Integral com Vegetais", "Carboidratos complexos para energia sustentada",
            ["macarrão integral", "abobrinha", "tomate", "manjericão"], 380, 14, 68, 6, 20, "easy"),
]

LOW_CALORIE = [
    _recipe("Salada de Quinoa com Legumes", "Baixa caloria, alta saciedade e nutrientes",
            ["quinoa", "pepino", "tomate cereja", "rúcula", "limão"], 220, 8, 35, 6, 15, "easy"),
    _recipe("Peixe ao Vapor com Legumes", "Refeição leve e nutritiva para controle de peso",
            ["tilápia", "brócolis", "cenoura", "temperos"], 180, 28, 8, 4, 20, "medium"),
]

BALANCED = [
    _recipe("Omelete com Vegetais", "Refeição balanceada para qualquer hora do dia",
            ["ovos", "espinafre", "tomate", "queijo cottage"], 320, 24, 8, 22, 10, "easy"),
    _recipe("Bowl Brasileiro", "Combinação tradicional rica em fibras e proteínas",
            ["arroz integral", "feijão preto", "couve", "abacate"], 450, 18, 55, 16, 25, "easy"),
]


def _num(value: float) -> str:
    return f"{value:g}"


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def remaining_nutrition(current: MacroTotals, goals: MacroTotals) -> MacroTotals:
    """What is left of each goal, never negative."""
    return MacroTotals(
        calories=max(0.0, goals.calories - current.calories),
        protein=max(0.0, goals.protein - current.protein),
        carbs=max(0.0, goals.carbs - current.carbs),
        fat=max(0.0, goals.fat - current.fat),
    )


def candidate_recipes(remaining: MacroTotals, ingredients: Optional[list[str]] = None) -> list[RecipeSuggestion]:
    recipes: list[RecipeSuggestion] = []
    if remaining.protein > 25:
        recipes.extend(HIGH_PROTEIN)
    if remaining.carbs > 40:
        recipes.extend(HIGH_CARB)
    if remaining.calories < 300:
        recipes.extend(LOW_CALORIE)
    recipes.extend(BALANCED)

    if ingredients:
        available = [a.lower() for a in ingredients if a.strip()]
        recipes = [
            r for r in recipes
            if any(ing.lower() in a or a in ing.lower() for ing in r.ingredients for a in available)
        ]
    return [r.model_copy() for r in recipes]


def analyze_recipe_match(recipe: RecipeSuggestion, remaining: MacroTotals,
                         goals: MacroTotals) -> PersonalizedRecommendation:
    """Explain why ``recipe`` fits the remaining needs and how urgently."""
    reasons: list[str] = []
    match = "balanced"
    priority = "medium"

    if _pct(remaining.protein, goals.protein) > 30 and recipe.estimated_protein > 20:
        reasons.append(f"Rica em proteína ({_num(recipe.estimated_protein)}g) para suas metas")
        match = "protein"
        priority = "high"

    calorie_pct = _pct(remaining.calories, goals.calories)
    if calorie_pct > 40 and recipe.estimated_calories > 400:
        reasons.append(f"Fornece energia substancial ({_num(recipe.estimated_calories)} kcal)")
        if match == "balanced":
            match = "calories"
        priority = "high"
    elif calorie_pct < 20 and recipe.estimated_calories < 300:
        reasons.append(f"Opção leve ({_num(recipe.estimated_calories)} kcal) para controle calórico")
        if match == "balanced":
            match = "calories"
        priority = "high"

    if _pct(remaining.carbs, goals.carbs) > 30 and recipe.estimated_carbs > 30:
        reasons.append(f"Boa fonte de carboidratos ({_num(recipe.estimated_carbs)}g) para energia")
        if match == "balanced":
            match = "carbs"

    if _pct(remaining.fat, goals.fat) > 30 and recipe.estimated_fat > 15:
        reasons.append(f"Contém gorduras saudáveis ({_num(recipe.estimated_fat)}g)")
        if match == "balanced":
            match = "fat"

    if not reasons:
        reasons.append("Refeição balanceada que complementa seu plano nutricional")
        priority = "low"

    return PersonalizedRecommendation(
        recipe=recipe, reason=". ".join(reasons), nutrition_match=match, priority=priority,
    )


def recommend(current: MacroTotals, goals: MacroTotals,
              ingredients: Optional[list[str]] = None) -> list[PersonalizedRecommendation]:
    """Recommendations for the rest of the day, high priority first."""
    remaining = remaining_nutrition(current, goals)
    recs = [analyze_recipe_match(r, remaining, goals) for r in candidate_recipes(remaining, ingredients)]
    recs.sort(key=lambda r: _PRIORITY_ORDER[r.priority], reverse=True)
    return recs
