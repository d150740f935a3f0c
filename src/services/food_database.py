"""Local food table with nutrition per 100g for common Brazilian foods.

Seeds the global food catalog on startup and backs USDA search when the
API key is missing or the request fails.
"""
from __future__ import annotations

import unicodedata

from src.models import ProcessedFood

# name, category, kcal, protein, carbs, fat, fiber, sugar, sodium (g)
_FOODS: list[tuple] = [
    # The first five are the canonical USDA fallbacks
    ("Arroz branco cozido", "Cereais", 130, 2.7, 28.0, 0.3, 0.4, 0.1, 0.001),
    ("Feijão preto cozido", "Leguminosas", 132, 8.9, 23.0, 0.5, 8.7, 0.3, 0.002),
    ("Peito de frango grelhado", "Carnes", 165, 31.0, 0.0, 3.6, 0.0, 0.0, 0.074),
    ("Banana", "Frutas", 89, 1.1, 23.0, 0.3, 2.6, 12.0, 0.001),
    ("Ovos", "Proteínas", 155, 13.0, 1.1, 11.0, 0.0, 1.1, 0.124),

    # Cereais e pães
    ("Arroz integral cozido", "Cereais", 124, 2.6, 25.8, 1.0, 2.7, 0.3, 0.001),
    ("Aveia em flocos", "Cereais", 394, 13.9, 66.6, 8.5, 9.1, 1.0, 0.005),
    ("Pão francês", "Pães", 300, 8.0, 58.6, 3.1, 2.3, 3.0, 0.648),
    ("Pão integral", "Pães", 253, 9.4, 49.9, 3.7, 6.9, 5.0, 0.506),
    ("Tapioca", "Cereais", 240, 0.0, 60.0, 0.0, 0.5, 0.0, 0.001),
    ("Macarrão cozido", "Massas", 158, 5.8, 30.9, 0.9, 1.8, 0.6, 0.001),
    ("Cuscuz de milho", "Cereais", 113, 2.2, 25.3, 0.7, 2.1, 0.5, 0.247),

    # Leguminosas e tubérculos
    ("Feijão carioca cozido", "Leguminosas", 76, 4.8, 13.6, 0.5, 8.5, 0.3, 0.002),
    ("Lentilha cozida", "Leguminosas", 93, 6.3, 16.3, 0.5, 7.9, 1.8, 0.002),
    ("Batata doce cozida", "Tubérculos", 77, 0.6, 18.4, 0.1, 2.2, 5.7, 0.003),
    ("Batata inglesa cozida", "Tubérculos", 52, 1.2, 11.9, 0.1, 1.3, 0.9, 0.002),
    ("Mandioca cozida", "Tubérculos", 125, 0.6, 30.1, 0.3, 1.6, 1.7, 0.001),

    # Carnes e peixes
    ("Carne bovina patinho grelhado", "Carnes", 219, 35.9, 0.0, 7.3, 0.0, 0.0, 0.060),
    ("Carne moída refogada", "Carnes", 212, 26.7, 0.0, 10.9, 0.0, 0.0, 0.071),
    ("Coxa de frango assada", "Carnes", 215, 28.5, 0.0, 11.2, 0.0, 0.0, 0.090),
    ("Salmão grelhado", "Peixes", 208, 20.4, 0.0, 13.4, 0.0, 0.0, 0.059),
    ("Tilápia grelhada", "Peixes", 128, 26.2, 0.0, 2.7, 0.0, 0.0, 0.056),
    ("Atum em lata", "Peixes", 132, 28.2, 0.0, 1.3, 0.0, 0.0, 0.247),

    # Laticínios
    ("Leite integral", "Laticínios", 61, 3.2, 4.8, 3.3, 0.0, 5.1, 0.043),
    ("Leite desnatado", "Laticínios", 34, 3.4, 5.0, 0.1, 0.0, 5.0, 0.042),
    ("Iogurte natural", "Laticínios", 63, 5.3, 7.0, 1.6, 0.0, 7.0, 0.070),
    ("Queijo minas frescal", "Laticínios", 264, 17.4, 3.2, 20.2, 0.0, 3.2, 0.346),
    ("Requeijão", "Laticínios", 257, 9.6, 2.4, 23.4, 0.0, 2.4, 0.558),

    # Frutas
    ("Maçã", "Frutas", 52, 0.3, 13.8, 0.2, 2.4, 10.4, 0.001),
    ("Mamão papaia", "Frutas", 40, 0.5, 10.4, 0.1, 1.0, 7.8, 0.003),
    ("Laranja", "Frutas", 47, 0.9, 11.8, 0.1, 2.4, 9.4, 0.0),
    ("Abacate", "Frutas", 160, 2.0, 8.5, 14.7, 6.7, 0.7, 0.007),
    ("Açaí polpa", "Frutas", 58, 0.8, 6.2, 3.9, 2.6, 0.0, 0.005),

    # Vegetais
    ("Brócolis cozido", "Vegetais", 35, 2.4, 7.2, 0.4, 3.3, 1.4, 0.041),
    ("Alface", "Vegetais", 15, 1.4, 2.9, 0.2, 1.3, 0.8, 0.028),
    ("Tomate", "Vegetais", 18, 0.9, 3.9, 0.2, 1.2, 2.6, 0.005),
    ("Cenoura crua", "Vegetais", 41, 0.9, 9.6, 0.2, 2.8, 4.7, 0.069),
    ("Couve refogada", "Vegetais", 90, 1.7, 8.7, 6.6, 5.7, 0.0, 0.009),

    # Gorduras, oleaginosas e outros
    ("Azeite de oliva", "Óleos", 884, 0.0, 0.0, 100.0, 0.0, 0.0, 0.002),
    ("Castanha do Pará", "Oleaginosas", 656, 14.3, 12.3, 66.4, 7.5, 2.3, 0.003),
    ("Pasta de amendoim", "Oleaginosas", 588, 25.1, 20.0, 50.4, 6.0, 9.2, 0.017),
    ("Whey protein", "Suplementos", 400, 80.0, 10.0, 5.0, 0.0, 5.0, 0.200),
    ("Granola", "Cereais", 471, 10.0, 64.0, 20.0, 7.0, 24.0, 0.026),
    ("Mel", "Doces", 304, 0.3, 82.4, 0.0, 0.2, 82.1, 0.004),
]

COMMON_FOODS: list[ProcessedFood] = [
    ProcessedFood(
        name=name, category=category,
        calories_per_100g=kcal, protein_per_100g=protein, carbs_per_100g=carbs,
        fat_per_100g=fat, fiber_per_100g=fiber, sugar_per_100g=sugar,
        sodium_per_100g=sodium,
    )
    for name, category, kcal, protein, carbs, fat, fiber, sugar, sodium in _FOODS
]

FALLBACK_FOODS = COMMON_FOODS[:5]


def normalize(text: str) -> str:
    """Lowercase and strip accents: 'Feijão' -> 'feijao'."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def search_foods(query: str, foods: list[ProcessedFood] | None = None, limit: int = 20) -> list[ProcessedFood]:
    """Accent-insensitive substring search, best matches first."""
    q = normalize(query)
    if not q:
        return []

    scored = []
    for food in COMMON_FOODS if foods is None else foods:
        name = normalize(food.name)
        if name == q:
            scored.append((1.0, food))
        elif name.startswith(q):
            scored.append((0.9, food))
        elif q in name:
            scored.append((0.8, food))

    scored.sort(key=lambda s: s[0], reverse=True)
    return [food for _, food in scored[:limit]]


def fallback_foods(query: str) -> list[ProcessedFood]:
    """Static results served when USDA is unavailable."""
    return search_foods(query, foods=FALLBACK_FOODS)
