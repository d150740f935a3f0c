"""USDA FoodData Central client.

Users search in Portuguese; queries are translated through a static
dictionary before hitting the (English) USDA index. Without an API key,
or when USDA fails, the local fallback foods are returned instead.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from config.settings import settings
from src.models import ProcessedFood
from src.services.food_database import fallback_foods, normalize
from src.services.rounding import round_half_up, round_int

logger = logging.getLogger(__name__)

USER_AGENT = "NutrIA/1.0 (nutria-backend)"
SEARCH_DATA_TYPES = "Foundation,SR Legacy"

# USDA nutrient ids
ENERGY_KCAL = 1008
PROTEIN = 1003
TOTAL_FAT = 1004
CARBS = 1005
FIBER = 1079
SUGARS = 2000
SODIUM = 1093  # mg

# Portuguese -> English. Order matters for partial matches: first hit wins.
FOOD_TRANSLATIONS: dict[str, str] = {
    # Frutas
    "banana": "banana",
    "maçã": "apple",
    "laranja": "orange",
    "uva": "grape",
    "limão": "lemon",
    "manga": "mango",
    "abacaxi": "pineapple",
    "morango": "strawberry",
    "pêra": "pear",
    "pêssego": "peach",
    "melancia": "watermelon",
    "melão": "melon",
    "kiwi": "kiwi",
    "mamão": "papaya",
    "coco": "coconut",
    "abacate": "avocado",
    # Carnes
    "frango": "chicken",
    "carne": "beef",
    "porco": "pork",
    "peixe": "fish",
    "salmão": "salmon",
    "atum": "tuna",
    "camarão": "shrimp",
    "peru": "turkey",
    "cordeiro": "lamb",
    "bacon": "bacon",
    "linguiça": "sausage",
    "presunto": "ham",
    # Grãos e cereais
    "arroz": "rice",
    "feijão": "beans",
    "lentilha": "lentils",
    "grão-de-bico": "chickpeas",
    "quinoa": "quinoa",
    "aveia": "oats",
    "trigo": "wheat",
    "milho": "corn",
    "centeio": "rye",
    "cevada": "barley",
    # Laticínios
    "leite": "milk",
    "queijo": "cheese",
    "iogurte": "yogurt",
    "manteiga": "butter",
    "creme de leite": "cream",
    "requeijão": "cottage cheese",
    # Ovos
    "ovo": "egg",
    "ovos": "eggs",
    # Vegetais
    "tomate": "tomato",
    "cebola": "onion",
    "alho": "garlic",
    "batata": "potato",
    "cenoura": "carrot",
    "brócolis": "broccoli",
    "couve-flor": "cauliflower",
    "espinafre": "spinach",
    "alface": "lettuce",
    "pepino": "cucumber",
    "pimentão": "bell pepper",
    "abobrinha": "zucchini",
    "berinjela": "eggplant",
    "beterraba": "beet",
    "repolho": "cabbage",
    "couve": "kale",
    "rúcula": "arugula",
    # Nozes e sementes
    "amendoim": "peanuts",
    "castanha": "nuts",
    "nozes": "walnuts",
    "amêndoas": "almonds",
    "pistache": "pistachios",
    "sementes de girassol": "sunflower seeds",
    "chia": "chia seeds",
    "linhaça": "flax seeds",
    # Óleos e gorduras
    "azeite": "olive oil",
    "óleo": "oil",
    "óleo de coco": "coconut oil",
    "óleo de girassol": "sunflower oil",
    # Pães e massas
    "pão": "bread",
    "macarrão": "pasta",
    "espaguete": "spaghetti",
    "lasanha": "lasagna",
    "pizza": "pizza",
    "biscoito": "cookie",
    "bolacha": "cracker",
    # Doces
    "açúcar": "sugar",
    "mel": "honey",
    "chocolate": "chocolate",
    "bolo": "cake",
    "sorvete": "ice cream",
    "pudim": "pudding",
    "brigadeiro": "chocolate truffle",
    "beijinho": "coconut candy",
    # Bebidas
    "água": "water",
    "café": "coffee",
    "chá": "tea",
    "suco": "juice",
    "refrigerante": "soda",
    "cerveja": "beer",
    "vinho": "wine",
    "cachaça": "cachaca",
    # Temperos e ervas
    "sal": "salt",
    "pimenta": "pepper",
    "orégano": "oregano",
    "manjericão": "basil",
    "salsa": "parsley",
    "coentro": "cilantro",
    "tomilho": "thyme",
    "alecrim": "rosemary",
    "canela": "cinnamon",
    "gengibre": "ginger",
    # Pratos brasileiros (aproximações)
    "farofa": "breadcrumbs",
    "tapioca": "tapioca",
    "açaí": "acai",
    "guaraná": "guarana",
    "coxinha": "chicken croquette",
    "pastel": "pastry",
    "pão de açúcar": "sugar bread",
    "mandioca": "cassava",
    "inhame": "yam",
    "batata doce": "sweet potato",
    "doce": "candy",
    "açafrão": "turmeric",
}

_NORMALIZED_TRANSLATIONS = [(normalize(pt), en) for pt, en in FOOD_TRANSLATIONS.items()]


def translate_to_english(query: str) -> str:
    """Exact match, then partial match either way, else the query unchanged."""
    q = normalize(query)
    for pt, en in _NORMALIZED_TRANSLATIONS:
        if q == pt:
            return en
    for pt, en in _NORMALIZED_TRANSLATIONS:
        if pt in q or q in pt:
            return en
    return query


def _nutrient(nutrients: list[dict], nutrient_id: int) -> float:
    for n in nutrients:
        # search results use nutrientId; /food/{id} nests it under "nutrient"
        nid = n.get("nutrientId") or (n.get("nutrient") or {}).get("id")
        if nid == nutrient_id:
            value = n.get("value", n.get("amount"))
            return float(value or 0)
    return 0.0


def process_usda_food(food: dict) -> ProcessedFood:
    """Normalise a USDA food record to per-100g values."""
    nutrients = food.get("foodNutrients") or []
    category = food.get("foodCategory")
    if isinstance(category, dict):
        category = category.get("description")
    return ProcessedFood(
        usda_fdc_id=food.get("fdcId", 0),
        name=food.get("description", ""),
        brand=food.get("brandOwner"),
        category=category,
        calories_per_100g=round_int(_nutrient(nutrients, ENERGY_KCAL)),
        protein_per_100g=round_half_up(_nutrient(nutrients, PROTEIN), 2),
        carbs_per_100g=round_half_up(_nutrient(nutrients, CARBS), 2),
        fat_per_100g=round_half_up(_nutrient(nutrients, TOTAL_FAT), 2),
        fiber_per_100g=round_half_up(_nutrient(nutrients, FIBER), 2),
        sugar_per_100g=round_half_up(_nutrient(nutrients, SUGARS), 2),
        sodium_per_100g=round_half_up(_nutrient(nutrients, SODIUM) / 1000, 2),
    )


class UsdaFoodService:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, timeout: float = 10):
        self.api_key = api_key if api_key is not None else settings.USDA_API_KEY
        self.base_url = (base_url or settings.USDA_API_BASE).rstrip("/")
        self.timeout = timeout

    async def search_foods(self, query: str, page_size: int = 50) -> list[ProcessedFood]:
        if not self.api_key:
            return fallback_foods(query)

        translated = translate_to_english(query)
        logger.info("USDA search %r -> %r", query, translated)
        params = {
            "api_key": self.api_key,
            "query": translated,
            "pageSize": page_size,
            "dataType": SEARCH_DATA_TYPES,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
                resp = await client.get(f"{self.base_url}/foods/search", params=params)
                resp.raise_for_status()
                data = resp.json()
            return [process_usda_food(f) for f in data.get("foods", [])]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("USDA search failed for %r: %s", query, e)
            return fallback_foods(query)

    async def get_food_details(self, fdc_id: int) -> Optional[ProcessedFood]:
        if not self.api_key:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
                resp = await client.get(f"{self.base_url}/food/{fdc_id}", params={"api_key": self.api_key})
                resp.raise_for_status()
                return process_usda_food(resp.json())
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("USDA detail lookup failed for %s: %s", fdc_id, e)
            return None
