"""AI nutrition assistant backed by Claude.

Every call is guarded: with no ANTHROPIC_API_KEY, or when the API call or
the JSON in the reply fails, the service logs and answers from local
rule-based fallbacks. Callers never see a provider error.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import anthropic

from config.settings import settings
from src.models import FoodEstimate, GeneratedPlan, MacroTotals, MealAnalysis, RecipeSuggestion
from src.services.chat import FALLBACK_REPLY, split_response
from src.services.rounding import round_int

logger = logging.getLogger(__name__)

# Errors that mean "use the fallback": provider failures and unusable replies.
# pydantic's ValidationError and json's JSONDecodeError are ValueErrors; Decimal
# conversion of a non-numeric value raises an ArithmeticError.
AI_ERRORS = (
    anthropic.APIError, ValueError, KeyError, IndexError, TypeError, AttributeError, ArithmeticError,
)

CHAT_SYSTEM_PROMPT = (
    "Você é um nutricionista virtual brasileiro. Responda APENAS o que foi perguntado de forma "
    "DIRETA e RELEVANTE. Use o perfil do usuário para personalizar. REGRAS: 1) NUNCA use símbolos "
    "(*, **, _, ~, hífen, bullets). 2) Responda somente informações relacionadas à pergunta "
    "específica. 3) Máximo 2 frases por tópico. 4) Use quebras de linha duplas entre tópicos. "
    "5) NÃO adicione dicas gerais não relacionadas. 6) Seja extremamente relevante e conectado ao "
    "assunto perguntado."
)

MEAL_ANALYSIS_PROMPT = """Você é um especialista em nutrição. Analise a descrição de refeição abaixo e
extraia os alimentos com quantidades e estimativas nutricionais.

Descrição: "{description}"

Responda APENAS com JSON válido no formato:
{{"foods": [{{"name": "Ovo", "quantity": 2, "unit": "unidades", "estimatedCalories": 140,
"estimatedProtein": 12, "estimatedCarbs": 2, "estimatedFat": 10}}],
"totalCalories": 140, "confidence": 0.8}}"""

RECIPE_PROMPT = """Você é um chef e nutricionista. Sugira de 3 a 5 receitas saudáveis usando estes
ingredientes disponíveis: {ingredients}.

Responda APENAS com um array JSON de objetos no formato:
[{{"name": "...", "description": "...", "ingredients": ["..."], "estimatedCalories": 400,
"estimatedProtein": 30, "estimatedCarbs": 40, "estimatedFat": 12, "cookingTime": 20,
"difficulty": "easy"}}]
difficulty deve ser "easy", "medium" ou "hard"."""

MEAL_PLAN_PROMPT = """Você é um Nutricionista virtual altamente qualificado. Crie um plano alimentar
semanal personalizado baseado na descrição do usuário:
"{description}"

OS VALORES NUTRICIONAIS DEVEM BATER COM AS METAS DO USUÁRIO:
- Meta calórica diária: {calories} kcal
- Meta de proteínas: {protein}g
- Meta de carboidratos: {carbs}g
- Meta de gorduras: {fat}g

Distribua as calorias: 25% café da manhã, 35% almoço, 15% lanche, 25% jantar.
Horários fixos: café (07:00), almoço (12:00), lanche (15:00), jantar (19:00).
Crie plano para 7 dias (segunda, terca, quarta, quinta, sexta, sabado, domingo), com as chaves
breakfast, lunch, lanche e dinner. Priorize alimentos brasileiros naturais.

Responda APENAS com JSON válido:
{{"name": "Plano Nutricional Personalizado", "description": "...", "dailyCalories": {calories},
"macroCarbs": {carbs}, "macroProtein": {protein}, "macroFat": {fat},
"meals": {{"segunda": {{"breakfast": {{"name": "Café da Manhã", "description": "...",
"time": "07:00", "calories": 0, "protein": 0, "carbs": 0, "fat": 0, "ingredients": ["..."]}}}}}}}}"""

WORKOUT_PLAN_PROMPT = """Você é um Personal Trainer virtual altamente qualificado. Crie um plano de
treino personalizado baseado na descrição do usuário:
"{description}"

Use sistema de fichas (A, B, C, D) ao invés de dias da semana. Para iniciantes use ABC, para
intermediários/avançados pode usar ABCD.

Responda APENAS com JSON válido:
{{"name": "Nome do Plano de Treino", "description": "...", "workouts": {{"A": {{"name":
"Treino A - Push (Peito, Ombro, Tríceps)", "exercises": [{{"name": "Supino inclinado",
"sets": 4, "reps": "8-10", "rest": "90s"}}], "duration": "60-75 minutos"}}}}}}"""

# (regex, name, kcal, protein, carbs, fat) per unit
MEAL_PATTERNS = [
    (re.compile(r"(\d+)\s*fatias?\s+de\s+pão", re.IGNORECASE), "Pão", 80, 3, 15, 1),
    (re.compile(r"(\d+)\s*ovos?", re.IGNORECASE), "Ovo", 70, 6, 1, 5),
    (re.compile(r"(\d+)\s*fatias?\s+de\s+presunto", re.IGNORECASE), "Presunto", 45, 8, 1, 1),
    (re.compile(r"(\d+)\s*colheres?\s+de\s+arroz", re.IGNORECASE), "Arroz", 130, 3, 28, 0.3),
    (re.compile(r"(\d+)\s*colheres?\s+de\s+feijão", re.IGNORECASE), "Feijão", 245, 15, 45, 1),
]

WEEK_DAYS = ["segunda", "terca", "quarta", "quinta", "sexta", "sabado", "domingo"]

# slot -> (name, time, share of the day, rotating menus)
MEAL_SLOTS = {
    "breakfast": ("Café da Manhã", "07:00", 0.25, [
        ("2 ovos mexidos + 2 fatias de pão integral + 1 banana", ["ovos", "pão integral", "banana"]),
        ("Aveia com banana, leite desnatado e mel", ["aveia", "banana", "leite", "mel"]),
        ("Tapioca com queijo minas e mamão", ["tapioca", "queijo minas", "mamão"]),
    ]),
    "lunch": ("Almoço", "12:00", 0.35, [
        ("150g arroz + 100g feijão + 120g peito de frango + salada verde",
         ["arroz", "feijão", "frango", "salada"]),
        ("Carne moída com batata doce, brócolis e salada", ["carne moída", "batata doce", "brócolis"]),
        ("Tilápia grelhada com arroz integral e legumes", ["tilápia", "arroz integral", "legumes"]),
    ]),
    "lanche": ("Lanche", "15:00", 0.15, [
        ("1 iogurte natural + 1 punhado de castanhas", ["iogurte natural", "castanhas"]),
        ("1 fruta + pasta de amendoim", ["maçã", "pasta de amendoim"]),
        ("Sanduíche de pão integral com peito de peru", ["pão integral", "peito de peru"]),
    ]),
    "dinner": ("Jantar", "19:00", 0.25, [
        ("120g salmão grelhado + 100g batata doce + legumes refogados", ["salmão", "batata doce", "legumes"]),
        ("Omelete de 3 ovos com espinafre e salada", ["ovos", "espinafre", "salada"]),
        ("Frango desfiado com mandioca e couve refogada", ["frango", "mandioca", "couve"]),
    ]),
}

FALLBACK_WORKOUTS: dict[str, dict] = {
    "A": {
        "name": "Treino A - Peito, Ombro e Tríceps",
        "exercises": [
            {"name": "Supino reto", "sets": 4, "reps": "8-12", "rest": "90s"},
            {"name": "Supino inclinado com halteres", "sets": 3, "reps": "10-12", "rest": "60s"},
            {"name": "Desenvolvimento militar", "sets": 3, "reps": "8-10", "rest": "90s"},
            {"name": "Elevação lateral", "sets": 3, "reps": "12-15", "rest": "45s"},
            {"name": "Tríceps pulley", "sets": 3, "reps": "12-15", "rest": "45s"},
            {"name": "Tríceps francês", "sets": 3, "reps": "10-12", "rest": "60s"},
        ],
        "duration": "60-75 minutos",
    },
    "B": {
        "name": "Treino B - Costas e Bíceps",
        "exercises": [
            {"name": "Barra fixa (ou pulley)", "sets": 4, "reps": "8-12", "rest": "90s"},
            {"name": "Remada curvada", "sets": 4, "reps": "8-10", "rest": "90s"},
            {"name": "Remada unilateral", "sets": 3, "reps": "10-12", "rest": "60s"},
            {"name": "Pulldown", "sets": 3, "reps": "12-15", "rest": "60s"},
            {"name": "Rosca direta", "sets": 4, "reps": "10-12", "rest": "60s"},
            {"name": "Rosca martelo", "sets": 3, "reps": "12-15", "rest": "45s"},
        ],
        "duration": "60-75 minutos",
    },
    "C": {
        "name": "Treino C - Pernas e Glúteos",
        "exercises": [
            {"name": "Agachamento livre", "sets": 4, "reps": "8-12", "rest": "2-3min"},
            {"name": "Leg press", "sets": 4, "reps": "12-15", "rest": "90s"},
            {"name": "Stiff", "sets": 4, "reps": "10-12", "rest": "90s"},
            {"name": "Afundo", "sets": 3, "reps": "12 cada perna", "rest": "60s"},
            {"name": "Panturrilha em pé", "sets": 4, "reps": "15-20", "rest": "45s"},
            {"name": "Panturrilha sentado", "sets": 3, "reps": "15-20", "rest": "45s"},
        ],
        "duration": "75-90 minutos",
    },
}


def user_context(user: Any) -> str:
    """Profile block appended to prompts so answers are personalised."""
    if user is None:
        return ""
    lines = ["PERFIL DO USUÁRIO:"]
    if getattr(user, "weight", None):
        lines.append(f"- Peso: {user.weight} kg")
    if getattr(user, "height", None):
        lines.append(f"- Altura: {user.height} cm")
    if getattr(user, "age", None):
        lines.append(f"- Idade: {user.age} anos")
    if getattr(user, "goal", None):
        lines.append(f"- Objetivo: {user.goal}")
    if getattr(user, "activity_level", None):
        lines.append(f"- Nível de atividade: {user.activity_level}")
    lines.append(f"- Meta diária de calorias: {user.daily_calories or 2000} kcal")
    lines.append(f"- Meta diária de proteínas: {user.daily_protein or 120}g")
    lines.append(f"- Meta diária de carboidratos: {user.daily_carbs or 250}g")
    lines.append(f"- Meta diária de gorduras: {user.daily_fat or 67}g")
    return "\n".join(lines)


def extract_json(text: str) -> Any:
    """Parse the JSON object or array in a model reply, ignoring code fences and chatter."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        raise ValueError("No JSON found in AI response")
    start = min(starts)
    end = text.rfind("}" if text[start] == "{" else "]") + 1
    return json.loads(text[start:end])


def parse_meal_description(description: str) -> list[FoodEstimate]:
    """Regex estimates for a handful of common Brazilian portions."""
    foods = []
    for pattern, name, kcal, protein, carbs, fat in MEAL_PATTERNS:
        match = pattern.search(description)
        if match:
            qty = int(match.group(1))
            foods.append(FoodEstimate(
                name=name, quantity=qty, unit="unidades",
                estimated_calories=kcal * qty, estimated_protein=protein * qty,
                estimated_carbs=carbs * qty, estimated_fat=fat * qty,
            ))
    return foods


def fallback_meal_analysis(description: str) -> MealAnalysis:
    foods = parse_meal_description(description)
    return MealAnalysis(
        foods=foods,
        total_calories=sum(f.estimated_calories for f in foods),
        confidence=0.85,
    )


def fallback_recipes(ingredients: list[str]) -> list[RecipeSuggestion]:
    have = {i.strip().lower() for i in ingredients}
    suggestions = []
    if "frango" in have and "arroz" in have:
        suggestions.append(RecipeSuggestion(
            name="Frango com Arroz",
            description="Prato nutritivo e balanceado com frango grelhado e arroz integral",
            ingredients=["frango", "arroz", "temperos"],
            estimated_calories=450, estimated_protein=35, estimated_carbs=40, estimated_fat=12,
            cooking_time=30, difficulty="easy",
        ))
    if "ovos" in have:
        suggestions.append(RecipeSuggestion(
            name="Omelete Nutritiva",
            description="Omelete rica em proteínas com vegetais",
            ingredients=["ovos", "vegetais", "queijo"],
            estimated_calories=280, estimated_protein=18, estimated_carbs=5, estimated_fat=22,
            cooking_time=10, difficulty="easy",
        ))
    return suggestions


def fallback_meal_plan(goals: MacroTotals) -> GeneratedPlan:
    """A week of Brazilian meals split 25/35/15/25 over the user's targets."""
    calories, protein = round_int(goals.calories), round_int(goals.protein)
    carbs, fat = round_int(goals.carbs), round_int(goals.fat)
    week: dict[str, dict] = {}
    for i, day in enumerate(WEEK_DAYS):
        meals = {}
        for slot, (name, time, share, menus) in MEAL_SLOTS.items():
            description, ingredients = menus[i % len(menus)]
            meals[slot] = {
                "name": name,
                "description": description,
                "time": time,
                "calories": round_int(calories * share),
                "protein": round_int(protein * share),
                "carbs": round_int(carbs * share),
                "fat": round_int(fat * share),
                "ingredients": ingredients,
            }
        week[day] = meals
    return GeneratedPlan(
        name="Plano Nutricional Personalizado",
        description=f"Plano baseado nas suas metas: {calories} kcal, {protein}g proteína diárias.",
        type="diet",
        content={"meals": week},
        daily_calories=calories, macro_carbs=carbs, macro_protein=protein, macro_fat=fat,
    )


def fallback_workout_plan() -> GeneratedPlan:
    return GeneratedPlan(
        name="Plano de Treino ABC",
        description=("Treino dividido em 3 dias focando em diferentes grupos musculares "
                     "para desenvolvimento muscular completo"),
        type="workout",
        content={"workoutType": "ABC", "workouts": json.loads(json.dumps(FALLBACK_WORKOUTS))},
    )


class AIService:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.client = anthropic.AsyncAnthropic(api_key=key) if key else None
        self.model = model or settings.AI_MODEL

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _complete(self, messages: list[dict], system: Optional[str] = None,
                        max_tokens: int = 2000, temperature: float = 0.7) -> str:
        kwargs: dict = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        response = await self.client.messages.create(**kwargs)
        return response.content[0].text.strip()

    async def chat(self, message: str, history: Optional[list[dict]] = None, profile: Any = None) -> list[str]:
        """Reply to a chat message as short bubbles."""
        if not self.enabled:
            return list(FALLBACK_REPLY)

        turns = [
            {"role": "user" if h.get("role") == "user" else "assistant", "content": h["content"]}
            for h in history or []
            if isinstance(h.get("content"), str) and h["content"]
        ]
        # The conversation must open with a user turn
        while turns and turns[0]["role"] != "user":
            turns.pop(0)
        context = user_context(profile)
        content = f"{context}\n\nPERGUNTA: {message}" if context else message
        turns.append({"role": "user", "content": content})

        try:
            text = await self._complete(turns, system=CHAT_SYSTEM_PROMPT, max_tokens=400)
        except AI_ERRORS as e:
            logger.error("AI chat failed: %s", e)
            return list(FALLBACK_REPLY)
        return split_response(text)

    async def analyze_meal(self, description: str) -> MealAnalysis:
        if self.enabled:
            try:
                text = await self._complete(
                    [{"role": "user", "content": MEAL_ANALYSIS_PROMPT.format(description=description)}],
                    temperature=0.2,
                )
                return MealAnalysis.model_validate(extract_json(text))
            except AI_ERRORS as e:
                logger.error("AI meal analysis failed: %s", e)
        return fallback_meal_analysis(description)

    async def suggest_recipes(self, ingredients: list[str]) -> list[RecipeSuggestion]:
        if self.enabled and ingredients:
            try:
                text = await self._complete(
                    [{"role": "user", "content": RECIPE_PROMPT.format(ingredients=", ".join(ingredients))}],
                )
                data = extract_json(text)
                if isinstance(data, dict):
                    data = data.get("recipes", [])
                return [RecipeSuggestion.model_validate(r) for r in data]
            except AI_ERRORS as e:
                logger.error("AI recipe suggestion failed: %s", e)
        return fallback_recipes(ingredients)

    async def generate_meal_plan(self, description: str, goals: MacroTotals) -> GeneratedPlan:
        if self.enabled:
            prompt = MEAL_PLAN_PROMPT.format(
                description=description,
                calories=round_int(goals.calories), protein=round_int(goals.protein),
                carbs=round_int(goals.carbs), fat=round_int(goals.fat),
            )
            try:
                text = await self._complete([{"role": "user", "content": prompt}],
                                            max_tokens=4000, temperature=0.1)
                data = extract_json(text)
                if not isinstance(data, dict):
                    raise ValueError("Meal plan reply is not a JSON object")
                meals = data.get("meals") or {}
                if isinstance(meals, str):
                    meals = json.loads(meals)
                plan = GeneratedPlan(
                    name=data["name"],
                    description=data.get("description", ""),
                    type="diet",
                    content={"meals": meals},
                    daily_calories=round_int(data.get("dailyCalories") or goals.calories),
                    macro_carbs=round_int(data.get("macroCarbs") or goals.carbs),
                    macro_protein=round_int(data.get("macroProtein") or goals.protein),
                    macro_fat=round_int(data.get("macroFat") or goals.fat),
                )
                logger.info("Meal plan generated: %s", plan.name)
                return plan
            except AI_ERRORS as e:
                logger.error("AI meal plan generation failed: %s", e)
        return fallback_meal_plan(goals)

    async def generate_workout_plan(self, description: str) -> GeneratedPlan:
        if self.enabled:
            try:
                text = await self._complete(
                    [{"role": "user", "content": WORKOUT_PLAN_PROMPT.format(description=description)}],
                    max_tokens=3000,
                )
                data = extract_json(text)
                if not isinstance(data, dict):
                    raise ValueError("Workout plan reply is not a JSON object")
                workouts = data["workouts"]
                if not isinstance(workouts, dict) or not workouts:
                    raise ValueError("Workout plan without workouts")
                plan = GeneratedPlan(
                    name=data["name"],
                    description=data.get("description", ""),
                    type="workout",
                    content={"workoutType": data.get("workoutType") or "".join(sorted(workouts)),
                             "workouts": workouts},
                )
                logger.info("Workout plan generated: %s", plan.name)
                return plan
            except AI_ERRORS as e:
                logger.error("AI workout plan generation failed: %s", e)
        return fallback_workout_plan()


_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """FastAPI dependency returning the shared AI service."""
    global _service
    if _service is None:
        _service = AIService()
    return _service
