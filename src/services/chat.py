"""Chat helpers: per-user history, reply splitting, intent detection."""
from __future__ import annotations

import re
from collections import defaultdict, deque
from typing import Optional

from config.settings import settings

MAX_PART_LENGTH = 120
DEFAULT_REPLY = "Entendi sua pergunta. Como posso ajudar?"

FALLBACK_REPLY = [
    "Desculpe, estou com dificuldades técnicas no momento.",
    "Que tal tentar novamente em alguns instantes?",
    "Posso ajudar com dicas de alimentação saudável, receitas nutritivas ou planejamento de refeições.",
]

_MARKDOWN = [
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"_([^_]+)_"), r"\1"),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"^\s*[*\-+]\s+", re.MULTILINE), ""),
    (re.compile(r"^\s*\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r">"), ""),
]

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_GENERIC = re.compile(r"^(lembre|observe|atenção|dica|importante)", re.IGNORECASE)
_OFF_TOPIC = re.compile(r"urina|fezes|sono|exercício físico", re.IGNORECASE)
_HYDRATION = re.compile(r"água|hidratação|líquido", re.IGNORECASE)

WORKOUT_INTENT = re.compile(
    r"\b(treino|exerc[ií]cio|muscula[çc][ãa]o|push\s*pull\s*legs|ppl|academia|malha[çc][ãa]o"
    r"|hipertrofia|for[çc]a|supino|agachamento|leg\s*press|barra|halter)\b",
    re.IGNORECASE,
)
DIET_INTENT = re.compile(
    r"\b(dieta|alimenta[çc][ãa]o|nutri[çc][ãa]o|cardápio|menu|refei[çc][ãa]o|comida|prote[íi]na"
    r"|carboidrato|gordura|caloria|massa\s*magra|emagre[çc]er|emagrecer|perder\s*peso|ganhar\s*peso)\b",
    re.IGNORECASE,
)
CREATE_VERB = re.compile(
    r"\b(criar|gerar|montar|fazer|desenvolver|elaborar|sugerir|preciso\s*de|quero|gostaria)\b",
    re.IGNORECASE,
)
PLAN_NOUN = re.compile(r"\b(plano|programa|rotina|cronograma)\b", re.IGNORECASE)


def strip_markdown(text: str) -> str:
    for pattern, repl in _MARKDOWN:
        text = pattern.sub(repl, text)
    return text.strip()


def _pack_sentences(text: str) -> list[str]:
    """Join sentences greedily into parts of at most MAX_PART_LENGTH chars."""
    parts: list[str] = []
    current = ""
    for sentence in _SENTENCE_BREAK.split(text):
        if current and len(current) + len(sentence) > MAX_PART_LENGTH:
            parts.append(current.strip())
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence
    if current.strip():
        parts.append(current.strip())
    return parts


def split_response(text: str) -> list[str]:
    """Turn a model reply into short chat bubbles.

    Markdown is removed, generic and off-topic paragraphs are dropped,
    long paragraphs are split on sentence boundaries. Never empty.
    """
    cleaned = strip_markdown(text)
    paragraphs = _PARAGRAPH_BREAK.split(cleaned)

    parts: list[str] = []
    if len(paragraphs) > 1:
        for paragraph in paragraphs:
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if _GENERIC.match(paragraph):
                continue
            if _OFF_TOPIC.search(paragraph) and not _HYDRATION.search(paragraph):
                continue
            if len(paragraph) <= MAX_PART_LENGTH:
                parts.append(paragraph)
            else:
                parts.extend(_pack_sentences(paragraph))
    else:
        parts = _pack_sentences(cleaned)

    parts = [p.strip() for p in parts if len(p.strip()) > 5]
    return parts or [cleaned or DEFAULT_REPLY]


def detect_intent(message: str) -> dict:
    """Which plan, if any, the message asks to create."""
    workout = bool(WORKOUT_INTENT.search(message))
    diet = bool(DIET_INTENT.search(message)) and not workout
    create = bool(CREATE_VERB.search(message)) and bool(PLAN_NOUN.search(message))
    return {"workout": workout, "diet": diet, "create_plan": create}


def plan_request_type(message: str) -> Optional[str]:
    """``"workout"`` / ``"diet"`` when the chat should create a plan, else None."""
    intent = detect_intent(message)
    if not intent["create_plan"]:
        return None
    if intent["workout"]:
        return "workout"
    if intent["diet"]:
        return "diet"
    return None


class ChatHistoryStore:
    """Recent chat turns per user, kept in process memory."""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit or settings.CHAT_HISTORY_LIMIT
        self._history: dict[str, deque] = defaultdict(lambda: deque(maxlen=self.limit))

    def get(self, user_id: str) -> list[dict]:
        return list(self._history.get(user_id, ()))

    def append(self, user_id: str, role: str, content: str) -> None:
        self._history[user_id].append({"role": role, "content": content})

    def add_exchange(self, user_id: str, message: str, reply: list[str]) -> None:
        self.append(user_id, "user", message)
        self.append(user_id, "assistant", "\n\n".join(reply))

    def clear(self, user_id: Optional[str] = None) -> None:
        if user_id is None:
            self._history.clear()
        else:
            self._history.pop(user_id, None)


chat_history = ChatHistoryStore()


def plan_created_reply(plan) -> list[str]:
    """Chat bubbles announcing a plan the assistant just created and activated."""
    if plan.type == "workout":
        return [
            f"Plano de Treino Criado com Sucesso! {plan.name}.",
            plan.description or "Seu novo treino está pronto.",
            "Seu plano de treino personalizado foi criado e ativado automaticamente!",
            "Você pode visualizá-lo na seção Meu Plano para ver todos os exercícios detalhados.",
            "Dica: Consulte sempre um profissional de educação física antes de iniciar qualquer rotina de exercícios.",
        ]
    return [
        f"Plano Alimentar Criado com Sucesso! {plan.name}.",
        plan.description or "Seu novo plano alimentar está pronto.",
        f"Metas Diárias: Calorias {plan.daily_calories} kcal.",
        f"Proteínas {plan.macro_protein}g, Carboidratos {plan.macro_carbs}g, Gorduras {plan.macro_fat}g.",
        "Seu plano alimentar personalizado foi criado e ativado!",
        "Visite Meu Plano para ver todas as refeições detalhadas.",
        "Dica: Sempre consulte um nutricionista para orientações personalizadas.",
    ]
