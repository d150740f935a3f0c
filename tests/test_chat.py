"""Tests for chat reply splitting, intent detection and history."""
from src.services.chat import (
    DEFAULT_REPLY, MAX_PART_LENGTH, ChatHistoryStore, detect_intent, plan_request_type,
    split_response, strip_markdown,
)


class TestSplitResponse:
    def test_strips_markdown(self):
        assert strip_markdown("**Olá!** Tudo _bem_? `ok` ~~não~~") == "Olá! Tudo bem? ok não"
        assert strip_markdown("## Dicas\n- Arroz\n1. Feijão\n> citação") == "Dicas\nArroz\nFeijão\n citação"

    def test_short_reply_single_part(self):
        assert split_response("**Olá!** Tudo bem com você?") == ["Olá! Tudo bem com você?"]

    def test_long_paragraph_split_on_sentences(self):
        sentence = "Frango grelhado é uma ótima fonte de proteína magra."
        parts = split_response(" ".join([sentence] * 4))
        assert len(parts) == 2
        assert all(len(p) <= MAX_PART_LENGTH for p in parts)
        assert parts[0].endswith(".")

    def test_paragraphs_kept(self):
        text = "Coma mais vegetais no almoço.\n\nPrefira arroz integral ao branco."
        assert split_response(text) == ["Coma mais vegetais no almoço.", "Prefira arroz integral ao branco."]

    def test_generic_paragraph_dropped(self):
        text = "Coma mais proteínas ao longo do dia.\n\nLembre-se de consultar um médico."
        assert split_response(text) == ["Coma mais proteínas ao longo do dia."]

    def test_off_topic_paragraph_dropped(self):
        text = "Inclua frutas no café.\n\nO sono também influencia seus resultados."
        assert split_response(text) == ["Inclua frutas no café."]

    def test_hydration_kept_even_with_off_topic_words(self):
        text = "Inclua frutas no café.\n\nBeba água antes do exercício físico."
        assert split_response(text) == ["Inclua frutas no café.", "Beba água antes do exercício físico."]

    def test_tiny_parts_dropped(self):
        text = "Ok.\n\nPrefira alimentos integrais."
        assert split_response(text) == ["Prefira alimentos integrais."]

    def test_never_empty(self):
        assert split_response("") == [DEFAULT_REPLY]
        assert split_response("Sim") == ["Sim"]


class TestIntent:
    def test_workout_plan(self):
        msg = "Quero criar um plano de treino para hipertrofia"
        assert detect_intent(msg) == {"workout": True, "diet": False, "create_plan": True}
        assert plan_request_type(msg) == "workout"

    def test_diet_plan(self):
        assert plan_request_type("Pode montar um plano de dieta para emagrecer?") == "diet"

    def test_workout_wins_over_diet(self):
        assert plan_request_type("Quero um plano de treino e dieta") == "workout"

    def test_question_is_not_a_request(self):
        msg = "Quanta proteína tem na minha dieta?"
        assert detect_intent(msg)["diet"] is True
        assert plan_request_type(msg) is None

    def test_plan_without_domain(self):
        assert plan_request_type("Quero criar um cronograma de estudos") is None


class TestChatHistory:
    def test_capped_per_user(self):
        store = ChatHistoryStore(limit=4)
        for i in range(3):
            store.add_exchange("u1", f"pergunta {i}", [f"resposta {i}"])
        history = store.get("u1")
        assert len(history) == 4
        assert history[0] == {"role": "user", "content": "pergunta 1"}
        assert history[-1] == {"role": "assistant", "content": "resposta 2"}
        assert store.get("u2") == []

    def test_reply_parts_joined(self):
        store = ChatHistoryStore(limit=10)
        store.add_exchange("u1", "oi", ["parte 1", "parte 2"])
        assert store.get("u1")[1]["content"] == "parte 1\n\nparte 2"

    def test_clear(self):
        store = ChatHistoryStore(limit=10)
        store.append("u1", "user", "oi")
        store.append("u2", "user", "olá")
        store.clear("u1")
        assert store.get("u1") == []
        assert len(store.get("u2")) == 1
        store.clear()
        assert store.get("u2") == []
