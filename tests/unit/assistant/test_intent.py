"""
Testes do roteador de intent.

Testa:
  - regras deterministicas (palavras-chave, literal de query, anafora)
  - regras vencem o classificador mesmo quando ele discorda
  - classificador: rotulo valido, rotulo invalido, falha -> general
  - memo enviado ao classificador
"""

import pytest

from projects.assistant.memory.conversation import MemorySnapshot
from projects.assistant.orchestrator.intent import (
    GENERAL,
    STRUCTURED,
    IntentRouter,
    match_rules,
    normalize_label,
)


@pytest.mark.parametrize("text", [
    "Show me a chart of signups",
    "export the results as CSV",
    "Can you visualize this data?",
    "plot the values per week",
    "faz um gráfico com isso",
])
def test_structured_keywords(text):
    intent = match_rules(text, MemorySnapshot())

    assert intent.label == STRUCTURED
    assert intent.source == "rule"


@pytest.mark.parametrize("text", [
    "query { sites { id } }",
    "  { sites { name } }",
    "query GetSites($limit: Int!) { sites(limit: $limit) { id } }",
    "mutation { addSite(name: \"x\") { id } }",
])
def test_explicit_query_literal(text):
    assert match_rules(text, MemorySnapshot()).label == STRUCTURED


@pytest.mark.parametrize("text", [
    "Query the weather in Paris",
    "query about the exchange rate",
    "Mutation rates in biology",
])
def test_sentence_starting_with_query_word_is_not_a_literal(text):
    assert match_rules(text, MemorySnapshot()) is None


def test_anaphora_only_after_structured_turn():
    text = "now sort this by date"

    assert match_rules(text, MemorySnapshot()) is None
    assert match_rules(text, MemorySnapshot(used_structured=True)).label == STRUCTURED


def test_plain_text_has_no_rule():
    assert match_rules("What is 2+2?", MemorySnapshot()) is None


@pytest.mark.parametrize("raw,expected", [
    ("calculator", "calculator"),
    ("  Weather.\n", "weather"),
    ("`structured-query`", "structured-query"),
    ("general", "general"),
    ("math", None),
    ("", None),
])
def test_normalize_label(raw, expected):
    assert normalize_label(raw) == expected


@pytest.mark.asyncio
async def test_rules_override_misleading_classifier(fake_model_factory, chat_model):
    classifier = chat_model("weather")
    router = IntentRouter(model_factory=fake_model_factory(classifier=classifier))

    intent = await router.classify("export the signups as csv", MemorySnapshot())

    assert intent.label == STRUCTURED
    assert intent.source == "rule"
    assert classifier.calls == []


@pytest.mark.asyncio
async def test_classifier_label_is_used(fake_model_factory, chat_model):
    router = IntentRouter(model_factory=fake_model_factory(classifier=chat_model("calculator")))

    intent = await router.classify("Calculate 25 * 4 + 16", MemorySnapshot())

    assert intent.label == "calculator"
    assert intent.source == "llm"
    assert intent.delegates


@pytest.mark.asyncio
async def test_invalid_label_falls_back_to_general(fake_model_factory, chat_model):
    router = IntentRouter(model_factory=fake_model_factory(classifier=chat_model("I think it is math")))

    intent = await router.classify("quanto e 2+2", MemorySnapshot())

    assert intent.label == GENERAL
    assert intent.source == "fallback"
    assert not intent.delegates


@pytest.mark.asyncio
async def test_classifier_error_falls_back_to_general(fake_model_factory, chat_model):
    router = IntentRouter(model_factory=fake_model_factory(
        classifier=chat_model(error=TimeoutError("llm lento")),
    ))

    intent = await router.classify("Will it rain in Paris?", MemorySnapshot())

    assert intent.label == GENERAL
    assert intent.source == "fallback"
    assert "TimeoutError" in intent.reasoning


@pytest.mark.asyncio
async def test_classifier_receives_memory_memo(fake_model_factory, chat_model):
    classifier = chat_model("calculator")
    router = IntentRouter(model_factory=fake_model_factory(classifier=classifier), prompt_utterances=2)
    memory = MemorySnapshot(
        utterances=("oi", "quanto e 2+2", "e 3+3?"),
        last_specialist="Calculator Agent",
    )

    await router.classify("e agora 4+4?", memory)

    system, human = classifier.calls[0]
    assert "calculator" in system.content
    assert "Calculator Agent" in human.content
    assert "quanto e 2+2 | e 3+3?" in human.content
    assert "oi |" not in human.content
    assert "e agora 4+4?" in human.content
