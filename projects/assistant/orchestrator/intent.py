"""Roteador de intent do orquestrador.

Decide se o turno vai para um especialista (weather, calculator,
structured-query) ou para resposta direta (general).

Ordem de decisao (primeiro match vence):
  1. Regras deterministicas -> structured-query
     - palavras-chave de dados (chart/graph/csv/export/visualize/plot)
     - literal de query explicito ("query {...}", "{ sites {...} }")
     - anafora ("this", "isso") quando o turno anterior usou dados estruturados
  2. Uma chamada ao classificador (temperature 0) com memo
     {ultimo especialista, ultimas 3 falas}. Falha ou rotulo invalido -> general.

O classificador nunca sobrepoe um sinal estrutural inequivoco.
"""
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from projects.assistant.llm.provider import get_model, model_label
from projects.assistant.memory.conversation import MemorySnapshot
from projects.assistant.observability.metrics import assistant_intents_total, assistant_llm_errors_total
from projects.assistant.orchestrator.prompts import (
    CLASSIFIER_SYSTEM_PROMPT,
    INTENT_LABELS,
    build_classifier_prompt,
)
from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.decorators import log_span
from shared.infrastructure.tracing.events import log_intent_detected, log_llm_call

logger = get_logger("orchestrator.intent")

GENERAL = "general"
STRUCTURED = "structured-query"

# Palavras-chave de dados estruturados (regex case-insensitive)
STRUCTURED_PATTERNS = [
    r"\bchart",
    r"\bgraph",
    r"\bcsv\b",
    r"\bexport",
    r"\bvisuali[sz]",
    r"\bplot",
    r"\bgr[áa]fico",
    r"\bexporta",
]

QUERY_LITERAL = re.compile(r"^\s*(?:(?:query|mutation)\b[\w\s(),:$!=\"]*)?\{", re.IGNORECASE)

ANAPHORA = re.compile(r"\b(this|isso|isto)\b", re.IGNORECASE)


@dataclass(frozen=True)
class Intent:
    label: str
    source: str
    reasoning: str = ""

    @property
    def delegates(self) -> bool:
        return self.label != GENERAL


def match_rules(text: str, memory: MemorySnapshot) -> Optional[Intent]:
    """Aplica as regras deterministicas. Retorna None se nenhuma casar."""
    if QUERY_LITERAL.search(text):
        return Intent(STRUCTURED, "rule", "literal de query")

    lowered = text.lower()
    for pattern in STRUCTURED_PATTERNS:
        if re.search(pattern, lowered):
            return Intent(STRUCTURED, "rule", f"palavra-chave: {pattern}")

    if memory.used_structured and ANAPHORA.search(text):
        return Intent(STRUCTURED, "rule", "anafora apos consulta estruturada")

    return None


def normalize_label(raw: str) -> Optional[str]:
    """Extrai o rotulo da resposta do classificador; None se invalido."""
    label = raw.strip().strip("`'\".:;!").strip().lower()
    return label if label in INTENT_LABELS else None


class IntentRouter:
    """Classificador hibrido: regras primeiro, LLM depois."""

    def __init__(
        self,
        model_factory: Callable = get_model,
        prompt_utterances: int = 3,
    ):
        self._model_factory = model_factory
        self.prompt_utterances = prompt_utterances

    @log_span("intent_classification", log_args=False)
    async def classify(self, text: str, memory: MemorySnapshot) -> Intent:
        intent = match_rules(text, memory)
        if intent is None:
            intent = await self._classify_with_llm(text, memory)

        assistant_intents_total.labels(intent=intent.label, source=intent.source).inc()
        log_intent_detected(
            intent=intent.label,
            source=intent.source,
            reasoning=intent.reasoning,
        )
        return intent

    async def _classify_with_llm(self, text: str, memory: MemorySnapshot) -> Intent:
        prompt = build_classifier_prompt(
            text,
            memory.last_specialist,
            memory.recent(self.prompt_utterances),
        )
        start = time.time()
        try:
            model = self._model_factory("classifier")
            response = await model.ainvoke([
                SystemMessage(content=CLASSIFIER_SYSTEM_PROMPT),
                HumanMessage(content=prompt),
            ])
        except Exception as e:
            assistant_llm_errors_total.labels(role="classifier").inc()
            logger.warning(
                "intent.classifier_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return Intent(GENERAL, "fallback", f"classificador indisponivel: {type(e).__name__}")

        raw = response.content if isinstance(response.content, str) else str(response.content)
        log_llm_call(
            prompt=prompt,
            response=raw,
            duration_ms=(time.time() - start) * 1000,
            prompt_type="intent_classification",
            model=model_label("classifier"),
        )

        label = normalize_label(raw)
        if label is None:
            return Intent(GENERAL, "fallback", f"rotulo invalido: {raw[:40]}")
        return Intent(label, "llm", "classificador")
