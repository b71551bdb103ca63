"""
Resposta direta (caminho general).

Uma unica chamada de completion com o texto bruto do usuario. Falha vira
texto de erro formatado; o turno segue para o estado terminal normal.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from projects.assistant.llm.provider import get_model, model_label
from projects.assistant.observability.metrics import assistant_llm_errors_total
from projects.assistant.orchestrator.prompts import ANSWER_SYSTEM_PROMPT
from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.events import log_llm_call
from shared.protocol.models import Citation

logger = get_logger("orchestrator.answer")


@dataclass(frozen=True)
class DirectAnswer:
    text: str
    citation: Optional[Citation] = None
    error: Optional[str] = None


class DirectAnswerer:
    """Responde sem especialista, registrando a fonte como citation "model"."""

    def __init__(self, model_factory: Callable = get_model):
        self._model_factory = model_factory

    async def answer(self, text: str) -> DirectAnswer:
        source = model_label("answer")
        start = time.time()
        try:
            model = self._model_factory("answer")
            response = await model.ainvoke([
                SystemMessage(content=ANSWER_SYSTEM_PROMPT),
                HumanMessage(content=text),
            ])
        except Exception as e:
            assistant_llm_errors_total.labels(role="answer").inc()
            logger.error(
                "answer.llm_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return DirectAnswer(
                text=f"⚠️ Não foi possível gerar uma resposta agora ({type(e).__name__}: {e}).",
                error=str(e),
            )

        content = response.content if isinstance(response.content, str) else str(response.content)
        log_llm_call(
            prompt=text,
            response=content,
            duration_ms=(time.time() - start) * 1000,
            prompt_type="direct_answer",
            model=source,
        )
        return DirectAnswer(
            text=content,
            citation=Citation(
                label=f"Resposta gerada por {source}",
                kind="model",
                tool="orchestrator",
                note="resposta direta sem especialista",
            ),
        )
