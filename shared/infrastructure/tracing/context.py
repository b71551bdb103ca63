"""
Contexto de trace em contextvars.

  - trace_id: uma request HTTP (propagado entre processos via X-Trace-ID)
  - span_id / parent_span_id: operacao atual (descoberta, classificacao, delegacao)
  - task_id: task do protocolo em processamento (vinculado ao structlog)

O turno roda em uma task asyncio criada pelo servidor do protocolo, que herda
uma copia do contexto da request: trace_id e task_id aparecem em todos os
eventos de log do turno, inclusive nos emitidos durante a delegacao.
"""
import contextvars
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import structlog

TRACE_HEADER = "X-Trace-ID"

trace_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("trace_id", default=None)
span_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("span_id", default=None)
parent_span_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("parent_span_id", default=None)


def generate_trace_id() -> str:
    return str(uuid.uuid4())


def generate_span_id() -> str:
    """UUID4 curto (8 chars)."""
    return uuid.uuid4().hex[:8]


def set_trace_context(
    trace_id: Optional[str] = None,
    span_id: Optional[str] = None,
    parent_span_id: Optional[str] = None
) -> None:
    """Define os campos informados; None mantem o valor atual."""
    if trace_id is not None:
        trace_id_var.set(trace_id)
    if span_id is not None:
        span_id_var.set(span_id)
    if parent_span_id is not None:
        parent_span_id_var.set(parent_span_id)


def get_trace_context() -> Dict[str, Optional[str]]:
    """Campos de trace para incluir nos eventos de log."""
    return {
        "trace_id": trace_id_var.get(),
        "span_id": span_id_var.get(),
        "parent_span_id": parent_span_id_var.get(),
    }


@contextmanager
def child_span() -> Iterator[str]:
    """Abre um span filho do atual e restaura o anterior na saida."""
    parent = span_id_var.get()
    span_id = generate_span_id()
    span_token = span_id_var.set(span_id)
    parent_token = parent_span_id_var.set(parent)
    try:
        yield span_id
    finally:
        parent_span_id_var.reset(parent_token)
        span_id_var.reset(span_token)


def bind_task(task_id: str) -> None:
    """Associa a task do protocolo aos logs do turno atual (structlog contextvars)."""
    structlog.contextvars.bind_contextvars(task_id=task_id)


def trace_headers() -> Dict[str, str]:
    """Headers para propagar o trace atual em chamadas HTTP de saida."""
    trace_id = trace_id_var.get()
    return {TRACE_HEADER: trace_id} if trace_id else {}
