"""
Testes do trace entre processos.

Testa:
  - X-Trace-ID recebido e reutilizado; ausente, e gerado
  - X-Trace-ID devolvido na resposta (inclusive em SSE)
  - response_sent logado uma vez, apos o ultimo frame do stream
  - rotas de health/metrics/descritor fora do middleware
  - child_span encadeia parent_span_id e restaura o span anterior
  - log_span propaga a excecao da funcao decorada
  - segredos mascarados nos payloads logados
"""

import pytest
from fastapi import FastAPI
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

from shared.infrastructure.logging.structlog_config import drop_empty_trace_fields
from shared.infrastructure.tracing import middleware as trace_middleware
from shared.infrastructure.tracing.context import (
    TRACE_HEADER,
    child_span,
    get_trace_context,
    set_trace_context,
    trace_headers,
)
from shared.infrastructure.tracing.decorators import log_span
from shared.infrastructure.tracing.events import REDACTED, sanitize_for_log


@pytest.fixture
def app():
    app = FastAPI()
    app.add_middleware(trace_middleware.TraceMiddleware)

    @app.get("/trace")
    async def current_trace():
        return {"trace_id": get_trace_context()["trace_id"]}

    @app.get("/stream")
    async def stream():
        async def frames():
            yield b"data: 1\n\n"
            yield b"data: 2\n\n"
        return StreamingResponse(frames(), media_type="text/event-stream")

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/boom")
    async def boom():
        raise ValueError("falhou")

    return app


@pytest.fixture
def logged(monkeypatch):
    calls = {"received": [], "sent": [], "failed": []}
    monkeypatch.setattr(trace_middleware, "log_request_received", lambda **kw: calls["received"].append(kw))
    monkeypatch.setattr(trace_middleware, "log_response_sent", lambda **kw: calls["sent"].append(kw))
    monkeypatch.setattr(trace_middleware, "log_request_failed", lambda **kw: calls["failed"].append(kw))
    return calls


def test_reuses_incoming_trace_id(app, logged):
    response = TestClient(app).get("/trace", headers={TRACE_HEADER: "trace-do-orquestrador"})

    assert response.json()["trace_id"] == "trace-do-orquestrador"
    assert response.headers[TRACE_HEADER] == "trace-do-orquestrador"


def test_generates_trace_id_when_missing(app, logged):
    response = TestClient(app).get("/trace")

    trace_id = response.json()["trace_id"]
    assert len(trace_id) == 36
    assert response.headers[TRACE_HEADER] == trace_id


def test_stream_logs_response_once_after_last_frame(app, logged):
    response = TestClient(app).get("/stream")

    assert response.text == "data: 1\n\ndata: 2\n\n"
    assert TRACE_HEADER in response.headers
    assert len(logged["received"]) == 1
    assert len(logged["sent"]) == 1
    assert logged["sent"][0]["status_code"] == 200


def test_excluded_paths_skip_middleware(app, logged):
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert TRACE_HEADER not in response.headers
    assert logged["received"] == []


def test_unhandled_error_is_logged_and_reraised(app, logged):
    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    assert logged["failed"][0]["error_type"] == "ValueError"


def test_child_span_chains_and_restores():
    set_trace_context(trace_id="t-1", span_id="raiz", parent_span_id="nenhum")

    with child_span() as span_id:
        inner = get_trace_context()
        assert inner["span_id"] == span_id
        assert inner["parent_span_id"] == "raiz"

    outer = get_trace_context()
    assert outer["span_id"] == "raiz"
    assert outer["parent_span_id"] == "nenhum"


def test_trace_headers_follow_current_trace():
    set_trace_context(trace_id="t-propagado")
    assert trace_headers() == {TRACE_HEADER: "t-propagado"}


@pytest.mark.asyncio
async def test_log_span_reraises_and_restores_span():
    set_trace_context(span_id="antes")

    @log_span("teste", log_args=False)
    async def explode():
        raise RuntimeError("x")

    with pytest.raises(RuntimeError):
        await explode()
    assert get_trace_context()["span_id"] == "antes"


def test_log_span_wraps_sync_functions():
    @log_span("soma")
    def add(a, b):
        return a + b

    assert add(a=2, b=3) == 5


def test_drop_empty_trace_fields():
    event = {"event": "x", "trace_id": None, "span_id": "s1", "task_id": None}

    assert drop_empty_trace_fields(None, "info", event) == {"event": "x", "span_id": "s1", "task_id": None}


def test_sanitize_masks_secrets_and_shortens_text():
    payload = {"headers": {"Authorization": "Bearer x"}, "parts": ["a" * 10], "apiKey": "k"}

    cleaned = sanitize_for_log(payload, max_chars=4)

    assert cleaned["headers"]["Authorization"] == REDACTED
    assert cleaned["apiKey"] == REDACTED
    assert cleaned["parts"] == ["aaaa...[truncated]"]
