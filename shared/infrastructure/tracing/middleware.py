"""
Middleware ASGI de trace.

  - le X-Trace-ID do chamador (orquestrador -> especialista) ou gera um novo
  - devolve X-Trace-ID no header da resposta
  - loga request_received e response_sent; em /message/stream o
    response_sent sai quando o ultimo frame SSE e enviado, com a duracao
    do turno inteiro
"""
import time

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shared.infrastructure.tracing.context import (
    TRACE_HEADER,
    generate_span_id,
    generate_trace_id,
    set_trace_context,
)
from shared.infrastructure.tracing.events import (
    log_request_failed,
    log_request_received,
    log_response_sent,
)

EXCLUDED_PATHS = frozenset({"/health", "/metrics", "/.well-known/agent.json"})


class TraceMiddleware:
    """Propaga trace_id e loga o ciclo de cada request HTTP."""

    def __init__(self, app: ASGIApp, excluded_paths: frozenset[str] = EXCLUDED_PATHS):
        self.app = app
        self.excluded_paths = excluded_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.excluded_paths:
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        trace_id = headers.get(TRACE_HEADER) or generate_trace_id()
        set_trace_context(trace_id=trace_id, span_id=generate_span_id())

        client = scope.get("client")
        log_request_received(
            path=scope["path"],
            method=scope["method"],
            ip=client[0] if client else None,
            user_agent=headers.get("user-agent"),
        )

        start_time = time.time()
        status_code = 500

        async def send_with_trace(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message).append(TRACE_HEADER, trace_id)
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                log_response_sent(
                    status_code=status_code,
                    duration_ms=(time.time() - start_time) * 1000,
                )

        try:
            await self.app(scope, receive, send_with_trace)
        except Exception as e:
            log_request_failed(
                error_type=type(e).__name__,
                error_message=str(e),
                duration_ms=(time.time() - start_time) * 1000,
            )
            raise
