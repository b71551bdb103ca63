"""
Cliente HTTP do protocolo de agentes.

Funcoes:
  - init_agent_http_client(): cria client persistente (chamado no lifespan)
  - close_agent_http_client(): fecha client (chamado no shutdown)

AgentClient: handle para um agente remoto (descritor, stream, cancelamento).
Erros de rede/HTTP viram SpecialistUnavailableException; corpo fora do
contrato vira SpecialistProtocolException. Nenhuma chamada faz retry.
"""

import json
from typing import Any, AsyncIterator, Optional

import httpx
from pydantic import ValidationError

from shared.core.exceptions import SpecialistProtocolException, SpecialistUnavailableException
from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.context import trace_headers
from shared.observability.metrics import agent_client_requests_total
from shared.observability.tracing import get_tracer
from shared.protocol.models import AgentCard, MessageSendParams, parse_event
from shared.protocol.stream import iter_sse_data

logger = get_logger(__name__)
tracer = get_tracer()

DEFAULT_DESCRIPTOR_PATH = "/.well-known/agent.json"

# Client HTTP persistente, inicializado no lifespan da app.
_agent_http_client: httpx.AsyncClient | None = None


def init_agent_http_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Cria o client HTTP persistente. Chamado no lifespan da app."""
    global _agent_http_client
    _agent_http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    )
    return _agent_http_client


async def close_agent_http_client():
    """Fecha o client no shutdown. Chamado no lifespan da app."""
    global _agent_http_client
    if _agent_http_client:
        await _agent_http_client.aclose()
        _agent_http_client = None


class AgentClient:
    """Handle assincrono para um agente remoto."""

    def __init__(self, address: str, http_client: httpx.AsyncClient):
        self.address = address.rstrip("/")
        self._http = http_client

    def _url(self, path: str) -> str:
        return f"{self.address}/{path.lstrip('/')}"

    def _unavailable(self, operation: str, error: str) -> SpecialistUnavailableException:
        agent_client_requests_total.labels(operation=operation, outcome="unavailable").inc()
        return SpecialistUnavailableException(self.address, error)

    async def fetch_card(
        self,
        descriptor_path: str = DEFAULT_DESCRIPTOR_PATH,
        timeout: Optional[float] = None,
    ) -> AgentCard:
        """Busca e valida o descritor de capacidades."""
        kwargs: dict[str, Any] = {"headers": trace_headers()}
        if timeout is not None:
            kwargs["timeout"] = timeout

        with tracer.start_as_current_span("agent.fetch_card", attributes={"agent.address": self.address}):
            try:
                response = await self._http.get(self._url(descriptor_path), **kwargs)
                response.raise_for_status()
            except httpx.TimeoutException:
                raise self._unavailable("fetch_card", "timeout")
            except httpx.HTTPStatusError as e:
                raise self._unavailable("fetch_card", f"HTTP {e.response.status_code}")
            except httpx.HTTPError as e:
                raise self._unavailable("fetch_card", f"{type(e).__name__}: {e}")

            try:
                card = AgentCard.model_validate(response.json())
            except (json.JSONDecodeError, ValueError, ValidationError) as e:
                agent_client_requests_total.labels(operation="fetch_card", outcome="invalid").inc()
                raise SpecialistProtocolException(self.address, str(e))

        agent_client_requests_total.labels(operation="fetch_card", outcome="ok").inc()
        # Enderecos configurados prevalecem sobre a url anunciada no card
        if not card.url:
            card = card.model_copy(update={"url": self.address})
        return card

    async def send_message_stream(
        self,
        params: MessageSendParams,
        timeout: Optional[httpx.Timeout] = None,
    ) -> AsyncIterator[Any]:
        """Abre POST /message/stream e devolve eventos validados em ordem.

        Eventos fora do contrato sao descartados (com log) sem abortar.
        """
        headers = {"Accept": "text/event-stream", **trace_headers()}
        kwargs: dict[str, Any] = {"json": params.to_wire(), "headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout

        # Nao vira span corrente: o gerador fica suspenso entre eventos
        with tracer.start_span(
            "agent.message_stream",
            attributes={"agent.address": self.address},
            record_exception=False,
            set_status_on_exception=False,
        ):
            try:
                async with self._http.stream("POST", self._url("/message/stream"), **kwargs) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        raise self._unavailable("message_stream", f"HTTP {response.status_code}")
                    agent_client_requests_total.labels(operation="message_stream", outcome="ok").inc()
                    async for payload in iter_sse_data(response.aiter_lines()):
                        event = parse_event(payload, source=self.address)
                        if event is not None:
                            yield event
            except httpx.TimeoutException:
                raise self._unavailable("message_stream", "timeout")
            except httpx.HTTPError as e:
                raise self._unavailable("message_stream", f"{type(e).__name__}: {e}")

    async def cancel_task(self, task_id: str) -> None:
        """Repassa pedido de cancelamento. Falhas sao apenas logadas."""
        try:
            response = await self._http.post(
                self._url(f"/tasks/{task_id}/cancel"), headers=trace_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            agent_client_requests_total.labels(operation="cancel", outcome="unavailable").inc()
            logger.warning(
                "agent_client.cancel_failed",
                address=self.address,
                task_id=task_id,
                error=str(e),
            )
            return
        agent_client_requests_total.labels(operation="cancel", outcome="ok").inc()
