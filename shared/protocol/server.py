"""
Servidor generico do protocolo de agentes.

Rotas (montadas por orquestrador e especialistas):
  GET  /.well-known/agent.json   descritor de capacidades
  POST /message/stream           turno com SSE stream
  POST /tasks/{task_id}/cancel   pedido de cancelamento cooperativo
  GET  /health                   healthcheck

Cada servico registra em app.state:
  - agent_card: AgentCard
  - executor: AgentExecutor
  - sse_keepalive_interval (opcional, segundos)
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from shared.infrastructure.tracing.context import bind_task
from shared.observability.metrics import (
    agent_sse_disconnects_total,
    agent_sse_stream_duration_seconds,
    agent_sse_events_total,
    agent_sse_streams_active,
)
from shared.protocol.channel import EventChannel
from shared.protocol.models import (
    AgentCard,
    Message,
    MessageSendConfiguration,
    MessageSendParams,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    new_id,
    text_message,
)
from shared.protocol.stream import KEEPALIVE, event_frame

logger = structlog.get_logger()

DEFAULT_KEEPALIVE_INTERVAL = 15


@dataclass
class RequestContext:
    """Dados de um turno recebido.

    task_id/context_id vem da mensagem quando o chamador continua uma task
    existente; caso contrario sao gerados aqui.
    """

    message: Message
    task_id: str
    context_id: str
    configuration: MessageSendConfiguration = field(default_factory=MessageSendConfiguration)

    @classmethod
    def from_params(cls, params: MessageSendParams) -> "RequestContext":
        message = params.message
        return cls(
            message=message,
            task_id=message.task_id or new_id(),
            context_id=message.context_id or new_id(),
            configuration=params.configuration,
        )

    @property
    def user_text(self) -> str:
        return self.message.text


class AgentExecutor(ABC):
    """Contrato de execucao de um agente (orquestrador ou especialista)."""

    @abstractmethod
    async def execute(self, context: RequestContext, channel: EventChannel) -> None:
        """Processa um turno publicando eventos no canal.

        O servidor chama channel.finished() ao final; o executor nao precisa.
        """

    @abstractmethod
    async def cancel(self, task_id: str) -> None:
        """Registra pedido de cancelamento. Deve retornar imediatamente."""

    def health_details(self) -> dict:
        return {}


def get_agent_card(request: Request) -> AgentCard:
    return request.app.state.agent_card


def get_executor(request: Request) -> AgentExecutor:
    return request.app.state.executor


def failure_event(context: RequestContext, text: str) -> TaskStatusUpdateEvent:
    """Evento terminal de falha com os ids do turno."""
    return TaskStatusUpdateEvent(
        task_id=context.task_id,
        context_id=context.context_id,
        status=TaskStatus(
            state=TaskState.FAILED,
            message=text_message(text, task_id=context.task_id, context_id=context.context_id),
        ),
        final=True,
    )


router = APIRouter()


@router.get("/.well-known/agent.json")
async def agent_card(card: AgentCard = Depends(get_agent_card)):
    """Descritor de capacidades do agente."""
    return card.to_wire()


@router.post("/message/stream")
async def message_stream(
    request: Request,
    params: MessageSendParams,
    card: AgentCard = Depends(get_agent_card),
    executor: AgentExecutor = Depends(get_executor),
):
    """Executa um turno e devolve os eventos como SSE stream."""
    context = RequestContext.from_params(params)
    service = card.name
    keepalive_interval = getattr(
        request.app.state, "sse_keepalive_interval", DEFAULT_KEEPALIVE_INTERVAL,
    )
    channel = EventChannel(task_id=context.task_id)

    async def run_executor():
        """Roda o executor; qualquer erro vira evento terminal de falha."""
        bind_task(context.task_id)
        try:
            await executor.execute(context, channel)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "executor.unhandled_error",
                task_id=context.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            if not channel.closed:
                await channel.publish(failure_event(context, f"⚠️ Falha ao processar: {e}"))
        finally:
            await channel.finished()

    async def event_generator():
        agent_sse_streams_active.labels(service=service).inc()
        stream_start = time.monotonic()
        executor_task = asyncio.create_task(run_executor())

        try:
            while True:
                if await request.is_disconnected():
                    agent_sse_disconnects_total.labels(service=service).inc()
                    executor_task.cancel()
                    break

                try:
                    event = await asyncio.wait_for(
                        channel.get(), timeout=keepalive_interval,
                    )
                except asyncio.TimeoutError:
                    yield KEEPALIVE
                    continue

                if event is None:  # Sentinel
                    break

                agent_sse_events_total.labels(service=service, kind=event.kind).inc()
                yield event_frame(event)
        finally:
            agent_sse_streams_active.labels(service=service).dec()
            agent_sse_stream_duration_seconds.labels(service=service).observe(
                time.monotonic() - stream_start
            )
            if not executor_task.done():
                executor_task.cancel()
                try:
                    await executor_task
                except asyncio.CancelledError:
                    pass

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/tasks/{task_id}/cancel", status_code=202)
async def cancel_task(
    task_id: str,
    executor: AgentExecutor = Depends(get_executor),
):
    """Pedido de cancelamento cooperativo. Nao interrompe trabalho em andamento."""
    await executor.cancel(task_id)
    logger.info("task.cancel_requested", task_id=task_id)
    return {"taskId": task_id, "status": "cancel-requested"}


@router.get("/health")
async def health(
    card: AgentCard = Depends(get_agent_card),
    executor: AgentExecutor = Depends(get_executor),
):
    """Healthcheck do servico."""
    return {
        "status": "healthy",
        "service": card.name,
        "version": card.version,
        **executor.health_details(),
    }
