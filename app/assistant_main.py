"""
Assistant Orchestrator - Entry point do orquestrador de agentes.

Processo FastAPI que recebe pedidos em linguagem natural, classifica o intent
e delega para especialistas descobertos via /.well-known/agent.json,
repassando o progresso como SSE sob uma unica identidade de task.
Porta padrao: 3000.
"""

import os
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.infrastructure.config.settings import settings
from shared.infrastructure.logging.structlog_config import setup_logging
from shared.infrastructure.tracing.middleware import TraceMiddleware
from shared.observability import configure_observability, shutdown_tracing
from shared.protocol.client import init_agent_http_client, close_agent_http_client
from shared.protocol.server import router as protocol_router
from projects.assistant.card import build_assistant_card
from projects.assistant.config import assistant_settings
from projects.assistant.service import build_orchestrator


setup_logging(settings.log_level, service_name="assistant-orchestrator")
logger = structlog.get_logger(__name__)


def _assert_single_worker():
    """Guardrail: impede startup se detectar multi-worker.

    Ledger, memoria de conversa e pontes HITL vivem em memoria do processo.
    Com 2+ workers, a resposta a um input-required pode cair em outro worker.
    """
    workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
    if workers > 1:
        raise RuntimeError(
            f"WEB_CONCURRENCY={workers} detectado. O orquestrador requer --workers 1."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia o ciclo de vida do orquestrador.

    Startup:
      - Valida single-worker
      - Cria client HTTP persistente para os especialistas
      - Dispara a descoberta de especialistas em background (barreira one-shot)
    """
    _assert_single_worker()

    logger.info(
        "Iniciando Assistant Orchestrator",
        version=assistant_settings.agent_version,
        environment=settings.environment,
        specialists=assistant_settings.specialist_urls,
    )

    http_client = init_agent_http_client(timeout=assistant_settings.delegation_timeout)
    executor = build_orchestrator(http_client)
    executor.registry.start()

    app.state.agent_card = build_assistant_card()
    app.state.executor = executor
    app.state.sse_keepalive_interval = assistant_settings.sse_keepalive_interval

    logger.info("Assistant Orchestrator inicializado com sucesso")

    yield

    logger.info("Encerrando Assistant Orchestrator")
    await close_agent_http_client()
    shutdown_tracing()


app = FastAPI(
    title="Assistant Orchestrator",
    description="""
    Orquestrador multi-agente.

    ## Funcionalidades

    * **Stream**: `POST /message/stream` devolve eventos `task`, `status-update`
      e `artifact-update` via SSE
    * **Delegacao**: calculadora, clima e consultas estruturadas
    * **HITL**: especialistas podem pausar com `input-required` e retomar
      na proxima mensagem da mesma task
    * **Cancelamento**: `POST /tasks/{task_id}/cancel` (cooperativo)
    """,
    version=assistant_settings.agent_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

configure_observability(app, "assistant-orchestrator", assistant_settings.agent_version)

app.add_middleware(TraceMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(protocol_router)


@app.get("/", tags=["Root"])
async def root():
    """Endpoint raiz - informacoes basicas do servico."""
    return {
        "service": assistant_settings.agent_name,
        "version": assistant_settings.agent_version,
        "status": "running",
        "agent_card": "/.well-known/agent.json",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.assistant_main:app",
        host="0.0.0.0",
        port=3000,
        reload=settings.debug,
        workers=1,  # OBRIGATORIO: estado em memoria
    )
