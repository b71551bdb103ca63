"""
Calculator Agent - Entry point do especialista de calculo.

Especialista de referencia do protocolo: descritor em /.well-known/agent.json,
turnos via POST /message/stream, pausa com input-required quando o texto
nao traz expressao.
Porta padrao: 3001.
"""

import os
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI

from shared.infrastructure.config.settings import settings
from shared.infrastructure.logging.structlog_config import setup_logging
from shared.infrastructure.tracing.middleware import TraceMiddleware
from shared.observability import configure_observability, shutdown_tracing
from shared.protocol.server import router as protocol_router
from projects.calculator.card import build_calculator_card
from projects.calculator.config import calculator_settings
from projects.calculator.executor import CalculatorExecutor


setup_logging(settings.log_level, service_name="calculator-agent")
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Registra descritor e executor no state da app."""
    # Tasks pausadas em input-required ficam na memoria deste processo
    workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
    if workers > 1:
        raise RuntimeError(f"WEB_CONCURRENCY={workers} detectado. O Calculator Agent requer --workers 1.")

    app.state.agent_card = build_calculator_card()
    app.state.executor = CalculatorExecutor()
    app.state.sse_keepalive_interval = calculator_settings.sse_keepalive_interval

    logger.info(
        "Calculator Agent inicializado",
        version=calculator_settings.agent_version,
        url=calculator_settings.public_url,
    )

    yield

    logger.info("Encerrando Calculator Agent")
    shutdown_tracing()


app = FastAPI(
    title="Calculator Agent",
    version=calculator_settings.agent_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

configure_observability(app, "calculator-agent", calculator_settings.agent_version)

app.add_middleware(TraceMiddleware)

app.include_router(protocol_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.calculator_main:app",
        host="0.0.0.0",
        port=3001,
        reload=settings.debug,
        workers=1,
    )
