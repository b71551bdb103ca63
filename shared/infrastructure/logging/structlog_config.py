"""
Logging estruturado com structlog.

Orquestrador e especialistas compartilham a mesma pipeline: contextvars
(service, task_id) + campos de trace + nivel + timestamp ISO. Em DEBUG a saida
e o ConsoleRenderer; nos demais niveis, uma linha JSON por evento.
"""

import logging
import sys
from typing import Optional

import structlog

NOISY_LOGGERS = ("httpx", "httpcore", "httpcore.http11", "httpcore.connection", "uvicorn.access")

TRACE_FIELDS = ("trace_id", "span_id", "parent_span_id")


def drop_empty_trace_fields(logger, method_name, event_dict):
    """Remove campos de trace sem valor (eventos fora de uma request)."""
    for field in TRACE_FIELDS:
        if field in event_dict and event_dict[field] is None:
            del event_dict[field]
    return event_dict


def _renderer(log_level: str):
    if log_level.upper() == "DEBUG":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer(ensure_ascii=False)


def setup_logging(log_level: str = "INFO", service_name: Optional[str] = None) -> None:
    """
    Configura o logging do processo.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR ou CRITICAL
        service_name: Vinculado a todos os eventos como "service"
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            drop_empty_trace_fields,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            _renderer(log_level),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
