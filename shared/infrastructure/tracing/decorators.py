"""
Decorador de span para operacoes do orquestrador.

Cada chamada decorada abre um span filho (span_id novo, parent_span_id =
span anterior) e emite <evento>_start / <evento>_end / <evento>_error com
a duracao. Usado em descoberta de especialistas, classificacao de intent e
delegacao.
"""
import asyncio
import functools
import time
from typing import Any, Callable

from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.context import child_span, get_trace_context
from shared.infrastructure.tracing.events import sanitize_for_log

logger = get_logger("tracing.decorator")


def log_span(
    event_name: str,
    log_args: bool = True,
    log_result: bool = True
):
    """
    Abre um span filho em volta da funcao decorada (sync ou async).

    Args:
        event_name: Prefixo dos eventos, ex: "specialist_discovery"
        log_args: Inclui os kwargs sanitizados no evento _start
        log_result: Inclui o resumo do retorno no evento _end

    Exemplo:
        @log_span("intent_classification", log_args=False)
        async def classify(self, text, memory):
            ...
    """
    def decorator(func: Callable) -> Callable:
        def _start(kwargs: dict) -> float:
            log_data = {"function": func.__name__}
            if log_args:
                log_data["function_args"] = sanitize_for_log(kwargs)
            logger.info(f"{event_name}_start", **get_trace_context(), **log_data)
            return time.time()

        def _success(result: Any, start_time: float) -> None:
            log_data = {"duration_ms": (time.time() - start_time) * 1000}
            if log_result:
                log_data["result_summary"] = _summarize_result(result)
            logger.info(f"{event_name}_end", **get_trace_context(), status="success", **log_data)

        def _error(e: Exception, start_time: float) -> None:
            logger.error(
                f"{event_name}_error",
                **get_trace_context(),
                error_type=type(e).__name__,
                error_message=str(e),
                duration_before_error_ms=(time.time() - start_time) * 1000
            )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            with child_span():
                start_time = _start(kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _error(e, start_time)
                    raise
                _success(result, start_time)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with child_span():
                start_time = _start(kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _error(e, start_time)
                    raise
                _success(result, start_time)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def _summarize_result(result: Any) -> Any:
    """Resumo do resultado: escalares como estao, colecoes por tamanho."""
    if result is None or isinstance(result, (str, int, float, bool)):
        return result

    if isinstance(result, (list, tuple)):
        return {"type": type(result).__name__, "length": len(result)}

    if isinstance(result, dict):
        return {"type": "dict", "keys": list(result.keys())}

    return {"type": type(result).__name__}
