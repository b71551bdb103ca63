"""Trace de requests e turnos entre orquestrador e especialistas."""
from .context import (
    TRACE_HEADER,
    bind_task,
    child_span,
    generate_span_id,
    generate_trace_id,
    get_trace_context,
    set_trace_context,
    trace_headers,
)
from .decorators import log_span
from .middleware import TraceMiddleware
from .events import (
    log_request_received,
    log_response_sent,
    log_request_failed,
    log_turn_started,
    log_turn_completed,
    log_intent_detected,
    log_specialist_registered,
    log_specialist_discovery_failed,
    log_delegation_started,
    log_delegation_completed,
    log_delegation_failed,
    log_protocol_violation,
    log_bridge_armed,
    log_bridge_cleared,
    log_llm_call,
)

__all__ = [
    "TRACE_HEADER",
    "bind_task",
    "child_span",
    "generate_span_id",
    "generate_trace_id",
    "get_trace_context",
    "set_trace_context",
    "trace_headers",
    "log_span",
    "TraceMiddleware",
    "log_request_received",
    "log_response_sent",
    "log_request_failed",
    "log_turn_started",
    "log_turn_completed",
    "log_intent_detected",
    "log_specialist_registered",
    "log_specialist_discovery_failed",
    "log_delegation_started",
    "log_delegation_completed",
    "log_delegation_failed",
    "log_protocol_violation",
    "log_bridge_armed",
    "log_bridge_cleared",
    "log_llm_call",
]
