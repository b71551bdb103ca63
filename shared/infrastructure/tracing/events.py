"""
Eventos de log do orquestrador e dos especialistas.

Cada funcao emite um evento structlog com os campos de trace atuais. Textos
livres (prompts, respostas, payloads rejeitados) entram apenas como preview.
"""
from typing import Optional, List, Any

from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.context import get_trace_context

logger = get_logger("tracing.events")

PREVIEW_CHARS = 500

REDACTED = "***REDACTED***"

# Chaves de headers e metadados de mensagem que nunca vao para o log
_SECRET_MARKERS = ("token", "secret", "password", "api_key", "apikey", "authorization")


def preview(text: str, max_chars: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= max_chars else f"{text[:max_chars]}...[truncated]"


def _is_secret(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


def sanitize_for_log(value: Any, max_chars: int = PREVIEW_CHARS) -> Any:
    """Copia recursiva com segredos mascarados e strings encurtadas."""
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_secret(key) else sanitize_for_log(item, max_chars)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize_for_log(item, max_chars) for item in value]
    if isinstance(value, str):
        return preview(value, max_chars)
    return value


# ============================================================================
# Eventos HTTP
# ============================================================================

def log_request_received(
    path: str,
    method: str,
    ip: Optional[str],
    user_agent: Optional[str]
):
    """Loga recebimento de request"""
    logger.info(
        "request_received",
        **get_trace_context(),
        request_metadata={
            "path": path,
            "method": method,
            "ip": ip,
            "user_agent": user_agent
        }
    )


def log_response_sent(
    status_code: int,
    duration_ms: float
):
    """Loga envio de response"""
    logger.info(
        "response_sent",
        **get_trace_context(),
        status="success",
        status_code=status_code,
        total_duration_ms=duration_ms
    )


def log_request_failed(
    error_type: str,
    error_message: str,
    duration_ms: float
):
    """Loga falha de request"""
    logger.error(
        "request_failed",
        **get_trace_context(),
        status="error",
        error_type=error_type,
        error_message=error_message,
        total_duration_ms=duration_ms
    )


# ============================================================================
# Eventos do Orquestrador
# ============================================================================

def log_turn_started(
    task_id: str,
    context_id: str,
    created: bool,
    bridged: bool
):
    """Loga início de um turno do orquestrador"""
    logger.info(
        "turn_started",
        **get_trace_context(),
        task_id=task_id,
        context_id=context_id,
        created=created,
        bridged=bridged
    )


def log_turn_completed(
    task_id: str,
    state: str,
    intent_path: List[str],
    citations: int,
    duration_ms: float
):
    """Loga evento terminal de um turno"""
    logger.info(
        "turn_completed",
        **get_trace_context(),
        task_id=task_id,
        state=state,
        intent_path=intent_path,
        citations=citations,
        duration_ms=duration_ms
    )


def log_intent_detected(
    intent: str,
    source: str,
    reasoning: str
):
    """Loga detecção de intent (source: rule | llm | fallback)"""
    logger.info(
        "intent_detected",
        **get_trace_context(),
        intent=intent,
        source=source,
        reasoning=reasoning
    )


# ============================================================================
# Eventos de Especialistas
# ============================================================================

def log_specialist_registered(
    name: str,
    address: str,
    skills: List[str]
):
    """Loga registro de especialista descoberto"""
    logger.info(
        "specialist_registered",
        **get_trace_context(),
        specialist=name,
        address=address,
        skills=skills
    )


def log_specialist_discovery_failed(
    address: str,
    error_type: str,
    error_message: str
):
    """Loga falha de descoberta (especialista omitido do registro)"""
    logger.warning(
        "specialist_discovery_failed",
        **get_trace_context(),
        address=address,
        error_type=error_type,
        error_message=error_message
    )


def log_delegation_started(
    specialist: str,
    task_id: str,
    specialist_task_id: Optional[str],
    bridged: bool
):
    """Loga abertura do stream de delegação"""
    logger.info(
        "delegation_started",
        **get_trace_context(),
        specialist=specialist,
        task_id=task_id,
        specialist_task_id=specialist_task_id,
        bridged=bridged
    )


def log_delegation_completed(
    specialist: str,
    terminal: Optional[str],
    forwarded_events: int,
    duration_ms: float
):
    """Loga fim do stream de delegação"""
    logger.info(
        "delegation_completed",
        **get_trace_context(),
        specialist=specialist,
        terminal=terminal,
        forwarded_events=forwarded_events,
        duration_ms=duration_ms
    )


def log_delegation_failed(
    specialist: str,
    error_type: str,
    error_message: str,
    duration_ms: float
):
    """Loga falha na delegação (texto parcial é preservado)"""
    logger.error(
        "delegation_failed",
        **get_trace_context(),
        specialist=specialist,
        error_type=error_type,
        error_message=error_message,
        duration_ms=duration_ms
    )


def log_protocol_violation(
    source: str,
    detail: str,
    payload: Any = None
):
    """Loga evento fora do contrato, ignorado sem abortar o stream"""
    logger.warning(
        "protocol_violation",
        **get_trace_context(),
        source=source,
        detail=detail,
        payload=sanitize_for_log(payload)
    )


# ============================================================================
# Eventos da ponte HITL
# ============================================================================

def log_bridge_armed(
    task_id: str,
    specialist: str,
    specialist_task_id: str
):
    """Loga instalação da ponte HITL"""
    logger.info(
        "bridge_armed",
        **get_trace_context(),
        task_id=task_id,
        specialist=specialist,
        specialist_task_id=specialist_task_id
    )


def log_bridge_cleared(
    task_id: str,
    reason: str
):
    """Loga remoção da ponte HITL (reason: terminal | expired | cancelled)"""
    logger.info(
        "bridge_cleared",
        **get_trace_context(),
        task_id=task_id,
        reason=reason
    )


# ============================================================================
# Eventos de LLM
# ============================================================================

def log_llm_call(
    prompt: str,
    response: str,
    duration_ms: float,
    prompt_type: Optional[str] = None,
    model: Optional[str] = None
):
    """Loga uma chamada ao LLM (previews de prompt e resposta, em DEBUG)"""
    logger.debug(
        "llm_call",
        **get_trace_context(),
        prompt_type=prompt_type,
        model=model,
        prompt_preview=preview(prompt),
        response_preview=preview(response),
        duration_ms=duration_ms
    )
