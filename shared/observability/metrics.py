"""Metricas Prometheus do protocolo de agentes.

Compartilhadas por orquestrador e especialistas:
  - streams SSE servidos (ativos, duracao, eventos por kind, desconexoes)
  - chamadas de saida para outros agentes (descritor, stream, cancelamento)
  - violacoes de protocolo toleradas (evento/estado/part desconhecido)

setup_metrics() expoe /metrics e instrumenta os endpoints HTTP do app.
"""
from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_client import Counter, Histogram, Gauge


# --- Streams servidos ---

agent_sse_streams_active = Gauge(
    "agent_sse_streams_active",
    "Streams SSE de /message/stream abertos",
    ["service"],
)
agent_sse_stream_duration_seconds = Histogram(
    "agent_sse_stream_duration_seconds",
    "Duracao dos streams SSE (turno completo) em segundos",
    ["service"],
    buckets=[0.5, 1, 5, 10, 30, 60, 120, 300, 900],
)
agent_sse_events_total = Counter(
    "agent_sse_events_total",
    "Eventos de protocolo enviados ao chamador",
    ["service", "kind"],
)
agent_sse_disconnects_total = Counter(
    "agent_sse_disconnects_total",
    "Chamadores que fecharam o stream antes do evento final",
    ["service"],
)

# --- Chamadas de saida ---

agent_client_requests_total = Counter(
    "agent_client_requests_total",
    "Chamadas a agentes remotos por operacao e resultado",
    ["operation", "outcome"],
)

# --- Protocolo ---

agent_protocol_violations_total = Counter(
    "agent_protocol_violations_total",
    "Payloads fora do contrato ignorados ou degradados",
    ["kind"],
)


def setup_metrics(app, service_name: str = "unknown") -> Instrumentator:
    """Instrumenta o app e expoe /metrics.

    Endpoints de descoberta e healthcheck ficam fora das metricas HTTP;
    /message/stream e medido do inicio ao fim do stream.
    """
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        excluded_handlers=["/metrics", "/health", "/.well-known/agent.json"],
        inprogress_name="http_requests_in_progress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app, metric_namespace=service_name.replace("-", "_"))
    instrumentator.expose(app, include_in_schema=False, tags=["Observability"])
    return instrumentator
