"""
Metricas Prometheus do Assistant Orchestrator.

Define as metricas de roteamento, delegacao e ponte HITL
para monitoramento via Prometheus/Grafana.
"""

from prometheus_client import Counter, Histogram, Gauge

# --- Contadores ---

assistant_turns_total = Counter(
    "assistant_turns_total", "Total de turnos processados",
    ["state", "path"],
)

assistant_intents_total = Counter(
    "assistant_intents_total", "Intents classificados",
    ["intent", "source"],
)

assistant_delegations_total = Counter(
    "assistant_delegations_total", "Total de delegacoes para especialistas",
    ["specialist", "outcome"],
)

assistant_forwarded_events_total = Counter(
    "assistant_forwarded_events_total", "Eventos de especialistas repassados ao chamador",
    ["specialist", "kind"],
)

assistant_llm_errors_total = Counter(
    "assistant_llm_errors_total", "Falhas em chamadas ao LLM",
    ["role"],
)

# --- Histogramas ---

assistant_turn_duration = Histogram(
    "assistant_turn_duration_seconds", "Tempo total do turno",
    ["path"],
    buckets=[0.5, 1, 2, 5, 10, 20, 30, 60, 120],
)

assistant_delegation_duration = Histogram(
    "assistant_delegation_duration_seconds", "Tempo por delegacao",
    ["specialist"],
    buckets=[0.5, 1, 2, 5, 10, 20, 60, 120],
)

# --- Gauges ---

specialists_registered = Gauge(
    "assistant_specialists_registered", "Especialistas descobertos no startup",
)

bridges_armed = Gauge(
    "assistant_hitl_bridges_armed", "Pontes HITL aguardando resposta",
)
