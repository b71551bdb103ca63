"""Observabilidade dos servicos de agentes: metricas Prometheus e tracing OpenTelemetry."""
from shared.infrastructure.config.settings import settings
from shared.observability.metrics import setup_metrics
from shared.observability.tracing import get_tracer, instrument_app, setup_tracing, shutdown_tracing


def configure_observability(app, service_name: str, service_version: str) -> None:
    """Liga tracing e metricas conforme OTEL_ENABLED / METRICS_ENABLED."""
    if settings.otel_enabled:
        setup_tracing(
            service_name=service_name,
            service_version=service_version,
            otlp_endpoint=settings.otel_endpoint,
        )
        instrument_app(app)

    if settings.metrics_enabled:
        setup_metrics(app, service_name=service_name)


__all__ = [
    "configure_observability",
    "get_tracer",
    "instrument_app",
    "setup_metrics",
    "setup_tracing",
    "shutdown_tracing",
]
