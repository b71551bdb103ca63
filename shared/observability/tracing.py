"""Tracing distribuido com OpenTelemetry.

O orquestrador e os especialistas sao processos separados; a instrumentacao
do httpx propaga W3C traceparent nas chamadas de descoberta e delegacao,
ligando o span do turno no orquestrador ao span do turno no especialista.

Sem setup_tracing() o tracer global e no-op: get_tracer() continua seguro
para os spans manuais do cliente do protocolo.
"""
import os

from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

TRACER_NAME = "agent-mesh"


def setup_tracing(
    service_name: str,
    service_version: str = "1.0.0",
    otlp_endpoint: str | None = None,
) -> TracerProvider:
    """Registra o TracerProvider global com exportador OTLP gRPC.

    Args:
        service_name: Nome do processo (assistant-orchestrator, calculator-agent)
        service_version: Versao publicada no descritor do agente
        otlp_endpoint: Endpoint do collector (default: env OTEL_EXPORTER_OTLP_ENDPOINT)
    """
    endpoint = otlp_endpoint or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317"
    )

    provider = TracerProvider(resource=Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    }))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(provider)

    set_global_textmap(CompositePropagator([
        TraceContextTextMapPropagator(),
        W3CBaggagePropagator(),
    ]))

    # Chamadas de saida para outros agentes
    HTTPXClientInstrumentor().instrument()
    return provider


def instrument_app(app) -> None:
    """Spans de servidor para as rotas do protocolo (sem health/metrics)."""
    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls="metrics,health,.well-known/agent.json",
    )


def shutdown_tracing() -> None:
    """Exporta spans pendentes no shutdown do processo."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()


def get_tracer():
    return trace.get_tracer(TRACER_NAME)
