"""
Configurações globais dos serviços de agentes.
Carrega variáveis de ambiente e define configurações comuns a todos os processos.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Configurações da aplicação carregadas do ambiente."""

    # Aplicação
    app_name: str = "Agent Mesh"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"

    # CORS
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="Origens permitidas para o frontend de chat"
    )

    # Observabilidade
    otel_enabled: bool = Field(
        default=False,
        description="Habilita exportacao de spans OpenTelemetry"
    )
    otel_endpoint: str = Field(
        default="http://otel-collector:4317",
        description="Endpoint OTLP gRPC do collector"
    )
    metrics_enabled: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Retorna instância cacheada das configurações.
    Use esta função para obter as configurações em qualquer lugar da aplicação.
    """
    return Settings()


# Instância global para imports diretos
settings = get_settings()
