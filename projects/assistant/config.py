"""
Configurações do Assistant Orchestrator.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Literal


class AssistantSettings(BaseSettings):
    """Configurações do orquestrador de agentes."""

    # Identidade (descritor publicado em /.well-known/agent.json)
    agent_name: str = Field(
        default="Assistant Orchestrator Agent",
        description="Nome publicado no descritor do orquestrador"
    )
    agent_version: str = Field(
        default="1.0.0",
        description="Versão publicada no descritor"
    )
    public_url: str = Field(
        default="http://localhost:3000",
        description="URL base onde o orquestrador é acessível"
    )

    # Especialistas
    specialist_urls: list[str] = Field(
        default=[
            "http://localhost:3001",
            "http://localhost:3002",
            "http://localhost:3003",
        ],
        description="Endereços dos especialistas (JSON list), em ordem de prioridade"
    )
    descriptor_path: str = Field(
        default="/.well-known/agent.json",
        description="Path do descritor de capacidades em cada especialista"
    )
    discovery_timeout: float = Field(
        default=5.0,
        ge=0.5,
        le=60.0,
        description="Timeout da busca de descritor em segundos"
    )
    delegation_timeout: float = Field(
        default=120.0,
        ge=5.0,
        le=900.0,
        description="Timeout de leitura do stream de delegação em segundos"
    )
    accepted_output_modes: list[str] = Field(
        default=["text/plain", "application/json", "image/png", "text/csv"],
        description="Content types aceitos dos especialistas"
    )

    # LLM Provider
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="Provedor do LLM (openai ou anthropic)"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Modelo usado para resposta direta"
    )
    classifier_model: str = Field(
        default="gpt-4o-mini",
        description="Modelo usado na classificação de intent"
    )
    openai_api_key: str | None = Field(
        default=None,
        description="API Key da OpenAI"
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Base URL compatível com OpenAI (Azure, proxy, etc.)"
    )
    anthropic_api_key: str | None = Field(
        default=None,
        description="API Key da Anthropic"
    )
    classifier_max_tokens: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Máximo de tokens na resposta do classificador"
    )
    classifier_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=60.0,
        description="Timeout do classificador em segundos"
    )
    answer_max_tokens: int = Field(
        default=800,
        ge=50,
        le=8192,
        description="Máximo de tokens na resposta direta"
    )
    answer_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Temperatura da resposta direta (0.0-1.0)"
    )
    llm_timeout: float = Field(
        default=60.0,
        ge=5.0,
        le=300.0,
        description="Timeout da resposta direta em segundos"
    )

    # Memória de conversa
    memory_max_utterances: int = Field(
        default=10,
        ge=3,
        le=100,
        description="Tamanho do ring de falas do usuário por contexto"
    )
    memory_prompt_utterances: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Falas recentes enviadas ao classificador"
    )
    memory_max_contexts: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Máximo de contextos de conversa mantidos em memória"
    )
    memory_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        le=604800,
        description="Tempo sem atividade após o qual a memória de um contexto é descartada"
    )

    # Ponte HITL e ledger
    bridge_ttl_seconds: int = Field(
        default=900,
        ge=10,
        le=86400,
        description="Tempo máximo que uma ponte HITL fica armada sem resposta"
    )
    max_tasks: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Máximo de tasks mantidas no ledger em memória"
    )

    # Streaming
    sse_keepalive_interval: int = Field(
        default=15,
        ge=1,
        le=60,
        description="Intervalo de keepalive SSE em segundos"
    )

    class Config:
        env_prefix = "ASSISTANT_"
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_assistant_settings() -> AssistantSettings:
    """
    Retorna instância cacheada das configurações do orquestrador.
    """
    return AssistantSettings()


# Instância global das configurações
assistant_settings = get_assistant_settings()
