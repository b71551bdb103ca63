"""
Configurações do Calculator Agent.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings


class CalculatorSettings(BaseSettings):
    """Configurações do especialista de cálculo."""

    agent_name: str = Field(
        default="Calculator Agent",
        description="Nome publicado no descritor"
    )
    agent_version: str = Field(
        default="1.0.0",
        description="Versão publicada no descritor"
    )
    public_url: str = Field(
        default="http://localhost:3001",
        description="URL base onde o especialista é acessível"
    )
    table_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Quantidade de linhas da tabuada gerada como artefato"
    )
    sse_keepalive_interval: int = Field(
        default=15,
        ge=1,
        le=60,
        description="Intervalo de keepalive SSE em segundos"
    )

    class Config:
        env_prefix = "CALCULATOR_"
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_calculator_settings() -> CalculatorSettings:
    return CalculatorSettings()


calculator_settings = get_calculator_settings()
