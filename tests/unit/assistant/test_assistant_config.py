"""
Testes das configuracoes do orquestrador.

Testa:
  - defaults (portas 3001-3003, TTL da ponte, limites)
  - override por variaveis ASSISTANT_*
  - lista de especialistas em JSON
"""

import pytest
from pydantic import ValidationError

from projects.assistant.config import AssistantSettings


def test_defaults():
    settings = AssistantSettings()

    assert settings.specialist_urls == [
        "http://localhost:3001",
        "http://localhost:3002",
        "http://localhost:3003",
    ]
    assert settings.descriptor_path == "/.well-known/agent.json"
    assert settings.bridge_ttl_seconds == 900
    assert settings.memory_prompt_utterances == 3
    assert settings.classifier_model


def test_env_override(monkeypatch):
    monkeypatch.setenv("ASSISTANT_SPECIALIST_URLS", '["http://calc:3001"]')
    monkeypatch.setenv("ASSISTANT_LLM_PROVIDER", "anthropic")
    monkeypatch.setenv("ASSISTANT_DELEGATION_TIMEOUT", "30")

    settings = AssistantSettings()

    assert settings.specialist_urls == ["http://calc:3001"]
    assert settings.llm_provider == "anthropic"
    assert settings.delegation_timeout == 30.0


def test_invalid_provider_rejected():
    with pytest.raises(ValidationError):
        AssistantSettings(llm_provider="cohere")


def test_limits_validated():
    with pytest.raises(ValidationError):
        AssistantSettings(memory_prompt_utterances=0)
