"""
Montagem do orquestrador.

build_orchestrator(): instancia registry, ledger, memoria, ponte HITL,
roteador, proxy e executor a partir das configuracoes.
"""

import httpx

from projects.assistant.config import AssistantSettings, assistant_settings
from projects.assistant.memory.conversation import ConversationMemory
from projects.assistant.orchestrator.answer import DirectAnswerer
from projects.assistant.orchestrator.bridge import HitlBridge
from projects.assistant.orchestrator.cancellation import CancellationRegistry
from projects.assistant.orchestrator.delegation import DelegationProxy
from projects.assistant.orchestrator.executor import OrchestratorExecutor
from projects.assistant.orchestrator.intent import IntentRouter
from projects.assistant.orchestrator.ledger import TaskLedger
from projects.assistant.orchestrator.registry import SpecialistRegistry


def build_orchestrator(
    http_client: httpx.AsyncClient,
    settings: AssistantSettings = assistant_settings,
    model_factory=None,
) -> OrchestratorExecutor:
    """Cria o executor com todas as dependencias em memoria.

    Args:
        http_client: Client persistente compartilhado (descoberta e delegacao).
        settings: Configuracoes do orquestrador.
        model_factory: Substitui get_model (testes).
    """
    ledger = TaskLedger(max_tasks=settings.max_tasks)
    cancellations = CancellationRegistry()
    # Ponte expirada ou descartada libera o pedido de cancelamento pendente
    bridge = HitlBridge(
        ttl_seconds=settings.bridge_ttl_seconds,
        maxsize=settings.max_tasks,
        on_drop=cancellations.discard,
    )
    registry = SpecialistRegistry(
        settings.specialist_urls,
        http_client,
        descriptor_path=settings.descriptor_path,
        discovery_timeout=settings.discovery_timeout,
    )

    router_kwargs = {"prompt_utterances": settings.memory_prompt_utterances}
    answerer_kwargs = {}
    if model_factory is not None:
        router_kwargs["model_factory"] = model_factory
        answerer_kwargs["model_factory"] = model_factory

    return OrchestratorExecutor(
        registry=registry,
        ledger=ledger,
        memory=ConversationMemory(
            max_utterances=settings.memory_max_utterances,
            max_contexts=settings.memory_max_contexts,
            ttl_seconds=settings.memory_ttl_seconds,
        ),
        bridge=bridge,
        cancellations=cancellations,
        router=IntentRouter(**router_kwargs),
        proxy=DelegationProxy(
            ledger,
            bridge,
            accepted_output_modes=settings.accepted_output_modes,
            timeout=settings.delegation_timeout,
            connect_timeout=settings.discovery_timeout,
        ),
        answerer=DirectAnswerer(**answerer_kwargs),
    )
