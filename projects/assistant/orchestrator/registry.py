"""
Registro de especialistas.

discover(): busca, uma unica vez e em paralelo, o descritor de cada endereco
configurado. Falhas (timeout, HTTP != 2xx, corpo invalido) sao logadas e o
especialista e omitido; nenhuma falha aborta o startup.

Barreira one-shot: start() dispara a descoberta em background no lifespan;
todo turno chama wait_ready() antes de usar o registro, e turnos
concorrentes aguardam a mesma descoberta.

find(term): substring case-insensitive do nome OU id exato de skill.
Primeiro match na ordem de configuracao vence.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from projects.assistant.observability.metrics import specialists_registered
from shared.core.exceptions import SpecialistProtocolException, SpecialistUnavailableException
from shared.infrastructure.tracing.decorators import log_span
from shared.infrastructure.tracing.events import (
    log_specialist_discovery_failed,
    log_specialist_registered,
)
from shared.protocol.client import DEFAULT_DESCRIPTOR_PATH, AgentClient
from shared.protocol.models import AgentCard

# Termos de busca por intent, em ordem de preferencia
INTENT_SEARCH_TERMS: dict[str, tuple[str, ...]] = {
    "calculator": ("calculator",),
    "weather": ("weather",),
    "structured-query": ("structured-query", "graphql", "query"),
}

STRUCTURED_INTENT = "structured-query"


@dataclass(frozen=True)
class Specialist:
    """Especialista registrado: descritor imutavel + handle de chamada."""

    card: AgentCard
    address: str
    client: AgentClient

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def skill_ids(self) -> list[str]:
        return [skill.id for skill in self.card.skills]

    def matches(self, term: str) -> bool:
        if not term:
            return False
        return term.lower() in self.name.lower() or term in self.skill_ids

    @property
    def is_structured(self) -> bool:
        """Especialista de dados estruturados (usado pela memoria de conversa)."""
        return any(self.matches(term) for term in INTENT_SEARCH_TERMS[STRUCTURED_INTENT])

    @property
    def default_skill(self) -> Optional[str]:
        return self.card.skills[0].id if self.card.skills else None


class SpecialistRegistry:
    """Especialistas descobertos, em ordem de configuracao."""

    def __init__(
        self,
        addresses: Sequence[str],
        http_client: httpx.AsyncClient,
        descriptor_path: str = DEFAULT_DESCRIPTOR_PATH,
        discovery_timeout: float = 5.0,
    ):
        self.addresses = list(addresses)
        self._http = http_client
        self.descriptor_path = descriptor_path
        self.discovery_timeout = discovery_timeout
        self._specialists: list[Specialist] = []
        self._discovery: Optional[asyncio.Task] = None

    @property
    def specialists(self) -> list[Specialist]:
        return list(self._specialists)

    @property
    def ready(self) -> bool:
        return self._discovery is not None and self._discovery.done()

    def start(self) -> asyncio.Task:
        """Dispara a descoberta (idempotente) e devolve a task compartilhada."""
        if self._discovery is None:
            self._discovery = asyncio.create_task(self.discover())
        return self._discovery

    async def wait_ready(self) -> None:
        """Barreira: aguarda a descoberta unica terminar."""
        # shield: cancelar um turno nao cancela a descoberta compartilhada
        await asyncio.shield(self.start())

    @log_span("specialist_discovery", log_result=False)
    async def discover(self) -> list[Specialist]:
        """Busca todos os descritores em paralelo; preserva a ordem configurada."""
        results = await asyncio.gather(
            *(self._fetch(address) for address in self.addresses),
            return_exceptions=True,
        )

        specialists = []
        for address, result in zip(self.addresses, results):
            if isinstance(result, BaseException):
                log_specialist_discovery_failed(
                    address=address,
                    error_type=type(result).__name__,
                    error_message=str(result),
                )
                continue
            if result is not None:
                specialists.append(result)

        self._specialists = specialists
        specialists_registered.set(len(specialists))
        return specialists

    async def _fetch(self, address: str) -> Optional[Specialist]:
        client = AgentClient(address, self._http)
        try:
            card = await client.fetch_card(
                self.descriptor_path, timeout=self.discovery_timeout,
            )
        except (SpecialistUnavailableException, SpecialistProtocolException) as e:
            log_specialist_discovery_failed(
                address=address,
                error_type=type(e).__name__,
                error_message=e.message,
            )
            return None

        log_specialist_registered(
            name=card.name,
            address=address,
            skills=[skill.id for skill in card.skills],
        )
        return Specialist(card=card, address=client.address, client=client)

    def find(self, term: str) -> Optional[Specialist]:
        for specialist in self._specialists:
            if specialist.matches(term):
                return specialist
        return None

    def find_for_intent(self, intent: str) -> Optional[Specialist]:
        for term in INTENT_SEARCH_TERMS.get(intent, ()):
            specialist = self.find(term)
            if specialist is not None:
                return specialist
        return None

    def get_by_name(self, name: str) -> Optional[Specialist]:
        for specialist in self._specialists:
            if specialist.name == name:
                return specialist
        return None
