"""
Memoria de curto prazo por contexto de conversa.

Guarda, por contextId:
  - ring das ultimas N falas do usuario
  - nome do ultimo especialista usado
  - flag "turno anterior usou o especialista de dados estruturados"

Usada apenas para desambiguar follow-ups ("transforma isso em grafico").
Nunca persistida. Contextos ficam em um TTLCache: cada turno renova o prazo
do contexto; contextos parados por ttl_seconds, ou os mais antigos quando o
cache enche, sao descartados.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from cachetools import TTLCache

from projects.assistant.orchestrator.keyed import KeyedLocks


@dataclass(frozen=True)
class MemorySnapshot:
    """Copia imutavel da memoria de um contexto no inicio do turno."""

    utterances: tuple[str, ...] = ()
    last_specialist: Optional[str] = None
    used_structured: bool = False

    def recent(self, n: int) -> list[str]:
        if n <= 0:
            return []
        return list(self.utterances[-n:])


@dataclass
class _ContextMemory:
    utterances: deque
    last_specialist: Optional[str] = None
    used_structured: bool = False


class ConversationMemory:
    """Memoria por contextId com acesso serializado por chave."""

    def __init__(
        self,
        max_utterances: int = 10,
        max_contexts: int = 1000,
        ttl_seconds: float = 3600,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.max_utterances = max_utterances
        self._contexts: TTLCache = TTLCache(maxsize=max_contexts, ttl=ttl_seconds, timer=timer)
        self._locks = KeyedLocks()

    async def snapshot(self, context_id: str) -> MemorySnapshot:
        async with self._locks.hold(context_id):
            memory = self._contexts.get(context_id)
            if memory is None:
                return MemorySnapshot()
            return MemorySnapshot(
                utterances=tuple(memory.utterances),
                last_specialist=memory.last_specialist,
                used_structured=memory.used_structured,
            )

    async def update(
        self,
        context_id: str,
        utterance: str,
        specialist: Optional[str],
        used_structured: bool,
    ) -> None:
        """Registra o turno concluido.

        specialist=None (resposta direta) preserva o ultimo especialista
        conhecido; used_structured sempre reflete o turno atual.
        """
        async with self._locks.hold(context_id):
            memory = self._contexts.get(context_id)
            if memory is None:
                memory = _ContextMemory(utterances=deque(maxlen=self.max_utterances))
            if utterance:
                memory.utterances.append(utterance)
            if specialist:
                memory.last_specialist = specialist
            memory.used_structured = used_structured
            # Reatribuir renova o TTL do contexto
            self._contexts[context_id] = memory

    def __len__(self) -> int:
        self._contexts.expire()
        return len(self._contexts)
