"""
Ponte HITL (human-in-the-loop).

Estado por task do orquestrador: NONE -> AWAITING_INPUT -> NONE.

Quando um especialista reporta input-required, a ponte guarda
{especialista, taskId/contextId do especialista}; a proxima mensagem da
mesma task do orquestrador vai direto para a task pausada do especialista,
sem passar pelo roteador de intent. Estado terminal do especialista limpa a
ponte; novo input-required rearma.

Entradas vivem em um TTLCache: pontes nao respondidas expiram apos
ttl_seconds (a proxima mensagem segue para classificacao normal) e, com o
cache cheio, a ponte mais antiga e descartada. Expiracao e descarte avisam
on_drop(task_id) para liberar estado associado (ex: pedido de cancelamento).
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from cachetools import TTLCache

from projects.assistant.observability.metrics import bridges_armed
from shared.infrastructure.tracing.events import log_bridge_armed, log_bridge_cleared


@dataclass(frozen=True)
class BridgeEntry:
    specialist: str
    specialist_task_id: str
    specialist_context_id: str
    intent: Optional[str] = None


class _BridgeCache(TTLCache):
    """TTLCache que reporta cada entrada removida sem pedido explicito."""

    def __init__(self, maxsize: int, ttl: float, timer: Callable[[], float], on_drop: Callable[[str, str], None]):
        super().__init__(maxsize=maxsize, ttl=ttl, timer=timer)
        self._on_drop = on_drop

    def expire(self, time=None):
        expired = super().expire(time)
        for task_id, _ in expired:
            self._on_drop(task_id, "expired")
        return expired

    def popitem(self):
        task_id, entry = super().popitem()
        self._on_drop(task_id, "evicted")
        return task_id, entry


class HitlBridge:
    """Mapa taskId do orquestrador -> task pausada do especialista.

    Acesso ocorre sempre dentro do lock da task no ledger (um turno por task).
    """

    def __init__(
        self,
        ttl_seconds: float = 900,
        maxsize: int = 1000,
        on_drop: Optional[Callable[[str], None]] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._on_drop = on_drop
        self._entries = _BridgeCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer, on_drop=self._dropped)

    def arm(self, task_id: str, entry: BridgeEntry) -> None:
        self._entries[task_id] = entry
        self.purge()
        log_bridge_armed(
            task_id=task_id,
            specialist=entry.specialist,
            specialist_task_id=entry.specialist_task_id,
        )

    def get(self, task_id: str) -> Optional[BridgeEntry]:
        self.purge()
        return self._entries.get(task_id)

    def clear(self, task_id: str, reason: str = "terminal") -> None:
        if self._entries.pop(task_id, None) is not None:
            log_bridge_cleared(task_id=task_id, reason=reason)
        self.purge()

    def purge(self, now: Optional[float] = None) -> None:
        """Remove entradas vencidas (no instante now, default: agora) e atualiza o gauge."""
        self._entries.expire(now)
        bridges_armed.set(len(self._entries))

    def _dropped(self, task_id: str, reason: str) -> None:
        log_bridge_cleared(task_id=task_id, reason=reason)
        if self._on_drop is not None:
            self._on_drop(task_id)

    def __contains__(self, task_id: str) -> bool:
        return self.get(task_id) is not None

    def __len__(self) -> int:
        self.purge()
        return len(self._entries)
