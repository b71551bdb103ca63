"""
Canal de eventos por task.

Um produtor (executor) publica eventos em ordem; um unico consumidor
(o stream SSE da request) drena ate o sinal de fim.
"""

import asyncio
from typing import Any, AsyncIterator

_FINISHED = object()


class EventChannel:
    """Fila ordenada de eventos de um turno, encerrada por finished()."""

    def __init__(self, task_id: str | None = None, maxsize: int = 0):
        self.task_id = task_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.published = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, event: Any) -> None:
        """Enfileira um evento. Publicar apos finished() e erro de programacao."""
        if self._closed:
            raise RuntimeError("EventChannel ja finalizado")
        self.published += 1
        await self._queue.put(event)

    async def finished(self) -> None:
        """Sinaliza fim do stream. Idempotente."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_FINISHED)

    async def get(self) -> Any:
        """Proximo evento, ou None quando o canal terminou."""
        item = await self._queue.get()
        if item is _FINISHED:
            return None
        return item

    async def __aiter__(self) -> AsyncIterator[Any]:
        while True:
            item = await self.get()
            if item is None:
                return
            yield item
