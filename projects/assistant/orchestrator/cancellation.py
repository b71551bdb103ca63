"""
Conjunto de cancelamento cooperativo.

Marcar uma task nao interrompe chamadas em andamento; apenas troca o
evento terminal emitido ao fim do passo atual por "cancelled".
"""


class CancellationRegistry:
    """Set de taskIds com cancelamento pedido."""

    def __init__(self):
        self._requested: set[str] = set()

    def request(self, task_id: str) -> None:
        self._requested.add(task_id)

    def is_requested(self, task_id: str) -> bool:
        return task_id in self._requested

    def discard(self, task_id: str) -> None:
        self._requested.discard(task_id)

    def __len__(self) -> int:
        return len(self._requested)
