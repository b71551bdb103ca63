"""
Ledger de tasks em memoria.

Operacoes:
  - get_or_create(task_id, context_id) -> (Task, created)
  - record_message(task_id, message)
  - set_state(task_id, state, message=None)
  - add_artifact(task_id, artifact)
  - get(task_id)

Garantias:
  - criacao idempotente (segunda chamada devolve a mesma Task, created=False)
  - estados terminais sao finais: sair de completed/cancelled/failed levanta
    InvalidTaskTransitionException
  - lookup de task desconhecida fora da criacao levanta TaskNotFoundException
  - limite de tamanho: ao exceder max_tasks, as tasks terminais mais antigas
    sao removidas primeiro
"""

from collections import OrderedDict
from typing import Optional

import structlog

from projects.assistant.orchestrator.keyed import KeyedLocks
from shared.core.exceptions import InvalidTaskTransitionException, TaskNotFoundException
from shared.protocol.models import Artifact, Message, Task, TaskState, TaskStatus

logger = structlog.get_logger()


class TaskLedger:
    """Registro de identidade, estado, historico e artefatos das tasks."""

    def __init__(self, max_tasks: int = 1000):
        self.max_tasks = max_tasks
        self._tasks: OrderedDict[str, Task] = OrderedDict()
        self.locks = KeyedLocks()

    def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundException(task_id)
        return task

    def exists(self, task_id: str) -> bool:
        return task_id in self._tasks

    def get_or_create(self, task_id: str, context_id: str) -> tuple[Task, bool]:
        task = self._tasks.get(task_id)
        if task is not None:
            return task, False

        task = Task(
            id=task_id,
            context_id=context_id,
            status=TaskStatus(state=TaskState.SUBMITTED),
        )
        self._tasks[task_id] = task
        self._evict()
        return task, True

    def record_message(self, task_id: str, message: Message) -> None:
        self.get(task_id).history.append(message)

    def add_artifact(self, task_id: str, artifact: Artifact) -> None:
        self.get(task_id).artifacts.append(artifact)

    def set_state(
        self,
        task_id: str,
        state: TaskState,
        message: Optional[Message] = None,
    ) -> Task:
        task = self.get(task_id)
        current = task.status.state
        if current.is_terminal and state != current:
            raise InvalidTaskTransitionException(task_id, current.value, state.value)
        task.status = TaskStatus(state=state, message=message)
        return task

    def snapshot(self, task_id: str) -> Task:
        """Copia profunda para emitir como evento "task"."""
        return self.get(task_id).model_copy(deep=True)

    def _evict(self) -> None:
        """Remove tasks terminais mais antigas ate caber em max_tasks."""
        overflow = len(self._tasks) - self.max_tasks
        if overflow <= 0:
            return
        for task_id in list(self._tasks):
            if overflow <= 0:
                break
            if self._tasks[task_id].status.state.is_terminal and not self.locks.is_locked(task_id):
                del self._tasks[task_id]
                overflow -= 1
                logger.debug("ledger.task_evicted", task_id=task_id)
        if overflow > 0:
            logger.warning(
                "ledger.over_capacity",
                size=len(self._tasks),
                max_tasks=self.max_tasks,
            )

    def __len__(self) -> int:
        return len(self._tasks)
