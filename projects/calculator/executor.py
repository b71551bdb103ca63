"""
Executor do Calculator Agent.

Fluxo de um turno:
  1. task nova -> evento "task" (submitted)
  2. status working "🧮 Calculando..."
  3. pedido de tabuada -> artefato table_of_<n>.txt
  4. status terminal:
     - completed "<expr> = <resultado>"
     - failed quando a expressao nao pode ser avaliada
     - cancelled quando houve pedido de cancelamento
  Sem expressao no texto -> input-required pedindo a expressao; a proxima
  mensagem com o mesmo taskId retoma a task pausada.
"""

import re
from typing import Optional

from projects.calculator.card import SKILL_ID
from projects.calculator.config import calculator_settings
from projects.calculator.evaluator import (
    CalculationError,
    evaluate,
    extract_expression,
    format_number,
    multiplication_table,
)
from shared.infrastructure.logging.structlog_config import get_logger
from shared.protocol.channel import EventChannel
from shared.protocol.models import (
    Artifact,
    Citation,
    Task,
    TaskArtifactUpdateEvent,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    TextPart,
    text_message,
)
from shared.protocol.server import AgentExecutor, RequestContext

logger = get_logger("calculator.executor")

TABLE_PATTERN = re.compile(r"\b(table|tabuada)\b", re.IGNORECASE)
ASK_EXPRESSION = "Qual expressão devo calcular? Envie, por exemplo, 12 * (3 + 4)."


class CalculatorExecutor(AgentExecutor):
    """Especialista de referencia: aritmetica com pausa HITL."""

    def __init__(self, agent_name: Optional[str] = None, table_size: Optional[int] = None):
        self.agent_name = agent_name or calculator_settings.agent_name
        self.table_size = table_size or calculator_settings.table_size
        self._tasks: dict[str, TaskState] = {}
        self._cancelled: set[str] = set()

    async def cancel(self, task_id: str) -> None:
        if task_id in self._tasks and not self._tasks[task_id].is_terminal:
            self._cancelled.add(task_id)
            logger.info("calculator.cancel_requested", task_id=task_id)

    def health_details(self) -> dict:
        paused = sum(1 for state in self._tasks.values() if state == TaskState.INPUT_REQUIRED)
        return {"tasks": len(self._tasks), "awaiting_input": paused}

    def _status(
        self,
        context: RequestContext,
        state: TaskState,
        text: str,
        final: bool = False,
        citations: Optional[list[Citation]] = None,
    ) -> TaskStatusUpdateEvent:
        self._tasks[context.task_id] = state
        return TaskStatusUpdateEvent(
            task_id=context.task_id,
            context_id=context.context_id,
            status=TaskStatus(
                state=state,
                message=text_message(
                    text,
                    task_id=context.task_id,
                    context_id=context.context_id,
                    citations=citations or [],
                    skill_id=SKILL_ID,
                ),
            ),
            final=final,
        )

    async def execute(self, context: RequestContext, channel: EventChannel) -> None:
        task_id = context.task_id
        previous = self._tasks.get(task_id)

        if previous is not None and previous.is_terminal:
            await channel.publish(self._status(
                context, previous, f"Task {task_id} já finalizada ({previous.value}).", final=True,
            ))
            return

        if previous is None:
            self._tasks[task_id] = TaskState.SUBMITTED
            await channel.publish(Task(
                id=task_id,
                context_id=context.context_id,
                status=TaskStatus(state=TaskState.SUBMITTED),
                history=[context.message],
            ))

        await channel.publish(self._status(context, TaskState.WORKING, "🧮 Calculando..."))

        text = context.user_text
        expression = extract_expression(text)

        if task_id in self._cancelled:
            self._cancelled.discard(task_id)
            await channel.publish(self._status(context, TaskState.CANCELLED, "(cancelado)", final=True))
            return

        if expression is None:
            logger.info("calculator.input_required", task_id=task_id)
            await channel.publish(self._status(
                context, TaskState.INPUT_REQUIRED, ASK_EXPRESSION, final=True,
            ))
            return

        if TABLE_PATTERN.search(text):
            await self._publish_table(context, channel, expression)
            return

        try:
            result = format_number(evaluate(expression))
        except CalculationError as e:
            logger.info("calculator.evaluation_failed", task_id=task_id, expression=expression, error=str(e))
            await channel.publish(self._status(
                context, TaskState.FAILED, f"Não consegui calcular {expression}: {e}", final=True,
            ))
            return

        await channel.publish(self._status(
            context,
            TaskState.COMPLETED,
            f"{expression} = {result}",
            final=True,
            citations=[self._citation(expression)],
        ))

    async def _publish_table(self, context: RequestContext, channel: EventChannel, expression: str) -> None:
        number = re.search(r"\d+", expression)
        n = int(number.group()) if number else 0
        await channel.publish(TaskArtifactUpdateEvent(
            task_id=context.task_id,
            context_id=context.context_id,
            artifact=Artifact(
                artifact_id=f"table-{n}",
                name=f"table_of_{n}.txt",
                mime_type="text/plain",
                parts=[TextPart(text=multiplication_table(n, self.table_size))],
            ),
            append=False,
            last_chunk=True,
        ))
        await channel.publish(self._status(
            context,
            TaskState.COMPLETED,
            f"Tabuada do {n} gerada (veja o arquivo anexo).",
            final=True,
            citations=[self._citation(f"tabuada de {n}")],
        ))

    def _citation(self, note: str) -> Citation:
        return Citation(
            label="Avaliador aritmético",
            kind="internal",
            tool=self.agent_name,
            note=note,
        )
