"""
Turno do orquestrador (maquina de estados de topo).

RECEIVED -> (BRIDGED | CLASSIFYING) -> DELEGATING? -> ANSWERING -> TERMINAL

  - RECEIVED: lookup/criacao no ledger; evento "task" se a task e nova;
    placeholder "working" sem texto
  - BRIDGED: ponte HITL armada -> mensagem vai direto ao especialista pausado
  - CLASSIFYING: roteador de intent
  - DELEGATING: proxy de delegacao (sem especialista registrado -> ANSWERING)
  - ANSWERING: resposta direta, apenas se nenhum texto foi delegado
  - TERMINAL: exatamente um evento final:true com texto mesclado,
    citations mescladas e intentPath

Um turno por task de cada vez (lock por taskId no ledger); tasks diferentes
rodam em paralelo.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

from projects.assistant.memory.conversation import ConversationMemory
from projects.assistant.observability.metrics import assistant_turn_duration, assistant_turns_total
from projects.assistant.orchestrator.answer import DirectAnswerer
from projects.assistant.orchestrator.bridge import BridgeEntry, HitlBridge
from projects.assistant.orchestrator.cancellation import CancellationRegistry
from projects.assistant.orchestrator.delegation import (
    ORCHESTRATOR_PATH,
    DelegationProxy,
    DelegationResult,
)
from projects.assistant.orchestrator.intent import Intent, IntentRouter
from projects.assistant.orchestrator.ledger import TaskLedger
from projects.assistant.orchestrator.registry import Specialist, SpecialistRegistry
from shared.infrastructure.logging.structlog_config import get_logger
from shared.infrastructure.tracing.events import log_turn_completed, log_turn_started
from shared.protocol.channel import EventChannel
from shared.protocol.models import (
    Citation,
    Message,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    text_message,
)
from shared.protocol.server import AgentExecutor, RequestContext

logger = get_logger("orchestrator.executor")


@dataclass
class TurnOutcome:
    """Acumulador da bolha final do turno."""

    blocks: list[str] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    intent_path: list[str] = field(default_factory=lambda: [ORCHESTRATOR_PATH])
    specialist: Optional[Specialist] = None
    awaiting_input: bool = False
    path: str = "direct"

    @property
    def text(self) -> str:
        return "".join(self.blocks)


def specialist_block(name: str, text: str) -> str:
    return f"**{name}:** {text}\n\n"


def routing_citation(specialist: Specialist, label: str, source: str) -> Citation:
    """Marcador interno "roteado para X" adicionado pelo orquestrador."""
    return Citation(
        label=f"Roteado para {specialist.name}",
        url=specialist.address,
        kind="internal",
        tool="orchestrator",
        note=f"intent={label}; origem={source}",
        intent_path=[ORCHESTRATOR_PATH],
    )


class OrchestratorExecutor(AgentExecutor):
    """Executor do Assistant Orchestrator."""

    def __init__(
        self,
        registry: SpecialistRegistry,
        ledger: TaskLedger,
        memory: ConversationMemory,
        bridge: HitlBridge,
        cancellations: CancellationRegistry,
        router: IntentRouter,
        proxy: DelegationProxy,
        answerer: DirectAnswerer,
    ):
        self.registry = registry
        self.ledger = ledger
        self.memory = memory
        self.bridge = bridge
        self.cancellations = cancellations
        self.router = router
        self.proxy = proxy
        self.answerer = answerer
        self._background: set[asyncio.Task] = set()

    async def execute(self, context: RequestContext, channel: EventChannel) -> None:
        await self.registry.wait_ready()
        async with self.ledger.locks.hold(context.task_id):
            await self._run_turn(context, channel)

    async def cancel(self, task_id: str) -> None:
        """Marca a task para cancelamento e repassa ao especialista pausado."""
        if not self.ledger.exists(task_id):
            logger.info("cancel.unknown_task", task_id=task_id)
            return
        if self.ledger.get(task_id).status.state.is_terminal:
            logger.info("cancel.already_terminal", task_id=task_id)
            return

        entry = self.bridge.get(task_id)
        if entry is None and self.ledger.get(task_id).status.state == TaskState.INPUT_REQUIRED:
            # Ponte expirada: nao ha turno nem especialista pausado a cancelar
            logger.info("cancel.bridge_expired", task_id=task_id)
            return

        self.cancellations.request(task_id)
        specialist = self.registry.get_by_name(entry.specialist) if entry else None
        if specialist is not None and entry.specialist_task_id:
            # Fire-and-forget: o pedido de cancelamento retorna imediatamente
            task = asyncio.create_task(specialist.client.cancel_task(entry.specialist_task_id))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    def health_details(self) -> dict:
        return {
            "specialists": [s.name for s in self.registry.specialists],
            "discovery_ready": self.registry.ready,
            "tasks": len(self.ledger),
            "bridges_armed": len(self.bridge),
        }

    # ------------------------------------------------------------------
    # Turno
    # ------------------------------------------------------------------

    async def _run_turn(self, context: RequestContext, channel: EventChannel) -> None:
        start = time.time()
        task_id = context.task_id

        if self.ledger.exists(task_id):
            task = self.ledger.get(task_id)
            if task.status.state.is_terminal:
                await self._reject_terminal(task_id, task.context_id, task.status.state, channel)
                return
            task_id, context_id, created = task.id, task.context_id, False
        else:
            task, created = self.ledger.get_or_create(task_id, context.context_id)
            context_id = task.context_id

        user_message = context.message.model_copy(update={
            "role": "user",
            "task_id": task_id,
            "context_id": context_id,
        })
        self.ledger.record_message(task_id, user_message)

        if created:
            await channel.publish(self.ledger.snapshot(task_id))

        self.ledger.set_state(task_id, TaskState.WORKING)
        await channel.publish(TaskStatusUpdateEvent(
            task_id=task_id,
            context_id=context_id,
            status=TaskStatus(state=TaskState.WORKING),
            final=False,
        ))

        entry = self.bridge.get(task_id)
        log_turn_started(
            task_id=task_id,
            context_id=context_id,
            created=created,
            bridged=entry is not None,
        )

        outcome = TurnOutcome()
        try:
            await self._route(context.user_text, task_id, context_id, entry, channel, outcome)
        except Exception as e:
            logger.error(
                "turn.unexpected_error",
                task_id=task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            self.bridge.clear(task_id, reason="failed")
            outcome.blocks.append(f"⚠️ Falha ao processar a solicitação: {e}")
            await self._finish(task_id, context_id, TaskState.FAILED, outcome, channel, start)
            return

        await self.memory.update(
            context_id,
            utterance=context.user_text,
            specialist=outcome.specialist.name if outcome.specialist else None,
            used_structured=bool(outcome.specialist and outcome.specialist.is_structured),
        )

        if self.cancellations.is_requested(task_id):
            self.bridge.clear(task_id, reason="cancelled")
            outcome.blocks.append("_Tarefa cancelada._")
            state = TaskState.CANCELLED
        elif outcome.awaiting_input:
            state = TaskState.INPUT_REQUIRED
        else:
            state = TaskState.COMPLETED

        await self._finish(task_id, context_id, state, outcome, channel, start)

    async def _route(
        self,
        text: str,
        task_id: str,
        context_id: str,
        entry: Optional[BridgeEntry],
        channel: EventChannel,
        outcome: TurnOutcome,
    ) -> None:
        """BRIDGED | CLASSIFYING -> DELEGATING? -> ANSWERING."""
        specialist: Optional[Specialist] = None
        intent: Optional[Intent] = None

        if entry is not None:
            specialist = self.registry.get_by_name(entry.specialist)
            if specialist is None:
                self.bridge.clear(task_id, reason="unavailable")
                entry = None
            else:
                intent = Intent(entry.intent or "general", "bridge", "continuacao HITL")
                outcome.path = "bridged"

        if entry is None:
            memory = await self.memory.snapshot(context_id)
            intent = await self.router.classify(text, memory)
            if intent.delegates:
                specialist = self.registry.find_for_intent(intent.label)
                if specialist is None:
                    logger.info("turn.no_specialist", intent=intent.label, task_id=task_id)

        result: Optional[DelegationResult] = None
        if specialist is not None:
            if outcome.path != "bridged":
                outcome.path = "delegated"
            result = await self.proxy.delegate(
                specialist,
                text,
                task_id=task_id,
                context_id=context_id,
                channel=channel,
                intent=intent.label if intent else None,
                bridge_entry=entry,
            )
            self._merge_delegation(result, specialist, intent, outcome)

        if result is None or (not result.text and not result.error and not result.awaiting_input):
            await self._answer(text, outcome)

    def _merge_delegation(
        self,
        result: DelegationResult,
        specialist: Specialist,
        intent: Optional[Intent],
        outcome: TurnOutcome,
    ) -> None:
        outcome.specialist = specialist
        outcome.awaiting_input = result.awaiting_input
        outcome.intent_path = result.intent_path

        if result.text:
            outcome.blocks.append(specialist_block(specialist.name, result.text))
        if result.error:
            outcome.blocks.append(
                specialist_block(specialist.name, f"⚠️ Erro na delegação: {result.error}")
            )

        outcome.citations.extend(result.citations)
        outcome.citations.append(routing_citation(
            specialist,
            intent.label if intent else "unknown",
            intent.source if intent else "unknown",
        ))

    async def _answer(self, text: str, outcome: TurnOutcome) -> None:
        answer = await self.answerer.answer(text)
        outcome.blocks.append(answer.text)
        if answer.citation is not None:
            outcome.citations.append(answer.citation)

    async def _finish(
        self,
        task_id: str,
        context_id: str,
        state: TaskState,
        outcome: TurnOutcome,
        channel: EventChannel,
        start: float,
    ) -> None:
        """Emite o unico evento final:true do turno."""
        self.cancellations.discard(task_id)
        message = text_message(
            outcome.text,
            task_id=task_id,
            context_id=context_id,
            citations=outcome.citations,
            intent_path=outcome.intent_path,
        )
        self.ledger.record_message(task_id, message)
        self.ledger.set_state(task_id, state, message=message)

        await channel.publish(TaskStatusUpdateEvent(
            task_id=task_id,
            context_id=context_id,
            status=TaskStatus(state=state, message=message),
            final=True,
        ))

        elapsed = time.time() - start
        assistant_turns_total.labels(state=state.value, path=outcome.path).inc()
        assistant_turn_duration.labels(path=outcome.path).observe(elapsed)
        log_turn_completed(
            task_id=task_id,
            state=state.value,
            intent_path=outcome.intent_path,
            citations=len(outcome.citations),
            duration_ms=elapsed * 1000,
        )

    async def _reject_terminal(
        self,
        task_id: str,
        context_id: str,
        state: TaskState,
        channel: EventChannel,
    ) -> None:
        """Mensagem para task ja finalizada: um unico evento failed, ledger intocado."""
        logger.warning("turn.task_already_terminal", task_id=task_id, state=state.value)
        await channel.publish(TaskStatusUpdateEvent(
            task_id=task_id,
            context_id=context_id,
            status=TaskStatus(
                state=TaskState.FAILED,
                message=text_message(
                    f"A task {task_id} já foi finalizada ({state.value}). "
                    "Inicie uma nova task para continuar a conversa.",
                    task_id=task_id,
                    context_id=context_id,
                    intent_path=[ORCHESTRATOR_PATH],
                ),
            ),
            final=True,
        ))
