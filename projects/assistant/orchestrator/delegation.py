"""
Proxy de delegacao.

Abre o stream do especialista com um messageId novo (apenas o texto do
usuario e repassado; ids internos do orquestrador nunca saem) e traduz cada
evento recebido para a identidade da task do orquestrador:

  - task: ids do especialista registrados; nao repassado
  - artifact-update: ids reescritos, repassado; citations intactas
  - status nao terminal (working, input-required): ids e messageId
    reescritos, citations anotadas com o breadcrumb de intent e acumuladas;
    repassado apenas se houver texto ou citations
  - status terminal (completed, failed, cancelled): texto e citations
    acumulados para a bolha final do turno; nunca repassado
  - input-required: arma a ponte HITL

Erros do stream preenchem DelegationResult.error. O progresso nao terminal ja
foi repassado ao chamador e nao entra em DelegationResult.text; texto terminal
acumulado antes do erro e mantido.
"""

import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Optional

import httpx

from projects.assistant.observability.metrics import (
    assistant_delegation_duration,
    assistant_delegations_total,
    assistant_forwarded_events_total,
)
from projects.assistant.orchestrator.bridge import BridgeEntry, HitlBridge
from projects.assistant.orchestrator.ledger import TaskLedger
from projects.assistant.orchestrator.registry import Specialist
from shared.core.exceptions import SpecialistUnavailableException
from shared.infrastructure.tracing.decorators import log_span
from shared.infrastructure.tracing.events import (
    log_delegation_completed,
    log_delegation_failed,
    log_delegation_started,
)
from shared.protocol.channel import EventChannel
from shared.protocol.models import (
    Citation,
    Message,
    MessageSendConfiguration,
    MessageSendParams,
    Task,
    TaskArtifactUpdateEvent,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    TextPart,
    new_id,
)

ORCHESTRATOR_PATH = "orchestrator.general"


def intent_path_for(specialist: str, skill: Optional[str]) -> list[str]:
    return [ORCHESTRATOR_PATH, f"{specialist}.{skill}"]


@dataclass
class DelegationResult:
    """Resultado acumulado de uma delegacao."""

    specialist: str
    skill: Optional[str] = None
    text: str = ""
    citations: list[Citation] = field(default_factory=list)
    terminal: Optional[TaskState] = None
    awaiting_input: bool = False
    specialist_task_id: Optional[str] = None
    specialist_context_id: Optional[str] = None
    error: Optional[str] = None
    forwarded: int = 0

    @property
    def reached_terminal(self) -> bool:
        return self.terminal is not None

    @property
    def intent_path(self) -> list[str]:
        return intent_path_for(self.specialist, self.skill)

    def _append_text(self, text: str) -> None:
        if text:
            self.text = f"{self.text}\n{text}" if self.text else text


class DelegationProxy:
    """Traducao de identidade entre a task do orquestrador e a do especialista."""

    def __init__(
        self,
        ledger: TaskLedger,
        bridge: HitlBridge,
        accepted_output_modes: Optional[list[str]] = None,
        timeout: float = 120.0,
        connect_timeout: float = 5.0,
    ):
        self.ledger = ledger
        self.bridge = bridge
        self.accepted_output_modes = accepted_output_modes or ["text/plain"]
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)

    def _outbound(self, text: str, entry: Optional[BridgeEntry]) -> MessageSendParams:
        message = Message(
            message_id=new_id(),
            role="user",
            parts=[TextPart(text=text)],
            task_id=entry.specialist_task_id if entry else None,
            context_id=entry.specialist_context_id if entry else None,
        )
        return MessageSendParams(
            message=message,
            configuration=MessageSendConfiguration(
                accepted_output_modes=self.accepted_output_modes,
                blocking=False,
            ),
        )

    @log_span("delegation", log_args=False, log_result=False)
    async def delegate(
        self,
        specialist: Specialist,
        text: str,
        *,
        task_id: str,
        context_id: str,
        channel: EventChannel,
        intent: Optional[str] = None,
        bridge_entry: Optional[BridgeEntry] = None,
    ) -> DelegationResult:
        """Delega o turno e repassa os eventos do especialista ao canal."""
        result = DelegationResult(
            specialist=specialist.name,
            skill=intent,
            specialist_task_id=bridge_entry.specialist_task_id if bridge_entry else None,
            specialist_context_id=bridge_entry.specialist_context_id if bridge_entry else None,
        )
        log_delegation_started(
            specialist=specialist.name,
            task_id=task_id,
            specialist_task_id=result.specialist_task_id,
            bridged=bridge_entry is not None,
        )

        start = time.time()
        stream = specialist.client.send_message_stream(
            self._outbound(text, bridge_entry), timeout=self.timeout,
        )
        try:
            async with aclosing(stream):
                async for event in stream:
                    done = await self._handle(event, result, task_id, context_id, channel, intent)
                    if done:
                        break
        except SpecialistUnavailableException as e:
            result.error = e.message
        finally:
            assistant_delegation_duration.labels(specialist=specialist.name).observe(
                time.time() - start
            )

        if result.error is None and not result.reached_terminal and not result.awaiting_input:
            result.error = "stream do especialista encerrado sem estado terminal"

        if not result.awaiting_input:
            self.bridge.clear(task_id, reason="terminal" if result.reached_terminal else "failed")

        duration_ms = (time.time() - start) * 1000
        if result.error:
            outcome = "error"
            log_delegation_failed(
                specialist=specialist.name,
                error_type="delegation_error",
                error_message=result.error,
                duration_ms=duration_ms,
            )
        else:
            outcome = "input-required" if result.awaiting_input else result.terminal.value
            log_delegation_completed(
                specialist=specialist.name,
                terminal=outcome,
                forwarded_events=result.forwarded,
                duration_ms=duration_ms,
            )
        assistant_delegations_total.labels(specialist=specialist.name, outcome=outcome).inc()
        return result

    async def _handle(
        self,
        event,
        result: DelegationResult,
        task_id: str,
        context_id: str,
        channel: EventChannel,
        intent: Optional[str],
    ) -> bool:
        """Processa um evento do especialista. Retorna True quando o stream terminou."""
        if isinstance(event, Task):
            result.specialist_task_id = event.id
            result.specialist_context_id = event.context_id
            if event.status.state.is_terminal:
                self._accumulate_terminal(event.status.state, event.status.message, result)
                return True
            return False

        if isinstance(event, TaskArtifactUpdateEvent):
            self._remember_ids(event.task_id, event.context_id, result)
            forwarded = event.model_copy(update={"task_id": task_id, "context_id": context_id})
            self.ledger.add_artifact(task_id, forwarded.artifact)
            await channel.publish(forwarded)
            result.forwarded += 1
            assistant_forwarded_events_total.labels(
                specialist=result.specialist, kind=event.kind,
            ).inc()
            return False

        if isinstance(event, Message):
            # Resposta direta sem task: equivale a completed
            self._remember_ids(event.task_id, event.context_id, result)
            self._accumulate_terminal(TaskState.COMPLETED, event, result)
            return True

        if isinstance(event, TaskStatusUpdateEvent):
            self._remember_ids(event.task_id, event.context_id, result)
            state = event.status.state
            message = event.status.message

            if state.is_terminal:
                self._accumulate_terminal(state, message, result)
                return True

            await self._forward_status(state, message, result, task_id, context_id, channel, intent)
            return event.final

        return False

    def _remember_ids(self, task_id: str, context_id: str, result: DelegationResult) -> None:
        if task_id:
            result.specialist_task_id = task_id
        if context_id:
            result.specialist_context_id = context_id

    def _update_skill(self, message: Optional[Message], result: DelegationResult) -> None:
        if message is not None and message.skill:
            result.skill = message.skill

    def _accumulate_terminal(
        self,
        state: TaskState,
        message: Optional[Message],
        result: DelegationResult,
    ) -> None:
        result.terminal = state
        result.awaiting_input = False
        if message is None:
            return
        self._update_skill(message, result)
        result._append_text(message.text)
        result.citations.extend(message.citations)

    async def _forward_status(
        self,
        state: TaskState,
        message: Optional[Message],
        result: DelegationResult,
        task_id: str,
        context_id: str,
        channel: EventChannel,
        intent: Optional[str],
    ) -> None:
        self._update_skill(message, result)

        if state == TaskState.INPUT_REQUIRED:
            result.awaiting_input = True
            self.bridge.arm(task_id, BridgeEntry(
                specialist=result.specialist,
                specialist_task_id=result.specialist_task_id or "",
                specialist_context_id=result.specialist_context_id or "",
                intent=intent,
            ))

        if state in (TaskState.WORKING, TaskState.INPUT_REQUIRED):
            self.ledger.set_state(task_id, state)

        if message is None:
            return

        breadcrumb = result.intent_path
        citations = [c.model_copy(update={"intent_path": breadcrumb}) for c in message.citations]
        result.citations.extend(citations)

        if not message.text and not citations:
            return

        rewritten = message.model_copy(update={
            "message_id": new_id(),
            "task_id": task_id,
            "context_id": context_id,
            "citations": citations,
            "intent_path": breadcrumb,
        })
        self.ledger.record_message(task_id, rewritten)
        await channel.publish(TaskStatusUpdateEvent(
            task_id=task_id,
            context_id=context_id,
            status=TaskStatus(state=state, message=rewritten),
            final=False,
        ))
        result.forwarded += 1
        assistant_forwarded_events_total.labels(
            specialist=result.specialist, kind="status-update",
        ).inc()
