"""
Modelos do protocolo de agentes (wire format camelCase).

Tipos:
  - Part: TextPart | FilePart (discriminado por "kind")
  - Citation: registro de proveniencia
  - Message: mensagem imutavel (role user|agent)
  - Artifact: payload nomeado emitido em paralelo ao texto
  - Task / TaskStatus / TaskState
  - Eventos: Task ("task"), TaskStatusUpdateEvent ("status-update"),
    TaskArtifactUpdateEvent ("artifact-update")
  - AgentCard / AgentSkill: descritor de capacidades
  - MessageSendParams: corpo de POST /message/stream

Validacao na borda: eventos de especialistas passam por parse_event(),
que aplica a uniao discriminada e degrada campos desconhecidos para defaults.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from shared.infrastructure.tracing.events import log_protocol_violation
from shared.observability.metrics import agent_protocol_violations_total


def to_camel(string: str) -> str:
    """Converte snake_case → camelCase."""
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


def _violation(kind: str, detail: str, source: str = "specialist", payload: Any = None) -> None:
    agent_protocol_violations_total.labels(kind=kind).inc()
    log_protocol_violation(source=source, detail=detail, payload=payload)


def new_id() -> str:
    """Gera identificador opaco (UUID4)."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProtocolModel(BaseModel):
    """Base model do protocolo: camelCase no fio, snake_case no Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serializa para o formato do fio (aliases camelCase, sem None)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class FrozenProtocolModel(ProtocolModel):
    """Variante imutavel: mensagens e artefatos nao mudam apos publicados."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ============================================================================
# Estados
# ============================================================================

class TaskState(str, Enum):
    """Ciclo de vida de uma task."""

    SUBMITTED = "submitted"
    WORKING = "working"
    INPUT_REQUIRED = "input-required"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.CANCELLED, TaskState.FAILED})


def coerce_state(value: Any) -> TaskState:
    """Converte string de estado; valores desconhecidos viram WORKING."""
    if isinstance(value, TaskState):
        return value
    try:
        return TaskState(value)
    except ValueError:
        # Grafia americana usada por alguns SDKs
        if value == "canceled":
            return TaskState.CANCELLED
        _violation("task_state", "estado desconhecido", payload=value)
        return TaskState.WORKING


# ============================================================================
# Parts
# ============================================================================

class TextPart(FrozenProtocolModel):
    kind: Literal["text"] = "text"
    text: str = ""


class FileContent(FrozenProtocolModel):
    """Payload binario em base64."""

    name: Optional[str] = None
    mime_type: str = "application/octet-stream"
    bytes: str = ""


class FilePart(FrozenProtocolModel):
    kind: Literal["file"] = "file"
    file: FileContent


Part = Annotated[Union[TextPart, FilePart], Field(discriminator="kind")]

_KNOWN_PART_KINDS = {"text", "file"}


def _normalize_parts(value: Any) -> Any:
    """Completa "kind" ausente e descarta parts de tipo desconhecido."""
    if not isinstance(value, list):
        return value
    parts = []
    for raw in value:
        if not isinstance(raw, dict):
            parts.append(raw)
            continue
        kind = raw.get("kind")
        if kind is None:
            kind = "file" if "file" in raw else "text"
            raw = {**raw, "kind": kind}
        if kind not in _KNOWN_PART_KINDS:
            _violation("part", f"kind desconhecido: {kind}")
            continue
        parts.append(raw)
    return parts


# ============================================================================
# Citations, Messages, Artifacts
# ============================================================================

CitationKind = Literal["doc", "api", "model", "internal"]


class Citation(FrozenProtocolModel):
    """Registro de proveniencia. Concatenado, nunca deduplicado."""

    id: str = Field(default_factory=new_id)
    label: str = ""
    url: Optional[str] = None
    kind: CitationKind = "internal"
    tool: Optional[str] = None
    note: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now_iso)
    intent_path: Optional[list[str]] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _default_kind(cls, value: Any) -> Any:
        if value not in ("doc", "api", "model", "internal"):
            return "internal"
        return value


class Message(FrozenProtocolModel):
    """Mensagem do protocolo. Para reescrever ids, use model_copy(update=...)."""

    kind: Literal["message"] = "message"
    message_id: str = Field(default_factory=new_id)
    role: Literal["user", "agent"] = "agent"
    parts: list[Part] = Field(default_factory=list)
    task_id: Optional[str] = None
    context_id: Optional[str] = None
    intent: Optional[str] = None
    skill_id: Optional[str] = None
    citations: list[Citation] = Field(default_factory=list)
    intent_path: Optional[list[str]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("parts", mode="before")
    @classmethod
    def _parts(cls, value: Any) -> Any:
        return _normalize_parts(value)

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> Any:
        return value if value in ("user", "agent") else "agent"

    @property
    def text(self) -> str:
        """Concatena as TextParts da mensagem."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def skill(self) -> Optional[str]:
        """Skill informada pelo especialista: skillId, metadata.skillId ou intent."""
        return self.skill_id or self.metadata.get("skillId") or self.metadata.get("skill_id") or self.intent


class Artifact(FrozenProtocolModel):
    artifact_id: str = Field(default_factory=new_id)
    name: Optional[str] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None
    parts: list[Part] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("parts", mode="before")
    @classmethod
    def _parts(cls, value: Any) -> Any:
        return _normalize_parts(value)


def text_message(
    text: str,
    *,
    role: str = "agent",
    task_id: Optional[str] = None,
    context_id: Optional[str] = None,
    **kwargs,
) -> Message:
    """Atalho para mensagem com uma unica TextPart (ou nenhuma, se text vazio)."""
    parts = [TextPart(text=text)] if text else []
    return Message(role=role, parts=parts, task_id=task_id, context_id=context_id, **kwargs)


# ============================================================================
# Task e eventos
# ============================================================================

class TaskStatus(ProtocolModel):
    state: TaskState = TaskState.WORKING
    message: Optional[Message] = None
    timestamp: str = Field(default_factory=utc_now_iso)

    @field_validator("state", mode="before")
    @classmethod
    def _state(cls, value: Any) -> TaskState:
        return coerce_state(value)


class Task(ProtocolModel):
    """Snapshot de task (evento "task")."""

    kind: Literal["task"] = "task"
    id: str
    context_id: str
    status: TaskStatus = Field(default_factory=lambda: TaskStatus(state=TaskState.SUBMITTED))
    history: list[Message] = Field(default_factory=list)
    artifacts: list[Artifact] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskStatusUpdateEvent(ProtocolModel):
    kind: Literal["status-update"] = "status-update"
    task_id: str = ""
    context_id: str = ""
    status: TaskStatus = Field(default_factory=TaskStatus)
    final: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskArtifactUpdateEvent(ProtocolModel):
    kind: Literal["artifact-update"] = "artifact-update"
    task_id: str = ""
    context_id: str = ""
    artifact: Artifact
    append: bool = False
    last_chunk: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


AgentEvent = Annotated[
    Union[Task, TaskStatusUpdateEvent, TaskArtifactUpdateEvent, Message],
    Field(discriminator="kind"),
]

_event_adapter = TypeAdapter(AgentEvent)

_KNOWN_EVENT_KINDS = {"task", "status-update", "artifact-update", "message"}


def parse_event(payload: Any, source: str = "specialist") -> Optional[Any]:
    """Valida um evento recebido na borda.

    Retorna None (com log de violacao) para kinds desconhecidos ou payloads
    invalidos; o stream segue com o proximo evento.
    """
    if not isinstance(payload, dict):
        _violation("event", "evento nao e objeto JSON", source=source, payload=payload)
        return None

    kind = payload.get("kind")
    if kind not in _KNOWN_EVENT_KINDS:
        _violation("event", f"kind desconhecido: {kind}", source=source, payload=payload)
        return None

    try:
        return _event_adapter.validate_python(payload)
    except ValidationError as e:
        _violation("event", str(e), source=source, payload=payload)
        return None


def is_final(event: Any) -> bool:
    """Evento fecha o stream do turno?"""
    if isinstance(event, TaskStatusUpdateEvent):
        return event.final or event.status.state.is_terminal
    if isinstance(event, Message):
        return True
    return False


# ============================================================================
# Descritor de capacidades
# ============================================================================

class AgentCapabilities(ProtocolModel):
    streaming: bool = True
    push_notifications: bool = False
    state_transition_history: bool = True


class AgentSkill(ProtocolModel):
    id: str
    name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    input_modes: list[str] = Field(default_factory=lambda: ["text/plain"])
    output_modes: list[str] = Field(default_factory=lambda: ["text/plain"])


class AgentCard(ProtocolModel):
    name: str
    description: str = ""
    url: str = ""
    version: str = "1.0.0"
    capabilities: AgentCapabilities = Field(default_factory=AgentCapabilities)
    default_input_modes: list[str] = Field(default_factory=lambda: ["text/plain"])
    default_output_modes: list[str] = Field(default_factory=lambda: ["text/plain"])
    skills: list[AgentSkill] = Field(default_factory=list)


# ============================================================================
# Request
# ============================================================================

class MessageSendConfiguration(ProtocolModel):
    accepted_output_modes: list[str] = Field(default_factory=lambda: ["text/plain"])
    blocking: bool = False


class MessageSendParams(ProtocolModel):
    """Corpo de POST /message/stream."""

    message: Message
    configuration: MessageSendConfiguration = Field(default_factory=MessageSendConfiguration)
    metadata: dict[str, Any] = Field(default_factory=dict)
