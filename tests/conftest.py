"""
Fixtures compartilhadas.

  - fake_model_factory: substitui get_model por modelos com resposta fixa
  - specialist_server: especialistas falsos servidos por httpx.MockTransport
    (descritor, /message/stream com roteiro de eventos SSE, cancelamento)
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
import pytest
from langchain_core.messages import AIMessage

from shared.protocol.models import (
    AgentCard,
    AgentSkill,
    TaskState,
    TaskStatus,
    TaskStatusUpdateEvent,
    text_message,
)
from shared.protocol.stream import sse_event


class FakeChatModel:
    """Modelo com resposta fixa (ou erro) que registra as chamadas."""

    def __init__(self, reply: str = "", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.reply)


@pytest.fixture
def chat_model():
    """Classe FakeChatModel (conftest nao e importavel nos testes)."""
    return FakeChatModel


@pytest.fixture
def fake_model_factory():
    """Cria model_factory(role) a partir de {role: FakeChatModel}."""

    def build(classifier: FakeChatModel | None = None, answer: FakeChatModel | None = None):
        models = {
            "classifier": classifier or FakeChatModel("general"),
            "answer": answer or FakeChatModel("Resposta direta."),
        }

        def factory(role: str):
            return models[role]

        factory.models = models
        return factory

    return build


def status(
    state: str,
    text: str = "",
    *,
    task_id: str = "esp-task-1",
    context_id: str = "esp-ctx-1",
    final: bool = False,
    skill: str | None = None,
    citations: list | None = None,
) -> TaskStatusUpdateEvent:
    """Evento status-update com ids do especialista."""
    return TaskStatusUpdateEvent(
        task_id=task_id,
        context_id=context_id,
        status=TaskStatus(
            state=TaskState(state),
            message=text_message(
                text,
                task_id=task_id,
                context_id=context_id,
                citations=citations or [],
                metadata={"skillId": skill} if skill else {},
            ),
        ),
        final=final,
    )


@pytest.fixture
def status_event():
    return status


@dataclass
class FakeSpecialist:
    """Roteiro de um especialista falso.

    scripts: um item por chamada a /message/stream. Cada item pode ser
    lista de eventos (modelos ou dicts), int (status HTTP de erro),
    Exception (falha de transporte) ou str (corpo SSE bruto).
    """

    card: dict
    scripts: list[Any] = field(default_factory=list)
    received: list[dict] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    card_status: int = 200


def _render(events: list) -> str:
    frames = []
    for event in events:
        if isinstance(event, dict):
            frames.append(sse_event(event.get("kind", "unknown"), event))
        else:
            frames.append(sse_event(event.kind, event.to_wire()))
    return "".join(frames)


@pytest.fixture
def specialist_server():
    """Fabrica (hosts -> FakeSpecialist) -> httpx.AsyncClient com MockTransport."""

    def build(specialists: dict[str, FakeSpecialist]) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            fake = specialists.get(request.url.host)
            if fake is None:
                raise httpx.ConnectError("connection refused", request=request)

            path = request.url.path
            if request.method == "GET" and path == "/.well-known/agent.json":
                return httpx.Response(fake.card_status, json=fake.card)

            if request.method == "POST" and path == "/message/stream":
                fake.received.append(json.loads(request.content))
                script = fake.scripts.pop(0)
                if isinstance(script, Exception):
                    raise script
                if isinstance(script, int):
                    return httpx.Response(script, text="erro")
                body = script if isinstance(script, str) else _render(script)
                return httpx.Response(
                    200,
                    headers={"content-type": "text/event-stream"},
                    content=body.encode(),
                )

            if request.method == "POST" and path.startswith("/tasks/"):
                fake.cancelled.append(path.split("/")[2])
                return httpx.Response(202, json={"status": "cancel-requested"})

            return httpx.Response(404)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build


def card_dict(name: str, *skill_ids: str) -> dict:
    return AgentCard(
        name=name,
        skills=[AgentSkill(id=skill_id, name=skill_id) for skill_id in skill_ids],
    ).to_wire()


@pytest.fixture
def make_card():
    return card_dict


@pytest.fixture
def make_fake_specialist():
    def build(name: str, *skill_ids: str, scripts: list | None = None) -> FakeSpecialist:
        return FakeSpecialist(card=card_dict(name, *skill_ids), scripts=list(scripts or []))

    return build


async def drain(channel) -> list:
    """Coleta todos os eventos de um EventChannel ja finalizado."""
    await channel.finished()
    return [event async for event in channel]


@pytest.fixture
def drain_channel() -> Callable:
    return drain
