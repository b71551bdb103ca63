"""
Testes do CalculatorExecutor.

Testa:
  - fluxo completo: task -> working -> completed
  - texto sem expressao -> input-required; resposta retoma a task
  - tabuada publicada como artefato
  - erro de avaliacao -> failed
  - cancelamento de task pausada
  - task ja finalizada
"""

import pytest

from projects.calculator.executor import ASK_EXPRESSION, CalculatorExecutor
from shared.protocol.channel import EventChannel
from shared.protocol.models import (
    MessageSendParams,
    Task,
    TaskArtifactUpdateEvent,
    TaskState,
    text_message,
)
from shared.protocol.server import RequestContext


@pytest.fixture
def calculator():
    return CalculatorExecutor(agent_name="Calculator Agent", table_size=3)


@pytest.fixture
def send(drain_channel):
    async def run(executor, text, task_id=None, context_id=None):
        message = text_message(text, role="user", task_id=task_id, context_id=context_id)
        context = RequestContext.from_params(MessageSendParams(message=message))
        channel = EventChannel(task_id=context.task_id)
        await executor.execute(context, channel)
        return context, await drain_channel(channel)

    return run


@pytest.mark.asyncio
async def test_calculation_flow(calculator, send):
    context, events = await send(calculator, "Calculate 25 * 4 + 16")

    assert isinstance(events[0], Task)
    assert events[0].status.state == TaskState.SUBMITTED
    assert events[1].status.state == TaskState.WORKING
    assert events[1].status.message.text == "🧮 Calculando..."

    final = events[-1]
    assert final.final is True
    assert final.status.state == TaskState.COMPLETED
    assert final.status.message.text == "25 * 4 + 16 = 116"
    assert final.status.message.skill_id == "calculator"
    assert final.status.message.citations[0].tool == "Calculator Agent"
    assert final.task_id == context.task_id


@pytest.mark.asyncio
async def test_missing_expression_pauses_for_input(calculator, send):
    context, events = await send(calculator, "Calculate something for me")

    final = events[-1]
    assert final.final is True
    assert final.status.state == TaskState.INPUT_REQUIRED
    assert final.status.message.text == ASK_EXPRESSION
    assert calculator.health_details()["awaiting_input"] == 1

    _, events = await send(calculator, "7 * 6", task_id=context.task_id, context_id=context.context_id)

    assert not any(isinstance(e, Task) for e in events)
    assert events[-1].status.state == TaskState.COMPLETED
    assert events[-1].status.message.text == "7 * 6 = 42"


@pytest.mark.asyncio
async def test_multiplication_table_artifact(calculator, send):
    _, events = await send(calculator, "Multiplication table of 4")

    artifacts = [e for e in events if isinstance(e, TaskArtifactUpdateEvent)]
    assert len(artifacts) == 1
    artifact = artifacts[0].artifact
    assert artifact.name == "table_of_4.txt"
    assert artifact.mime_type == "text/plain"
    assert artifact.parts[0].text.endswith("4 x 3 = 12\n")
    assert events[-1].status.state == TaskState.COMPLETED
    assert events[-1].status.message.text == "Tabuada do 4 gerada (veja o arquivo anexo)."


@pytest.mark.asyncio
async def test_evaluation_error_fails_task(calculator, send):
    _, events = await send(calculator, "Calculate 1 / 0")

    final = events[-1]
    assert final.final is True
    assert final.status.state == TaskState.FAILED
    assert "zero" in final.status.message.text


@pytest.mark.asyncio
async def test_cancel_paused_task(calculator, send):
    context, _ = await send(calculator, "Calculate something")

    await calculator.cancel(context.task_id)
    _, events = await send(calculator, "2+2", task_id=context.task_id, context_id=context.context_id)

    assert events[-1].status.state == TaskState.CANCELLED
    assert events[-1].final is True


@pytest.mark.asyncio
async def test_cancel_unknown_task_is_ignored(calculator):
    await calculator.cancel("nao-existe")
    assert calculator._cancelled == set()


@pytest.mark.asyncio
async def test_finished_task_replies_with_previous_state(calculator, send):
    context, _ = await send(calculator, "2+2")

    _, events = await send(calculator, "3+3", task_id=context.task_id, context_id=context.context_id)

    assert len(events) == 1
    assert events[0].final is True
    assert events[0].status.state == TaskState.COMPLETED
    assert "já finalizada" in events[0].status.message.text
