"""
Testes das utilidades SSE.

Testa:
  - sse_event: formato event/data com acentos preservados
  - event_frame: kind do modelo vira nome do evento
  - iter_sse_data: frames, comentarios keepalive, multiplas linhas data,
    stream sem linha em branco final
  - _safe_json
"""

import json

import pytest

from shared.protocol.models import TaskStatusUpdateEvent
from shared.protocol.stream import KEEPALIVE, _safe_json, event_frame, iter_sse_data, sse_event


async def _lines(*lines):
    for line in lines:
        yield line


async def _collect(lines):
    return [item async for item in iter_sse_data(lines)]


def test_sse_event_format():
    frame = sse_event("status-update", {"texto": "cálculo"})

    assert frame.startswith("event: status-update\ndata: ")
    assert frame.endswith("\n\n")
    assert "cálculo" in frame


def test_event_frame_uses_model_kind():
    frame = event_frame(TaskStatusUpdateEvent(task_id="t1", context_id="c1"))

    header, data_line, _, _ = frame.split("\n")
    assert header == "event: status-update"
    payload = json.loads(data_line.removeprefix("data: "))
    assert payload["taskId"] == "t1"
    assert payload["final"] is False


@pytest.mark.asyncio
async def test_iter_sse_data_parses_frames_and_skips_comments():
    items = await _collect(_lines(
        ": keepalive",
        "",
        "event: task",
        'data: {"kind": "task", "id": "t1"}',
        "",
        "event: status-update",
        'data: {"kind": "status-update"}',
        "",
    ))

    assert items == [{"kind": "task", "id": "t1"}, {"kind": "status-update"}]


@pytest.mark.asyncio
async def test_iter_sse_data_joins_multiline_data():
    items = await _collect(_lines("data: {\"a\":", "data: 1}", ""))
    assert items == [{"a": 1}]


@pytest.mark.asyncio
async def test_iter_sse_data_flushes_last_frame_without_blank_line():
    items = await _collect(_lines('data: {"kind": "task"}'))
    assert items == [{"kind": "task"}]


@pytest.mark.asyncio
async def test_iter_sse_data_returns_raw_string_for_invalid_json():
    items = await _collect(_lines("data: nao-json", ""))
    assert items == ["nao-json"]


def test_keepalive_is_sse_comment():
    assert KEEPALIVE.startswith(":")


def test_safe_json():
    assert _safe_json('{"a": 1}') == {"a": 1}
    assert _safe_json("texto") == "texto"
