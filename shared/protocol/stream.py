"""
Enquadramento SSE do protocolo de agentes.

Lado servidor: event_frame() serializa cada evento como "event: <kind>" +
"data: <json>"; KEEPALIVE e um comentario SSE que os clientes ignoram.
Lado cliente: iter_sse_data() junta as linhas "data:" de cada evento e
entrega o payload decodificado (ou a string crua quando nao e JSON).
"""

import json
from typing import AsyncIterator

KEEPALIVE = ": keepalive\n\n"


def sse_event(event_type: str, data: dict) -> str:
    # ensure_ascii=False: acentos chegam intactos ao cliente
    return f"event: {event_type}\ndata: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


def event_frame(event) -> str:
    """Serializa um modelo do protocolo como frame SSE."""
    return sse_event(event.kind, event.to_wire())


def _safe_json(content: str) -> dict | str:
    try:
        return json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return content


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[dict | str]:
    """Agrupa linhas SSE em frames e devolve o campo data de cada um.

    Comentarios (": keepalive") e campos event/id/retry sao ignorados;
    multiplas linhas data: do mesmo frame sao unidas com "\\n".
    O kind do evento vem do proprio JSON, nao da linha event:.
    """
    data_lines: list[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data_lines:
                yield _safe_json("\n".join(data_lines))
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)

    # Stream fechado sem linha em branco final
    if data_lines:
        yield _safe_json("\n".join(data_lines))
