"""Protocolo de agentes: modelos, SSE, canal de eventos, cliente e servidor."""
