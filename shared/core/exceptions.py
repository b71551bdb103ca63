"""
Exceções customizadas dos serviços de agentes.
"""

from typing import Any, Optional


class OrchestratorException(Exception):
    """Exceção base para erros do orquestrador e do protocolo de agentes."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class TaskNotFoundException(OrchestratorException):
    """Task não encontrada no ledger."""

    def __init__(self, task_id: str):
        super().__init__(
            message=f"Task {task_id} não encontrada",
            details={"task_id": task_id}
        )


class InvalidTaskTransitionException(OrchestratorException):
    """Transição de estado proibida (task já em estado terminal)."""

    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(
            message=(
                f"Task {task_id} está em estado terminal '{current}' "
                f"e não pode ir para '{requested}'"
            ),
            details={"task_id": task_id, "current": current, "requested": requested}
        )


class SpecialistUnavailableException(OrchestratorException):
    """Especialista não respondeu (timeout, conexão recusada ou HTTP != 2xx)."""

    def __init__(self, address: str, error: str):
        super().__init__(
            message=f"Especialista em {address} indisponível: {error}",
            details={"address": address, "error": error}
        )


class SpecialistProtocolException(OrchestratorException):
    """Especialista respondeu fora do contrato (JSON inválido, schema, SSE)."""

    def __init__(self, address: str, error: str):
        super().__init__(
            message=f"Resposta inválida do especialista em {address}: {error}",
            details={"address": address, "error": error}
        )
