"""
Descritor publico do Assistant Orchestrator.
"""

from projects.assistant.config import assistant_settings
from shared.protocol.models import AgentCapabilities, AgentCard, AgentSkill


def build_assistant_card() -> AgentCard:
    return AgentCard(
        name=assistant_settings.agent_name,
        description=(
            "Orquestra tarefas delegando a agentes especialistas "
            "(calculadora, clima, consultas estruturadas)."
        ),
        url=assistant_settings.public_url,
        version=assistant_settings.agent_version,
        capabilities=AgentCapabilities(streaming=True, state_transition_history=True),
        default_input_modes=["text/plain"],
        default_output_modes=["text/plain"],
        skills=[
            AgentSkill(
                id="delegate_task",
                name="Task Delegation",
                description="Entende o pedido e roteia para o especialista adequado.",
                examples=["Quanto e 2+2?", "Vai chover em Paris amanha?"],
            ),
            AgentSkill(
                id="general",
                name="Resposta direta",
                description="Responde perguntas gerais quando nenhum especialista se aplica.",
            ),
        ],
    )
