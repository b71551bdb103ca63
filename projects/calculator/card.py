"""
Descritor publico do Calculator Agent.
"""

from projects.calculator.config import calculator_settings
from shared.protocol.models import AgentCapabilities, AgentCard, AgentSkill

SKILL_ID = "calculator"


def build_calculator_card() -> AgentCard:
    return AgentCard(
        name=calculator_settings.agent_name,
        description="Resolve expressões aritméticas e gera tabuadas.",
        url=calculator_settings.public_url,
        version=calculator_settings.agent_version,
        capabilities=AgentCapabilities(streaming=True, state_transition_history=True),
        default_input_modes=["text/plain"],
        default_output_modes=["text/plain"],
        skills=[
            AgentSkill(
                id=SKILL_ID,
                name="Calculator",
                description="Calcula expressões aritméticas e responde perguntas de matemática.",
                tags=["math", "arithmetic"],
                examples=["Calculate 5+7", "What is 12 divided by 3?", "Multiplication table of 4"],
            ),
        ],
    )
