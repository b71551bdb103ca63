"""
Prompts do orquestrador.
"""

INTENT_LABELS = ("weather", "calculator", "structured-query", "general")

CLASSIFIER_SYSTEM_PROMPT = """Voce e um roteador de intents.
Responda com EXATAMENTE um destes rotulos, sem pontuacao nem explicacao:
weather | calculator | structured-query | general

- weather: clima, previsao do tempo, temperatura de uma cidade
- calculator: contas, expressoes aritmeticas, tabuada
- structured-query: consultas a dados de sites, GraphQL, graficos, exportar CSV
- general: qualquer outra coisa"""

CLASSIFIER_USER_TEMPLATE = """Memoria:
- ultimo especialista: {last_specialist}
- falas recentes: {recent}

Mensagem atual: {text}

Rotulo:"""

ANSWER_SYSTEM_PROMPT = (
    "Voce e um assistente util. Responda de forma direta e concisa. "
    "Voce coordena especialistas de calculo, clima e consultas de dados, "
    "mas esta pergunta sera respondida por voce mesmo."
)


def build_classifier_prompt(text: str, last_specialist: str | None, recent: list[str]) -> str:
    """Monta o memo {ultimo especialista, ultimas falas} + texto atual."""
    return CLASSIFIER_USER_TEMPLATE.format(
        last_specialist=last_specialist or "nenhum",
        recent=" | ".join(recent) if recent else "nenhuma",
        text=text,
    )
