"""
Gerenciamento de LLMs por papel (role).

get_model(role): retorna o modelo adequado para o papel.

Roles disponiveis:
  - classifier: rotulo unico de intent (temperature 0, poucos tokens)
  - answer: resposta direta quando nenhum especialista atende
"""

from langchain.chat_models import init_chat_model

from projects.assistant.config import assistant_settings


def get_model(role: str):
    """Retorna o modelo para o papel.

    Args:
        role: Papel do modelo (classifier, answer).

    Returns:
        ChatModel configurado.
    """
    provider = assistant_settings.llm_provider

    if role == "classifier":
        model_name = assistant_settings.classifier_model
        kwargs = {
            "temperature": 0,
            "max_tokens": assistant_settings.classifier_max_tokens,
            "timeout": assistant_settings.classifier_timeout,
        }
    else:
        model_name = assistant_settings.llm_model
        kwargs = {
            "temperature": assistant_settings.answer_temperature,
            "max_tokens": assistant_settings.answer_max_tokens,
            "timeout": assistant_settings.llm_timeout,
        }

    # Sem retry automatico: falhas degradam para fallback no chamador
    kwargs["max_retries"] = 0

    if provider == "openai":
        if assistant_settings.openai_api_key:
            kwargs["api_key"] = assistant_settings.openai_api_key
        if assistant_settings.openai_base_url:
            kwargs["base_url"] = assistant_settings.openai_base_url
    elif provider == "anthropic" and assistant_settings.anthropic_api_key:
        kwargs["api_key"] = assistant_settings.anthropic_api_key

    return init_chat_model(model_name, model_provider=provider, **kwargs)


def model_label(role: str) -> str:
    """Identificacao "provider:model" usada em citations e logs."""
    model_name = (
        assistant_settings.classifier_model
        if role == "classifier"
        else assistant_settings.llm_model
    )
    return f"{assistant_settings.llm_provider}:{model_name}"
