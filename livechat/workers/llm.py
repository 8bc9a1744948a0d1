from __future__ import annotations

from typing import Any, List, Optional, Sequence

from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.litellm import LiteLLMProvider

from livechat.config import get_settings
from livechat.constants.default_system_prompt import DefaultSystemPrompt
from livechat.infra.logging_config import get_logger
from livechat.schemas.guest import AIHistoryItem, AIReply

logger = get_logger("llm")

AI_SERVICE_NAME = "litellm"


def _history_to_message_list(history: Sequence[AIHistoryItem]) -> List[Any]:
    """Convert chat history to pydantic_ai messages. Agent replies count as assistant turns."""
    out: List[Any] = []
    for item in history:
        text = (item.text or "").strip()
        if not text:
            continue
        if item.role == "user":
            out.append(ModelRequest(parts=[UserPromptPart(content=text)]))
        else:
            out.append(ModelResponse(parts=[TextPart(content=text)]))
    return out


def _message_list_with_system_prompt(
    system_prompt: str, history: Sequence[AIHistoryItem]
) -> List[Any]:
    """System prompt always first, then the conversation history."""
    # https://ai.pydantic.dev/agent/#system-prompts
    system_message = ModelRequest(parts=[SystemPromptPart(content=system_prompt)])
    return [system_message] + _history_to_message_list(history)


class LLMAutoResponder:
    def __init__(
        self,
        model_name: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> None:
        provider = LiteLLMProvider(api_key=api_key, api_base=api_base)
        model = OpenAIChatModel(model_name, provider=provider)
        logger.info(f"Initializing LLM auto-responder with model {model_name}")
        self._model_name = model_name
        self._system_prompt = system_prompt or DefaultSystemPrompt.CONTENT
        self._agent = Agent(model)

    def respond(
        self, latest_guest_message: str, history: Sequence[AIHistoryItem]
    ) -> Optional[AIReply]:
        # the latest guest message is the prompt, not part of the history
        previous = list(history)
        if previous and previous[-1].role == "user" and previous[-1].text == latest_guest_message:
            previous = previous[:-1]
        message_history = _message_list_with_system_prompt(self._system_prompt, previous)
        result = self._agent.run_sync(
            latest_guest_message,
            message_history=message_history,
        )
        text = str(result.output).strip()
        if not text:
            return None
        return AIReply(message=text, service=AI_SERVICE_NAME, model=self._model_name)


def build_auto_responder_from_env() -> Optional[LLMAutoResponder]:
    settings = get_settings()
    if not settings.ai_auto_response_enabled:
        return None
    logger.info(
        "LLM auto-responder config: model=%s, api_key=%s, api_base=%s",
        settings.llm_model,
        "set" if settings.litellm_api_key else "not set",
        settings.litellm_api_base or "(default)",
    )
    if not settings.litellm_api_key:
        logger.warning(
            "LITELLM_API_KEY is not set; set it to a valid OpenAI or LiteLLM API key to avoid 401 errors."
        )
    return LLMAutoResponder(
        model_name=settings.llm_model,
        api_key=settings.litellm_api_key,
        api_base=settings.litellm_api_base,
    )
