"""
Streaming Generation Provider - token-by-token completions through LiteLLM
"""

from typing import AsyncIterator, List, Protocol
import logging

from langchain_litellm import ChatLiteLLM
from langchain_core.messages import SystemMessage, HumanMessage, AIMessage

from backend.config import settings
from backend.schemas.chat import ChatMessageOut, MessageRole

logger = logging.getLogger(__name__)


class GenerationProvider(Protocol):
    def stream(
        self,
        system_prompt: str,
        history: List[ChatMessageOut],
        user_message: str,
    ) -> AsyncIterator[str]:
        ...


def build_messages(system_prompt: str, history: List[ChatMessageOut], user_message: str) -> list:
    """System prompt, then history in transcript order, then the new user message"""
    messages = [SystemMessage(content=system_prompt)]
    for msg in history:
        if msg.role == MessageRole.USER:
            messages.append(HumanMessage(content=msg.content))
        else:
            messages.append(AIMessage(content=msg.content))
    messages.append(HumanMessage(content=user_message))
    return messages


class LiteLLMGenerationProvider:
    """
    Streams persona replies from any LiteLLM-supported model

    The deadline is enforced by the caller; this class only streams.
    """

    def __init__(self, llm: ChatLiteLLM = None):
        self.llm = llm or self._initialize_llm()

    def _initialize_llm(self) -> ChatLiteLLM:
        """Initialize LiteLLM client with configured provider"""
        if settings.LLM_MODEL_STRING:
            model_string = settings.LLM_MODEL_STRING
        else:
            model_string = f"{settings.LLM_PROVIDER}/{settings.CHAT_MODEL}"

        litellm_kwargs = {
            "model": model_string,
            "temperature": settings.CHAT_TEMPERATURE,
            "max_tokens": settings.CHAT_MAX_TOKENS,
            "streaming": True,
            "model_kwargs": {
                "presence_penalty": settings.CHAT_PRESENCE_PENALTY,
                "frequency_penalty": settings.CHAT_FREQUENCY_PENALTY,
            },
        }

        if "openai" in model_string.lower() or model_string.startswith("gpt-"):
            litellm_kwargs["api_key"] = settings.OPENAI_API_KEY

        if settings.LLM_API_BASE:
            litellm_kwargs["api_base"] = settings.LLM_API_BASE

        logger.info(f"Initializing LiteLLM with model: {model_string}")
        return ChatLiteLLM(**litellm_kwargs)

    async def stream(
        self,
        system_prompt: str,
        history: List[ChatMessageOut],
        user_message: str,
    ) -> AsyncIterator[str]:
        messages = build_messages(system_prompt, history, user_message)
        async for chunk in self.llm.astream(messages):
            if chunk.content:
                yield chunk.content
