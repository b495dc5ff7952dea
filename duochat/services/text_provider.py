"""Text completion provider backed by Mistral.

Mistral exposes an OpenAI-compatible chat completions endpoint, so the
adapter drives it through LangChain's :class:`~langchain_openai.ChatOpenAI`
with ``base_url`` pointed at Mistral.  The chat model is built lazily so
the application can start without credentials; calling :meth:`complete`
without a key raises :class:`UpstreamProviderError`.
"""

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..config.provider_config import ProviderConfig, get_provider_config
from ..utils.error_handler import UpstreamProviderError


class TextCompletionProvider(Protocol):
    async def complete(self, prompt: str) -> str:
        """Return generated text for ``prompt`` or raise UpstreamProviderError."""
        ...


class MistralTextProvider:
    """Generate chat completions with a Mistral model."""

    def __init__(self, provider_config: ProviderConfig | None = None, llm: Any | None = None) -> None:
        self.provider_config = provider_config or get_provider_config()
        self._llm = llm

    def _get_llm(self) -> Any:
        if self._llm is not None:
            return self._llm
        if not self.provider_config.mistral_api_key:
            raise UpstreamProviderError("MISTRAL_API_KEY is not configured")

        llm_kwargs: dict[str, object] = {
            "api_key": self.provider_config.mistral_api_key,
            "base_url": self.provider_config.mistral_base_url,
            "model": self.provider_config.mistral_model,
            "temperature": self.provider_config.mistral_temperature,
            "timeout": self.provider_config.mistral_timeout,
        }
        if self.provider_config.mistral_max_tokens:
            llm_kwargs["max_tokens"] = self.provider_config.mistral_max_tokens
        self._llm = ChatOpenAI(**llm_kwargs)
        return self._llm

    def _build_messages(self, prompt: str) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if self.provider_config.mistral_system_prompt:
            messages.append(SystemMessage(content=self.provider_config.mistral_system_prompt))
        messages.append(HumanMessage(content=prompt))
        return messages

    async def complete(self, prompt: str) -> str:
        llm = self._get_llm()
        logger.debug("Requesting text completion ({} characters)", len(prompt))
        try:
            result = await llm.ainvoke(self._build_messages(prompt))
        except Exception as exc:
            logger.exception("Text completion request failed")
            raise UpstreamProviderError("Failed to generate chat completion") from exc

        content = result.content
        if isinstance(content, list):
            # Multi-part responses: keep the text parts only
            content = "".join(
                part if isinstance(part, str) else str(part.get("text", ""))
                for part in content
            )
        if not content or not content.strip():
            raise UpstreamProviderError("Text provider returned an empty completion")
        return content
