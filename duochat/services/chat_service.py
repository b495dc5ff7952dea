"""Orchestration service for chats and message exchanges.

The ChatService receives validated payloads from the controllers, talks to
the chat store and the AI providers, and returns records ready to be sent
to the client.  Every record leaving the service is passed through the
output sanitiser, so text stored before input sanitisation existed (or
text produced by a provider) is escaped on the way out.
"""

from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Awaitable, TypeVar

from loguru import logger

from ..config.app_config import get_app_config
from ..config.provider_config import get_provider_config
from ..models.enums import MessageRole, ProviderModel, ResponseType
from ..models.records import ChatRecord, MessageRecord
from ..models.requests import ChatCreate, MessageCreate
from ..models.responses import ChatDetail, MessageExchange
from ..store.chat_store import ChatStore, create_store
from ..utils.error_handler import NotFoundError, UpstreamProviderError
from ..utils.sanitizer import sanitize_stored_text, sanitize_url
from .image_provider import GeminiImageProvider, ImageGenerationProvider
from .text_provider import MistralTextProvider, TextCompletionProvider

T = TypeVar("T")

IMAGE_FAILURE_MESSAGE = (
    "Sorry, the image could not be generated. "
    "Please try a different prompt or try again later."
)
IMAGE_TEXT_REPLY_PREFIX = "The image provider could not create an image but replied: "


class ChatService:
    """Coordinates the chat store with the text and image providers.

    Parameters
    ----------
    store: ChatStore
        Persistence backend for chats and messages.
    text_provider: TextCompletionProvider
        Produces assistant replies for ``responseType=text``.
    image_provider: ImageGenerationProvider
        Produces image references for ``responseType=image``.
    provider_timeout: float
        Upper bound in seconds on any single provider call.
    """

    def __init__(
        self,
        store: ChatStore,
        text_provider: TextCompletionProvider,
        image_provider: ImageGenerationProvider,
        provider_timeout: float = 60.0,
    ) -> None:
        self.store = store
        self.text_provider = text_provider
        self.image_provider = image_provider
        self.provider_timeout = provider_timeout

    # ------------------------------------------------------------------
    # Chats

    def create_chat(self, payload: ChatCreate) -> ChatRecord:
        chat = self.store.create_chat(payload.title, owner_id=payload.owner_id)
        logger.info("Created chat {}", chat.id)
        return self._present_chat(chat)

    def list_chats(self) -> list[ChatRecord]:
        return [self._present_chat(chat) for chat in self.store.list_chats()]

    def get_chat(self, chat_id: int) -> ChatDetail:
        chat = self.store.get_chat(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        messages = self.store.get_messages_by_chat_id(chat_id)
        return ChatDetail(
            chat=self._present_chat(chat),
            messages=[self._present_message(message) for message in messages],
        )

    def delete_chat(self, chat_id: int) -> None:
        if not self.store.delete_chat(chat_id):
            raise NotFoundError("Chat not found")
        logger.info("Deleted chat {}", chat_id)

    # ------------------------------------------------------------------
    # Messages

    async def send_message(self, payload: MessageCreate) -> MessageExchange:
        """Run one prompt through the matching provider and store the turn.

        The provider is called before anything is written, so a failing
        text completion leaves the chat untouched.  Image failures are
        reported in-band as the assistant's reply instead.

        Raises
        ------
        NotFoundError
            If ``payload.chat_id`` does not name a live chat.
        UpstreamProviderError
            If the text provider fails or times out.
        """
        if self.store.get_chat(payload.chat_id) is None:
            raise NotFoundError("Chat not found")

        model = ProviderModel.for_response_type(payload.response_type)
        if payload.response_type == ResponseType.IMAGE:
            reply, reply_type = await self._generate_image_reply(payload.content)
        else:
            reply = await self._bounded(self.text_provider.complete(payload.content), "text")
            reply_type = ResponseType.TEXT

        user_message = self.store.create_message(
            payload.chat_id,
            payload.content,
            MessageRole.USER,
            model,
            payload.response_type,
        )
        assistant_message = self.store.create_message(
            payload.chat_id,
            reply,
            MessageRole.ASSISTANT,
            model,
            reply_type,
        )
        if user_message is None or assistant_message is None:
            # Chat was deleted while the provider call was in flight
            raise NotFoundError("Chat not found")

        logger.info(
            "Stored exchange in chat {} (messages {} and {})",
            payload.chat_id,
            user_message.id,
            assistant_message.id,
        )
        return MessageExchange(
            user_message=self._present_message(user_message),
            assistant_message=self._present_message(assistant_message),
        )

    async def _generate_image_reply(self, prompt: str) -> tuple[str, ResponseType]:
        try:
            reference = await self._bounded(self.image_provider.generate_image(prompt), "image")
        except UpstreamProviderError as exc:
            logger.warning("Image generation failed: {}", exc)
            if exc.reply:
                return IMAGE_TEXT_REPLY_PREFIX + exc.reply, ResponseType.TEXT
            return IMAGE_FAILURE_MESSAGE, ResponseType.TEXT
        return reference, ResponseType.IMAGE

    async def _bounded(self, call: Awaitable[T], kind: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.provider_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("The {} provider timed out after {}s", kind, self.provider_timeout)
            raise UpstreamProviderError(f"The {kind} provider timed out") from exc

    # ------------------------------------------------------------------
    # Output sanitisation

    @staticmethod
    def _present_chat(chat: ChatRecord) -> ChatRecord:
        return chat.model_copy(update={"title": sanitize_stored_text(chat.title)})

    @staticmethod
    def _present_message(message: MessageRecord) -> MessageRecord:
        if message.role == MessageRole.ASSISTANT and message.response_type == ResponseType.IMAGE:
            reference = sanitize_url(message.content)
            if reference:
                return message.model_copy(update={"content": reference})
        return message.model_copy(update={"content": sanitize_stored_text(message.content)})


@lru_cache()
def get_chat_service() -> ChatService:
    """Dependency injector for ChatService instances.

    FastAPI will call this function to obtain a singleton ChatService
    wired from the environment configuration.
    """
    app_config = get_app_config()
    provider_config = get_provider_config()
    return ChatService(
        store=create_store(app_config),
        text_provider=MistralTextProvider(provider_config),
        image_provider=GeminiImageProvider(provider_config, uploads_dir=app_config.uploads_dir),
        provider_timeout=app_config.provider_timeout,
    )
