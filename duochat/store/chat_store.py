"""Chat and message persistence.

:class:`ChatStore` is the CRUD contract the service layer depends on.
Lookups report absence through ``None``/``False`` rather than raising.
Identifiers come from sequences owned by the store and are never handed
out twice, even after the record they named has been deleted.
"""

from __future__ import annotations

import itertools
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..models.enums import MessageRole, ProviderModel, ResponseType
from ..models.records import ChatRecord, MessageRecord


class ChatStore(ABC):
    """CRUD interface for chats and their messages."""

    @abstractmethod
    def create_chat(self, title: str, owner_id: Optional[int] = None) -> ChatRecord:
        ...

    @abstractmethod
    def get_chat(self, chat_id: int) -> Optional[ChatRecord]:
        ...

    @abstractmethod
    def list_chats(self) -> list[ChatRecord]:
        """Return every chat, newest first."""

    @abstractmethod
    def update_chat_title(self, chat_id: int, title: str) -> Optional[ChatRecord]:
        ...

    @abstractmethod
    def delete_chat(self, chat_id: int) -> bool:
        """Delete a chat and all of its messages; ``False`` if it did not exist."""

    @abstractmethod
    def create_message(
        self,
        chat_id: int,
        content: str,
        role: MessageRole,
        model: ProviderModel,
        response_type: ResponseType = ResponseType.TEXT,
    ) -> Optional[MessageRecord]:
        """Append a message; ``None`` when ``chat_id`` is not a live chat."""

    @abstractmethod
    def get_messages_by_chat_id(self, chat_id: int) -> list[MessageRecord]:
        """Return a chat's messages, oldest first."""


class InMemoryChatStore(ChatStore):
    """Process-local store backed by dictionaries."""

    def __init__(self) -> None:
        self._chats: dict[int, ChatRecord] = {}
        self._messages: dict[int, MessageRecord] = {}
        self._last_chat_id = 0
        self._last_message_id = 0
        self._chat_ids = itertools.count(1)
        self._message_ids = itertools.count(1)

    def _next_chat_id(self) -> int:
        self._last_chat_id = next(self._chat_ids)
        return self._last_chat_id

    def _next_message_id(self) -> int:
        self._last_message_id = next(self._message_ids)
        return self._last_message_id

    def _commit(self, chats: dict[int, ChatRecord], messages: dict[int, MessageRecord]) -> None:
        """Install a new state; subclasses persist it first and may refuse by raising."""
        self._chats = chats
        self._messages = messages

    def create_chat(self, title: str, owner_id: Optional[int] = None) -> ChatRecord:
        chat = ChatRecord(id=self._next_chat_id(), title=title, owner_id=owner_id)
        self._commit({**self._chats, chat.id: chat}, self._messages)
        logger.debug("Created chat id={}", chat.id)
        return chat.model_copy()

    def get_chat(self, chat_id: int) -> Optional[ChatRecord]:
        chat = self._chats.get(chat_id)
        return chat.model_copy() if chat is not None else None

    def list_chats(self) -> list[ChatRecord]:
        chats = sorted(self._chats.values(), key=lambda chat: (chat.created_at, chat.id), reverse=True)
        return [chat.model_copy() for chat in chats]

    def update_chat_title(self, chat_id: int, title: str) -> Optional[ChatRecord]:
        chat = self._chats.get(chat_id)
        if chat is None:
            return None
        updated = chat.model_copy(update={"title": title})
        self._commit({**self._chats, chat_id: updated}, self._messages)
        return updated.model_copy()

    def delete_chat(self, chat_id: int) -> bool:
        if chat_id not in self._chats:
            return False
        chats = {key: chat for key, chat in self._chats.items() if key != chat_id}
        messages = {key: message for key, message in self._messages.items() if message.chat_id != chat_id}
        removed = len(self._messages) - len(messages)
        self._commit(chats, messages)
        logger.debug("Deleted chat id={} with {} messages", chat_id, removed)
        return True

    def create_message(
        self,
        chat_id: int,
        content: str,
        role: MessageRole,
        model: ProviderModel,
        response_type: ResponseType = ResponseType.TEXT,
    ) -> Optional[MessageRecord]:
        if chat_id not in self._chats:
            return None
        message = MessageRecord(
            id=self._next_message_id(),
            chat_id=chat_id,
            content=content,
            role=role,
            model=model,
            response_type=response_type,
        )
        self._commit(self._chats, {**self._messages, message.id: message})
        return message.model_copy()

    def get_messages_by_chat_id(self, chat_id: int) -> list[MessageRecord]:
        messages = [message for message in self._messages.values() if message.chat_id == chat_id]
        messages.sort(key=lambda message: (message.created_at, message.id))
        return [message.model_copy() for message in messages]


class JsonFileChatStore(InMemoryChatStore):
    """In-memory store that snapshots itself to a JSON file on every change.

    The last issued identifiers are stored alongside the records so ids stay
    unique across restarts.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.is_file():
            return
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if not isinstance(payload, dict):
                raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
            chats = [ChatRecord.model_validate(item) for item in payload.get("chats", [])]
            messages = [MessageRecord.model_validate(item) for item in payload.get("messages", [])]
            last_chat_id = max([int(payload.get("lastChatId", 0))] + [chat.id for chat in chats])
            last_message_id = max([int(payload.get("lastMessageId", 0))] + [message.id for message in messages])
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Failed to load chat store from {}: {}", self.path, exc)
            return

        self._chats = {chat.id: chat for chat in chats}
        self._messages = {message.id: message for message in messages}
        self._last_chat_id = last_chat_id
        self._last_message_id = last_message_id
        self._chat_ids = itertools.count(last_chat_id + 1)
        self._message_ids = itertools.count(last_message_id + 1)
        logger.info(
            "Loaded {} chats and {} messages from {}",
            len(self._chats),
            len(self._messages),
            self.path,
        )

    def _commit(self, chats: dict[int, ChatRecord], messages: dict[int, MessageRecord]) -> None:
        # Memory only changes once the snapshot is on disk
        self._write_snapshot(chats, messages)
        super()._commit(chats, messages)

    def _write_snapshot(self, chats: dict[int, ChatRecord], messages: dict[int, MessageRecord]) -> None:
        payload: dict[str, Any] = {
            "lastChatId": self._last_chat_id,
            "lastMessageId": self._last_message_id,
            "chats": [chat.model_dump(mode="json", by_alias=True) for chat in chats.values()],
            "messages": [message.model_dump(mode="json", by_alias=True) for message in messages.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            logger.exception("Failed to write chat store snapshot to {}", self.path)
            raise


def create_store(app_config) -> ChatStore:
    """Build the store selected by ``STORE_TYPE``."""
    if app_config.store_type == "json_file":
        logger.info("Using JSON file chat store at {}", app_config.store_path)
        return JsonFileChatStore(app_config.store_path)
    logger.info("Using in-memory chat store")
    return InMemoryChatStore()
