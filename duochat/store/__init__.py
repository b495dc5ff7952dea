"""Store package containing the chat/message persistence backends."""

from .chat_store import ChatStore, InMemoryChatStore, JsonFileChatStore, create_store  # noqa: F401
