"""Response payloads for the chat API."""

from pydantic import Field

from .records import CamelModel, ChatRecord, MessageRecord


class ChatDetail(CamelModel):
    """A chat together with its messages, oldest first."""

    chat: ChatRecord
    messages: list[MessageRecord] = Field(default_factory=list)


class MessageExchange(CamelModel):
    """The two records produced by one prompt."""

    user_message: MessageRecord
    assistant_message: MessageRecord


class StatusMessage(CamelModel):
    message: str
