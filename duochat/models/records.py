"""Stored chat and message records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import MessageRole, ProviderModel, ResponseType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRecord(CamelModel):
    """A titled conversation container.

    Only ``title`` may change after creation.  Deleting a chat deletes all
    of its messages.
    """

    id: int = Field(..., gt=0, description="Store-assigned identifier, never reused.")
    title: str = Field(..., description="Sanitised chat title.")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC).")
    owner_id: Optional[int] = Field(default=None, description="Optional owning user id.")


class MessageRecord(CamelModel):
    """One immutable turn of a chat."""

    id: int = Field(..., gt=0)
    chat_id: int = Field(..., gt=0)
    content: str
    role: MessageRole
    model: ProviderModel
    response_type: ResponseType = ResponseType.TEXT
    created_at: datetime = Field(default_factory=utc_now)
