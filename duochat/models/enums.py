"""Enumerations used across models."""

from enum import Enum


class MessageRole(str, Enum):
    """Author of a message.

    ``USER`` denotes the human prompt and ``ASSISTANT`` the provider's reply.
    Every exchange stores exactly one of each.
    """

    USER = "user"
    ASSISTANT = "assistant"


class ResponseType(str, Enum):
    """Kind of reply the user asked for."""

    TEXT = "text"
    IMAGE = "image"


class ProviderModel(str, Enum):
    """Upstream provider that produced (or will produce) a reply."""

    TEXT_PROVIDER = "text-provider"
    IMAGE_PROVIDER = "image-provider"

    @classmethod
    def for_response_type(cls, response_type: ResponseType) -> "ProviderModel":
        """Return the provider that serves ``response_type``."""
        if response_type == ResponseType.IMAGE:
            return cls.IMAGE_PROVIDER
        return cls.TEXT_PROVIDER
