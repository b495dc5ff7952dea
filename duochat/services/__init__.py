"""Service layer: chat orchestration and AI provider adapters."""

from .chat_service import ChatService, get_chat_service  # noqa: F401
from .image_provider import GeminiImageProvider, ImageGenerationProvider  # noqa: F401
from .text_provider import MistralTextProvider, TextCompletionProvider  # noqa: F401
