"""API controller for chat operations.

Every route is guarded by :func:`~duochat.utils.request_pipeline.guard`,
which rejects bad content types, rate-limited clients and invalid payloads
before the route body runs.  Routes registered here are mounted under
``/api`` by ``main.py``.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from ..models.records import ChatRecord
from ..models.requests import ChatCreate, ChatIdParam, UserMessageCreate
from ..models.responses import ChatDetail, MessageExchange, StatusMessage
from ..services.chat_service import ChatService, get_chat_service
from ..utils.error_handler import ChatError, InternalError
from ..utils.request_pipeline import guard

router = APIRouter(prefix="/api", tags=["Chat"])


@router.post("/chat/message", response_model=MessageExchange)
async def send_message_endpoint(
    payload: UserMessageCreate = Depends(guard("message_send", UserMessageCreate)),
    service: ChatService = Depends(get_chat_service),
) -> MessageExchange:
    """Send a prompt and return the stored user and assistant messages.

    ``responseType`` selects the provider: ``text`` asks the text
    provider for a completion, ``image`` asks the image provider for an
    image whose ``/uploads/...`` path becomes the assistant's content.
    """
    try:
        logger.info("Received message for chat {} ({})", payload.chat_id, payload.response_type.value)
        return await service.send_message(payload)
    except ChatError:
        raise
    except Exception as exc:
        logger.exception("Unhandled exception during message processing")
        raise InternalError("An error occurred while processing your message") from exc


@router.post("/chat", response_model=ChatRecord)
async def create_chat_endpoint(
    payload: ChatCreate = Depends(guard("chat_create", ChatCreate)),
    service: ChatService = Depends(get_chat_service),
) -> ChatRecord:
    """Create a new, empty chat."""
    try:
        return service.create_chat(payload)
    except ChatError:
        raise
    except Exception as exc:
        logger.exception("Failed to create chat")
        raise InternalError("Failed to create new chat") from exc


@router.get("/chats", response_model=list[ChatRecord])
async def list_chats_endpoint(
    _: None = Depends(guard("chat_list")),
    service: ChatService = Depends(get_chat_service),
) -> list[ChatRecord]:
    """List all chats, newest first."""
    try:
        return service.list_chats()
    except Exception as exc:
        logger.exception("Failed to list chats")
        raise InternalError("Failed to fetch chats") from exc


@router.get("/chat/{id}", response_model=ChatDetail)
async def get_chat_endpoint(
    params: ChatIdParam = Depends(guard("chat_read", ChatIdParam, source="path")),
    service: ChatService = Depends(get_chat_service),
) -> ChatDetail:
    """Return a chat with its messages in the order they were sent."""
    try:
        return service.get_chat(params.id)
    except ChatError:
        raise
    except Exception as exc:
        logger.exception("Failed to fetch chat {}", params.id)
        raise InternalError("Failed to fetch chat") from exc


@router.delete("/chat/{id}", response_model=StatusMessage)
async def delete_chat_endpoint(
    params: ChatIdParam = Depends(guard("chat_delete", ChatIdParam, source="path")),
    service: ChatService = Depends(get_chat_service),
) -> StatusMessage:
    """Delete a chat and every message in it."""
    try:
        service.delete_chat(params.id)
        return StatusMessage(message="Chat deleted successfully")
    except ChatError:
        raise
    except Exception as exc:
        logger.exception("Failed to delete chat {}", params.id)
        raise InternalError("Failed to delete chat") from exc
