"""Request schemas and the validation entry point.

Payloads are sanitised before they reach these models (see
``utils.request_pipeline``), so the content rules below run against
escaped text.  The XSS and SQL signatures are a second line of defence
behind escaping and are known to be incomplete: they reject common
attack shapes, not every possible one.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticCustomError

from ..utils.error_handler import FieldError, PayloadValidationError
from .enums import MessageRole, ProviderModel, ResponseType
from .records import CamelModel

MAX_SAFE_INTEGER = 2**53 - 1

XSS_PATTERN = re.compile(
    r"<script|javascript:|data:|vbscript:|<iframe|<img|onerror|onload|onclick|onmouseover"
    r"|onfocus|onblur|onkeypress|onsubmit|document\.|window\.|eval\(|setTimeout\(|setInterval\("
    r"|Function\(|fetch\(|XMLHttpRequest|ActiveXObject",
    re.IGNORECASE,
)
SQL_INJECTION_PATTERN = re.compile(
    r"(\b(select|insert|update|delete|drop|alter|create|union|into|load_file|outfile|from|where"
    r"|database|table)\b.*(\b(from|into)\b|\*|--|;))",
    re.IGNORECASE,
)
SAFE_TITLE_PATTERN = re.compile(r"^[a-zA-Z0-9\s_\-.,!?&()\[\]:;'\"+]{1,100}$")
FORBIDDEN_IMAGE_TERMS = re.compile(r"\b(porn|nsfw|nude|deepfake|hentai|explicit)\b", re.IGNORECASE)

PositiveId = Annotated[int, Field(strict=True, gt=0, lt=MAX_SAFE_INTEGER)]

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ChatCreate(CamelModel):
    """Body of ``POST /api/chat``."""

    title: str = Field(..., min_length=1, max_length=100)
    owner_id: Optional[PositiveId] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        if XSS_PATTERN.search(value):
            raise PydanticCustomError("unsafe_pattern", "Title contains a disallowed pattern")
        if SQL_INJECTION_PATTERN.search(value):
            raise PydanticCustomError("unsafe_sql", "Title contains a disallowed SQL pattern")
        if not SAFE_TITLE_PATTERN.match(value):
            raise PydanticCustomError(
                "unsafe_characters",
                "Title may only contain letters, digits and common punctuation",
            )
        return value


class MessageCreate(CamelModel):
    """A message payload.

    Field order matters: ``content`` is declared last so its validator can
    see the already-validated ``response_type``.
    """

    chat_id: PositiveId
    role: MessageRole
    model: Optional[ProviderModel] = Field(
        default=None,
        description="Deprecated. The provider is derived from responseType.",
    )
    response_type: ResponseType
    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str, info: ValidationInfo) -> str:
        if XSS_PATTERN.search(value):
            raise PydanticCustomError("unsafe_pattern", "Message contains a disallowed pattern")
        if info.data.get("response_type") == ResponseType.IMAGE and FORBIDDEN_IMAGE_TERMS.search(value):
            raise PydanticCustomError(
                "forbidden_image_content",
                "Prompt contains content that is not allowed for image generation",
            )
        return value

    @model_validator(mode="after")
    def derive_model(self) -> "MessageCreate":
        derived = ProviderModel.for_response_type(self.response_type)
        if self.model is not None and self.model != derived:
            logger.warning(
                "Ignoring deprecated model={} for responseType={}; using {}",
                self.model.value,
                self.response_type.value,
                derived.value,
            )
        self.model = derived
        return self


class UserMessageCreate(MessageCreate):
    """Body of ``POST /api/chat/message``: only users may send prompts."""

    @field_validator("role")
    @classmethod
    def check_role(cls, value: MessageRole) -> MessageRole:
        if value != MessageRole.USER:
            raise PydanticCustomError("role_not_user", "Only user messages can be sent")
        return value


class ChatIdParam(BaseModel):
    """The ``{id}`` path parameter of the chat routes."""

    id: int

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, value: Any) -> int:
        text = value.strip() if isinstance(value, str) else None
        if not text or not re.fullmatch(r"[0-9]+", text):
            raise PydanticCustomError("chat_id", "Chat ID must be a valid positive number")
        parsed = int(text)
        if not 0 < parsed < MAX_SAFE_INTEGER:
            raise PydanticCustomError("chat_id", "Chat ID must be a valid positive number")
        return parsed


def field_errors(exc: ValidationError) -> list[FieldError]:
    """Flatten a pydantic ValidationError into path/message pairs."""
    errors = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "body"
        errors.append(FieldError(path=path, message=error["msg"]))
    return errors


def validate(schema: type[SchemaT], payload: Any) -> SchemaT:
    """Validate ``payload`` against ``schema``.

    Returns the populated model or raises :class:`PayloadValidationError`
    listing every rejected field.
    """
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise PayloadValidationError(field_errors(exc)) from exc
