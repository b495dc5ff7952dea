"""Inbound request guard: content type, rate limit, sanitise, validate.

:func:`guard` builds a FastAPI dependency that walks a request through

``RECEIVED -> CONTENT_TYPE_CHECKED -> RATE_CHECKED -> SANITIZED -> VALIDATED``

and hands the validated model to the route.  The request middleware in
``main.py`` then records ``HANDLED`` and ``RESPONDED``.  A failure at any stage raises
the matching :class:`~duochat.utils.error_handler.ChatError`, so rejected
requests never reach the route body.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from fastapi import Request
from loguru import logger
from pydantic import BaseModel

from ..models.requests import validate
from .error_handler import (
    ChatError,
    FieldError,
    PayloadValidationError,
    RateLimitError,
    UnsupportedMediaTypeError,
)
from .rate_limiter import EndpointLimiters
from .sanitizer import sanitize_object

SchemaT = TypeVar("SchemaT", bound=BaseModel)

JSON_CONTENT_TYPE = "application/json"


class PipelineStage(str, Enum):
    RECEIVED = "received"
    CONTENT_TYPE_CHECKED = "content_type_checked"
    RATE_CHECKED = "rate_checked"
    SANITIZED = "sanitized"
    VALIDATED = "validated"
    HANDLED = "handled"
    RESPONDED = "responded"
    REJECTED = "rejected"


def client_key(request: Request, trust_proxy: bool = False) -> str:
    """Identify the caller for rate limiting.

    With ``trust_proxy`` the first ``X-Forwarded-For`` hop is used, as set
    by a reverse proxy in front of the app; otherwise the socket peer.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def advance_stage(request: Request, stage: PipelineStage) -> None:
    request.state.pipeline_stage = stage
    logger.trace("{} {} -> {}", request.method, request.url.path, stage.value)


async def _read_payload(request: Request, source: str) -> Any:
    if source == "path":
        return dict(request.path_params)
    body = await request.body()
    if not body:
        raise PayloadValidationError([FieldError(path="body", message="Request body is required")])
    try:
        return json.loads(body)
    except ValueError as exc:
        raise PayloadValidationError([FieldError(path="body", message="Malformed JSON body")]) from exc


def guard(
    limiter_name: str,
    schema: Optional[type[SchemaT]] = None,
    *,
    source: str = "body",
) -> Callable[[Request], Awaitable[Optional[SchemaT]]]:
    """Build the request guard dependency for one endpoint.

    Parameters
    ----------
    limiter_name: str
        Attribute of :class:`EndpointLimiters` to count the request against.
    schema: type[BaseModel], optional
        Model to validate the sanitised payload with.  ``None`` stops after
        the rate check and the dependency returns ``None``.
    source: str
        ``"body"`` for a JSON body (enforces ``application/json``) or
        ``"path"`` for path parameters.
    """
    if source not in ("body", "path"):
        raise ValueError("source must be 'body' or 'path'")
    require_json = source == "body" and schema is not None

    async def dependency(request: Request) -> Optional[SchemaT]:
        advance_stage(request, PipelineStage.RECEIVED)
        try:
            if require_json:
                content_type = request.headers.get("content-type", "")
                if JSON_CONTENT_TYPE not in content_type.lower():
                    raise UnsupportedMediaTypeError(JSON_CONTENT_TYPE)
            advance_stage(request, PipelineStage.CONTENT_TYPE_CHECKED)

            limiters: EndpointLimiters = request.app.state.limiters
            trust_proxy = request.app.state.config.trust_proxy
            decision = limiters.get(limiter_name).check(client_key(request, trust_proxy))
            if not decision.allowed:
                raise RateLimitError(decision.retry_after)
            advance_stage(request, PipelineStage.RATE_CHECKED)

            if schema is None:
                return None

            payload = sanitize_object(await _read_payload(request, source))
            advance_stage(request, PipelineStage.SANITIZED)

            validated = validate(schema, payload)
            advance_stage(request, PipelineStage.VALIDATED)
            return validated
        except ChatError as exc:
            request.state.pipeline_stage = PipelineStage.REJECTED
            logger.debug("{} {} rejected: {}", request.method, request.url.path, exc.message)
            raise

    return dependency
