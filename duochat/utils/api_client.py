"""Simple HTTP client utilities using httpx."""

from __future__ import annotations

import httpx
from typing import Any, Dict, Optional


async def post_json(
    url: str,
    json: Dict[str, Any],
    *,
    params: Optional[Dict[str, str]] = None,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """Perform an asynchronous JSON POST request.

    ``transport`` lets tests substitute an ``httpx.MockTransport``.
    """
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        return await client.post(url, json=json, params=params)
