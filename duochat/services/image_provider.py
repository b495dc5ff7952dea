"""Image generation provider backed by the Gemini REST API.

Generated images are decoded from the response's ``inlineData`` part,
written under the uploads directory and referenced by their public
``/uploads/<name>.png`` path.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from pathlib import Path
from typing import Any, Protocol

import httpx
from loguru import logger

from ..config.provider_config import ProviderConfig, get_provider_config
from ..utils.api_client import post_json
from ..utils.error_handler import UpstreamProviderError

UPLOADS_URL_PREFIX = "/uploads"


class ImageGenerationProvider(Protocol):
    async def generate_image(self, prompt: str) -> str:
        """Return an image reference for ``prompt`` or raise UpstreamProviderError."""
        ...


class GeminiImageProvider:
    """Generate images with a Gemini image-capable model."""

    def __init__(
        self,
        provider_config: ProviderConfig | None = None,
        uploads_dir: str | Path = "public/uploads",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider_config = provider_config or get_provider_config()
        self.uploads_dir = Path(uploads_dir)
        self._transport = transport

    async def generate_image(self, prompt: str) -> str:
        api_key = self.provider_config.gemini_api_key
        if not api_key:
            raise UpstreamProviderError("GEMINI_API_KEY is not configured")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        logger.debug("Requesting image generation ({} characters)", len(prompt))
        try:
            response = await post_json(
                self.provider_config.gemini_endpoint,
                payload,
                params={"key": api_key},
                timeout=self.provider_config.gemini_timeout,
                transport=self._transport,
            )
        except httpx.HTTPError as exc:
            logger.exception("Image generation request failed")
            raise UpstreamProviderError("Image provider request failed") from exc

        if response.is_error:
            logger.error("Image provider returned {}: {}", response.status_code, response.text[:500])
            raise UpstreamProviderError(f"Image provider returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamProviderError("Image provider returned malformed JSON") from exc

        parts = self._extract_parts(data)
        for part in parts:
            inline = part.get("inlineData") or {}
            if inline.get("data"):
                return self._save_image(inline["data"])

        reply = next((part["text"] for part in parts if part.get("text")), None)
        if reply:
            raise UpstreamProviderError("Image provider returned text instead of an image", reply=reply)
        raise UpstreamProviderError("No image or text data found in the provider response")

    @staticmethod
    def _extract_parts(data: Any) -> list[dict[str, Any]]:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return []
        return [part for part in parts if isinstance(part, dict)]

    def _save_image(self, encoded: str) -> str:
        try:
            image = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise UpstreamProviderError("Image provider returned undecodable image data") from exc

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        file_name = f"gemini_{secrets.token_hex(8)}.png"
        (self.uploads_dir / file_name).write_bytes(image)
        logger.info("Saved generated image {} ({} bytes)", file_name, len(image))
        return f"{UPLOADS_URL_PREFIX}/{file_name}"
