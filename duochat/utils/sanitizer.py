"""Input and output sanitisation helpers.

``sanitize_text`` is applied to every string of an inbound payload before
schema validation.  It strips script blocks and inline event handlers and
then HTML-escapes what is left, so nothing reaching the store can be
interpreted as markup.  Escaping is not idempotent for ``&``: running it
twice over ``&amp;`` yields ``&amp;amp;``.

``sanitize_stored_text`` is the output-side variant applied to records on
their way back to the client.  It leaves existing entities alone, which
makes it safe to run over data that was already escaped on input while
still neutralising anything stored before input sanitisation existed.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

_SCRIPT_BLOCK = re.compile(r"<\s*script\b[^>]*>.*?<\s*/\s*script\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_TAG = re.compile(r"<\s*/?\s*script\b[^>]*>?", re.IGNORECASE)
# Attribute form only: the value follows ``=`` directly, as in
# onclick="...", onclick='...' or onload=init. Prose such as "one = two"
# is left alone.
_EVENT_HANDLER = re.compile(
    r"\bon\w+=(?:\"[^\"]*\"|'[^']*'|\w+)",
    re.IGNORECASE,
)
_BARE_AMPERSAND = re.compile(r"&(?!(?:[a-zA-Z]+|#\d+|#[xX][0-9a-fA-F]+);)")

_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#x27;",
        "/": "&#x2F;",
    }
)
_ESCAPES_KEEP_AMPERSAND = str.maketrans(
    {
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#x27;",
        "/": "&#x2F;",
    }
)


def _strip_active_content(text: str) -> str:
    # Repeat until stable so nested fragments like <scr<script></script>ipt>
    # cannot reassemble into a tag.
    previous = None
    while previous != text:
        previous = text
        text = _SCRIPT_BLOCK.sub("", text)
        text = _SCRIPT_TAG.sub("", text)
    return _EVENT_HANDLER.sub("", text)


def sanitize_text(value: Any) -> str:
    """Neutralise markup in ``value`` and return the escaped string."""
    if value is None or value == "":
        return ""
    text = _strip_active_content(str(value))
    return text.translate(_ESCAPES)


def sanitize_stored_text(value: Any) -> str:
    """Escape loaded text for output without double-escaping entities."""
    if value is None or value == "":
        return ""
    text = _strip_active_content(str(value))
    text = _BARE_AMPERSAND.sub("&amp;", text)
    return text.translate(_ESCAPES_KEEP_AMPERSAND)


def sanitize_object(obj: Any) -> Any:
    """Return a copy of ``obj`` with every string value sanitised.

    Dicts, lists and tuples are rebuilt recursively; numbers, booleans and
    ``None`` pass through unchanged.  Keys are left as they are.
    """
    if isinstance(obj, str):
        return sanitize_text(obj)
    if isinstance(obj, dict):
        return {key: sanitize_object(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [sanitize_object(item) for item in obj]
    if isinstance(obj, tuple):
        return tuple(sanitize_object(item) for item in obj)
    return obj


def sanitize_url(url: str | None) -> str:
    """Return ``url`` if it is http(s) or a site-relative path, else ``""``."""
    if not url:
        return ""
    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return ""
    if parts.scheme in ("http", "https") and parts.netloc:
        return candidate
    if not parts.scheme and not parts.netloc and candidate.startswith("/") and not candidate.startswith("//"):
        return candidate
    return ""
