from __future__ import annotations

import copy

import pytest

from duochat.utils.sanitizer import sanitize_object, sanitize_stored_text, sanitize_text, sanitize_url


def test_special_characters_are_escaped() -> None:
    assert sanitize_text("& < > \" ' /") == "&amp; &lt; &gt; &quot; &#x27; &#x2F;"


def test_empty_and_none_become_empty_string() -> None:
    assert sanitize_text("") == ""
    assert sanitize_text(None) == ""


@pytest.mark.parametrize(
    "raw",
    [
        "<script>alert(1)</script>hello",
        "<ScRiPt>alert(1)</sCrIpT>hello",
        "<script type='text/javascript'>steal()</script >hello",
        "< script>alert(1)</ script>hello",
        "<scr<script>x</script>ipt>alert(1)</script>hello",
        "hello<script src=//evil.example/x.js>",
        "<SCRIPT>\nmultiline()\n</SCRIPT>hello",
    ],
)
def test_script_blocks_never_survive(raw: str) -> None:
    result = sanitize_text(raw)
    assert "<script" not in result.lower()
    assert "hello" in result


def test_script_block_content_is_removed() -> None:
    assert sanitize_text("Hi <script>alert('x')</script>there") == "Hi there"


def test_inline_event_handlers_are_stripped() -> None:
    result = sanitize_text('<img src=x onerror="alert(1)">')
    assert "onerror" not in result
    assert result == "&lt;img src=x &gt;"

    assert "onclick" not in sanitize_text("<a onclick='go()'>x</a>")
    assert "onload" not in sanitize_text("<body onload=init>")


@pytest.mark.parametrize(
    "text",
    ["Is one = two?", "The only = answer", "once =5 and onto = it", "Only if on = off"],
)
def test_prose_with_on_words_and_equals_is_kept(text: str) -> None:
    assert sanitize_text(text) == text
    assert sanitize_stored_text(text) == text


def test_prose_keeps_words_while_escaping() -> None:
    assert sanitize_text("Is one = 'two'?") == "Is one = &#x27;two&#x27;?"


def test_plain_text_is_idempotent() -> None:
    text = "Hello world, how are you today?"
    once = sanitize_text(text)
    assert sanitize_text(once) == once == text


def test_ampersand_is_re_escaped_on_second_pass() -> None:
    assert sanitize_text("&amp;") == "&amp;amp;"


def test_stored_text_sanitiser_does_not_double_escape() -> None:
    raw = "Tom & Jerry <3 'quotes' /path"
    escaped = sanitize_text(raw)
    assert sanitize_stored_text(escaped) == escaped
    assert sanitize_stored_text(raw) == escaped


def test_stored_text_sanitiser_escapes_legacy_markup() -> None:
    assert sanitize_stored_text("<b>hi</b>") == "&lt;b&gt;hi&lt;&#x2F;b&gt;"
    assert "<script" not in sanitize_stored_text("<script>x()</script>").lower()


def test_sanitize_object_recurses_without_mutating_input() -> None:
    payload = {
        "title": "<b>",
        "count": 3,
        "flag": True,
        "missing": None,
        "nested": {"inner": "'"},
        "items": ["<", 2, {"x": "/"}],
    }
    original = copy.deepcopy(payload)

    result = sanitize_object(payload)

    assert payload == original
    assert result == {
        "title": "&lt;b&gt;",
        "count": 3,
        "flag": True,
        "missing": None,
        "nested": {"inner": "&#x27;"},
        "items": ["&lt;", 2, {"x": "&#x2F;"}],
    }
    assert result is not payload
    assert result["nested"] is not payload["nested"]


def test_sanitize_object_passes_scalars_through() -> None:
    assert sanitize_object(5) == 5
    assert sanitize_object(None) is None
    assert sanitize_object("<") == "&lt;"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/a.png", "https://example.com/a.png"),
        ("http://example.com", "http://example.com"),
        ("/uploads/gemini_1.png", "/uploads/gemini_1.png"),
        ("javascript:alert(1)", ""),
        ("data:image/png;base64,AAAA", ""),
        ("//evil.example/x.png", ""),
        ("ftp://example.com/file", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_url(url: str | None, expected: str) -> None:
    assert sanitize_url(url) == expected
