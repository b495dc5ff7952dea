from __future__ import annotations

import sys
from pathlib import Path

import pytest

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from fastapi.testclient import TestClient

from duochat.config.app_config import AppConfig
from duochat.main import create_app
from duochat.services.chat_service import ChatService, get_chat_service
from duochat.store.chat_store import InMemoryChatStore


class StubTextProvider:
    """Text provider returning a canned reply (or raising ``error``)."""

    def __init__(self, reply: str = "Hello!", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class StubImageProvider:
    def __init__(self, reference: str = "/uploads/gemini_test.png", error: Exception | None = None) -> None:
        self.reference = reference
        self.error = error
        self.prompts: list[str] = []

    async def generate_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reference


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        app_env="development",
        log_level="WARNING",
        log_file=None,
        store_type="in_memory",
        uploads_dir=str(tmp_path / "uploads"),
        trust_proxy=False,
    )


@pytest.fixture
def text_provider() -> StubTextProvider:
    return StubTextProvider()


@pytest.fixture
def image_provider() -> StubImageProvider:
    return StubImageProvider()


@pytest.fixture
def store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def service(store: InMemoryChatStore, text_provider: StubTextProvider, image_provider: StubImageProvider) -> ChatService:
    return ChatService(store, text_provider, image_provider, provider_timeout=5.0)


@pytest.fixture
def client(app_config: AppConfig, service: ChatService):
    app = create_app(app_config)
    app.dependency_overrides[get_chat_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
