from __future__ import annotations

import pytest
from pydantic import ValidationError

from duochat.config.app_config import AppConfig
from duochat.config.provider_config import ProviderConfig


def test_defaults_match_documented_budgets() -> None:
    config = AppConfig()

    assert config.app_port == 5000
    assert config.provider_timeout == 60.0
    assert config.rate_limit_window == 60.0
    assert (
        config.rate_limit_message_send,
        config.rate_limit_chat_create,
        config.rate_limit_chat_read,
        config.rate_limit_chat_list,
        config.rate_limit_chat_delete,
    ) == (50, 20, 30, 100, 10)


def test_environment_overrides_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_CHAT_CREATE", "3")
    monkeypatch.setenv("STORE_TYPE", "json_file")
    monkeypatch.setenv("TRUST_PROXY", "true")

    config = AppConfig()

    assert config.rate_limit_chat_create == 3
    assert config.store_type == "json_file"
    assert config.trust_proxy is True


def test_log_level_is_normalised() -> None:
    assert AppConfig(log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"app_env": "qa"},
        {"store_type": "redis"},
        {"log_level": "verbose"},
        {"provider_timeout": 0},
        {"rate_limit_window": -1},
        {"rate_limit_chat_delete": 0},
    ],
)
def test_invalid_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        AppConfig(**overrides)


def test_cors_origins_are_split_and_trimmed() -> None:
    config = AppConfig(cors_origins="https://a.example, https://b.example ,")

    assert config.cors_origins_list == ["https://a.example", "https://b.example"]
    assert AppConfig(cors_origins="*").cors_origins_list == ["*"]


def test_provider_config_reads_aliased_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MISTRAL_API_KEY", "m-key")
    monkeypatch.setenv("GEMINI_MODEL", "custom-image-model")

    config = ProviderConfig()

    assert config.mistral_api_key == "m-key"
    assert config.gemini_endpoint.endswith("/custom-image-model:generateContent")


def test_gemini_endpoint_ignores_trailing_slash() -> None:
    config = ProviderConfig(gemini_base_url="https://gemini.test/models/", gemini_model="m")

    assert config.gemini_endpoint == "https://gemini.test/models/m:generateContent"


@pytest.mark.parametrize(
    "overrides",
    [{"mistral_temperature": 1.5}, {"mistral_timeout": 0}, {"gemini_timeout": -5}, {"mistral_max_tokens": 0}],
)
def test_invalid_provider_settings_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        ProviderConfig(**overrides)
