from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ProviderConfig(BaseSettings):
    """Credentials and tuning for the text and image providers."""

    # Text completion (Mistral, OpenAI-compatible endpoint)
    mistral_api_key: Optional[str] = Field(default=None, alias="MISTRAL_API_KEY")
    mistral_base_url: str = Field("https://api.mistral.ai/v1", alias="MISTRAL_BASE_URL")
    mistral_model: str = Field("mistral-small-latest", alias="MISTRAL_MODEL")
    mistral_temperature: float = Field(0.7, alias="MISTRAL_TEMPERATURE")
    mistral_max_tokens: Optional[int] = Field(1024, alias="MISTRAL_MAX_TOKENS")
    mistral_timeout: int = Field(30, alias="MISTRAL_TIMEOUT")
    mistral_system_prompt: Optional[str] = Field(default=None, alias="MISTRAL_SYSTEM_PROMPT")

    # Image generation (Gemini REST API)
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta/models",
        alias="GEMINI_BASE_URL",
    )
    gemini_model: str = Field("gemini-2.0-flash-exp-image-generation", alias="GEMINI_MODEL")
    gemini_timeout: int = Field(60, alias="GEMINI_TIMEOUT")

    @field_validator("mistral_temperature")
    def validate_temperature(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("MISTRAL_TEMPERATURE must be between 0.0 and 1.0")
        return value

    @field_validator("mistral_timeout", "gemini_timeout")
    def validate_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Provider timeouts must be positive")
        return value

    @field_validator("mistral_max_tokens")
    def validate_max_tokens(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("MISTRAL_MAX_TOKENS must be positive")
        return value

    @property
    def gemini_endpoint(self) -> str:
        return f"{self.gemini_base_url.rstrip('/')}/{self.gemini_model}:generateContent"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_provider_config() -> ProviderConfig:
    """Return a cached provider configuration."""

    return ProviderConfig()
