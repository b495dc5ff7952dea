from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class AppConfig(BaseSettings):
    """Application configuration settings."""

    # Environment
    app_env: str = Field("development")
    app_debug: bool = Field(False)
    app_host: str = Field("0.0.0.0")
    app_port: int = Field(5000)

    # Logging
    log_level: str = Field("INFO")
    log_file: Optional[str] = Field(None)

    # HTTP
    cors_origins: str = Field("*")
    trust_proxy: bool = Field(False)

    # Storage
    store_type: str = Field("in_memory")
    store_path: str = Field("data/chats.json")
    uploads_dir: str = Field("public/uploads")

    # Upstream providers
    provider_timeout: float = Field(60.0)

    # Rate limiting (requests per window, per client)
    rate_limit_window: float = Field(60.0)
    rate_limit_message_send: int = Field(50)
    rate_limit_chat_create: int = Field(20)
    rate_limit_chat_read: int = Field(30)
    rate_limit_chat_list: int = Field(100)
    rate_limit_chat_delete: int = Field(10)

    @field_validator("app_env")
    def validate_app_env(cls, value: str) -> str:
        if value not in ["development", "staging", "production"]:
            raise ValueError("APP_ENV must be development, staging, or production")
        return value

    @field_validator("store_type")
    def validate_store_type(cls, value: str) -> str:
        if value not in ["in_memory", "json_file"]:
            raise ValueError("STORE_TYPE must be in_memory or json_file")
        return value

    @field_validator("log_level")
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("LOG_LEVEL must be a valid Loguru level")
        return level

    @field_validator("provider_timeout", "rate_limit_window")
    def validate_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Durations must be positive")
        return value

    @field_validator(
        "rate_limit_message_send",
        "rate_limit_chat_create",
        "rate_limit_chat_read",
        "rate_limit_chat_list",
        "rate_limit_chat_delete",
    )
    def validate_rate_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Rate limits must be positive")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_app_config() -> AppConfig:
    """Return a cached application configuration instance."""

    return AppConfig()
