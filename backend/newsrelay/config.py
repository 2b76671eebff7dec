"""Application configuration loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the embedding, search, generation, and store services."""

    _PROJECT_ROOT = Path(__file__).resolve().parents[2]

    model_config = SettingsConfigDict(
        env_file=(_PROJECT_ROOT / ".env", _PROJECT_ROOT / "backend" / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["development", "staging", "production"] = Field(
        default="development", validation_alias="APP_ENV"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    port: int | None = Field(default=None, validation_alias="PORT")
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")
    request_timeout_seconds: float = Field(default=10.0, gt=0, validation_alias="REQUEST_TIMEOUT_SECONDS")

    jina_api_key: SecretStr = Field(default=SecretStr(""), validation_alias="JINA_EMBEDDING_API_KEY")
    jina_api_url: str = Field(
        default="https://api.jina.ai/v1/embeddings", validation_alias="JINA_API_URL"
    )
    jina_embedding_model: str = Field(default="jina-clip-v2", validation_alias="JINA_EMBEDDING_MODEL")

    gemini_api_key: SecretStr = Field(default=SecretStr(""), validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_MODEL")

    qdrant_url: str = Field(default="", validation_alias="QDRANT_URL")
    qdrant_api_key: SecretStr = Field(default=SecretStr(""), validation_alias="QDRANT_API_KEY")
    qdrant_collection_name: str = Field(default="news_articles", validation_alias="QDRANT_COLLECTION")

    redis_host: str = Field(default="", validation_alias="REDIS_HOST")
    redis_port: int | None = Field(default=None, validation_alias="REDIS_PORT")
    redis_password: SecretStr | None = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_db: int = Field(default=0, ge=0, validation_alias="REDIS_DB")
    redis_connect_attempts: int = Field(default=5, ge=1, validation_alias="REDIS_CONNECT_ATTEMPTS")
    redis_retry_base_seconds: float = Field(default=0.05, ge=0, validation_alias="REDIS_RETRY_BASE_SECONDS")
    redis_retry_max_seconds: float = Field(default=2.0, ge=0, validation_alias="REDIS_RETRY_MAX_SECONDS")

    search_top_k: int = Field(default=3, ge=1, le=50, validation_alias="SEARCH_TOP_K")
    max_context_chars: int = Field(default=4000, ge=1, validation_alias="MAX_CONTEXT_CHARS")
    prompt_history_turns: int = Field(default=5, ge=0, validation_alias="PROMPT_HISTORY_TURNS")

    history_max_turns: int = Field(default=50, ge=1, validation_alias="HISTORY_MAX_TURNS")
    history_ttl_seconds: int = Field(default=24 * 60 * 60, ge=1, validation_alias="HISTORY_TTL_SECONDS")
    embedding_cache_ttl_seconds: int = Field(
        default=24 * 60 * 60, ge=1, validation_alias="EMBEDDING_CACHE_TTL_SECONDS"
    )
    generation_cache_ttl_seconds: int = Field(
        default=24 * 60 * 60, ge=1, validation_alias="GENERATION_CACHE_TTL_SECONDS"
    )
    response_cache_ttl_seconds: int = Field(
        default=60 * 60, ge=1, validation_alias="RESPONSE_CACHE_TTL_SECONDS"
    )
    response_precheck_enabled: bool = Field(default=True, validation_alias="RESPONSE_PRECHECK_ENABLED")

    @field_validator("qdrant_url", "redis_host", mode="before")
    @classmethod
    def _strip_required_strings(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value.strip()

    @field_validator("redis_password", mode="before")
    @classmethod
    def _normalize_optional_secret(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = str(value).strip()
        return normalized or None

    @model_validator(mode="after")
    def _validate_required_config(self) -> "Settings":
        missing = [
            key
            for key, value in {
                "JINA_EMBEDDING_API_KEY": self.jina_api_key.get_secret_value().strip(),
                "GEMINI_API_KEY": self.gemini_api_key.get_secret_value().strip(),
                "QDRANT_URL": self.qdrant_url,
                "QDRANT_API_KEY": self.qdrant_api_key.get_secret_value().strip(),
                "REDIS_HOST": self.redis_host,
                "REDIS_PORT": self.redis_port,
                "PORT": self.port,
            }.items()
            if not value
        ]
        if missing:
            joined = ", ".join(missing)
            raise ValueError(f"Missing required environment variables: {joined}")
        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """Comma-separated CORS_ORIGINS split into a list."""
        origins = [item.strip() for item in self.cors_origins.split(",") if item.strip()]
        return origins or ["*"]

    @property
    def redis_password_value(self) -> str | None:
        """Return the raw Redis password, if one is configured."""
        return self.redis_password.get_secret_value() if self.redis_password else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache validated settings for dependency injection."""
    return Settings()
