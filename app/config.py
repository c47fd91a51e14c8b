"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_STREAMING_PROVIDERS: tuple[str, ...] = ("gogoanime", "zoro", "animepahe")
PRIMARY_EPISODE_PROVIDER = "jikan"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Animeverse", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    jikan_api_url: HttpUrl = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )
    consumet_api_url: HttpUrl = Field(
        default="https://api.consumet.org", alias="CONSUMET_API_URL"
    )
    streaming_providers: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_STREAMING_PROVIDERS, alias="STREAMING_PROVIDERS"
    )

    request_timeout_seconds: float = Field(
        default=8.0, alias="REQUEST_TIMEOUT", gt=0, le=120
    )
    rate_limit_retries: int = Field(
        default=1, alias="RATE_LIMIT_RETRIES", ge=0, le=10
    )
    rate_limit_backoff_seconds: float = Field(
        default=0.5, alias="RATE_LIMIT_BACKOFF", ge=0, le=30
    )

    metadata_cache_seconds: int = Field(
        default=300, alias="METADATA_CACHE_TTL", ge=0
    )
    episode_cache_seconds: int = Field(
        default=180, alias="EPISODE_CACHE_TTL", ge=0
    )
    episodes_page_size: int = Field(
        default=24, alias="EPISODES_PAGE_SIZE", ge=1, le=100
    )
    season_chain_max_depth: int = Field(
        default=8, alias="SEASON_CHAIN_MAX_DEPTH", ge=0, le=32
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("streaming_providers", mode="before")
    @classmethod
    def _parse_streaming_providers(cls, value: object) -> tuple[str, ...]:
        """Normalise the streaming provider order from environment values."""

        if value is None:
            return DEFAULT_STREAMING_PROVIDERS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError(
                "STREAMING_PROVIDERS must be a string or iterable of strings"
            )

        cleaned: list[str] = []
        for entry in raw_values:
            slug = entry.lower()
            if not slug:
                continue
            if slug == PRIMARY_EPISODE_PROVIDER:
                raise ValueError("The primary provider cannot be a streaming provider")
            if slug not in cleaned:
                cleaned.append(slug)
        if not cleaned:
            return DEFAULT_STREAMING_PROVIDERS
        return tuple(cleaned)

    @property
    def episode_provider_order(self) -> tuple[str, ...]:
        """Return the episode source preference order, primary source first."""

        return (PRIMARY_EPISODE_PROVIDER, *self.streaming_providers)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
