"""
Configuration module for hybrid-search-service.

Uses pydantic-settings for environment-based configuration of the
embedding provider, the ranked corpus store, and the HTTP surface.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Credentials are optional at load time: a missing key is reported as a
    configuration error on the first request that needs it, not at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # SERVICE CONFIGURATION
    # ===========================================
    hybrid_search_port: int = Field(default=8081, description="Service port")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API",
    )
    hybrid_search_log_file: str | None = Field(
        default=None,
        description="Optional rotating JSON log file",
    )

    # ===========================================
    # EMBEDDING PROVIDER (OpenAI-compatible)
    # ===========================================
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the embeddings API",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    embedding_dimension: int = Field(
        default=1536,
        ge=1,
        description="Dimension of the stored corpus embeddings",
    )

    # ===========================================
    # RANKED CORPUS STORE
    # ===========================================
    corpus_backend: Literal["supabase", "memory"] = Field(
        default="supabase",
        description="Where the ranking procedure runs",
    )
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_service_role_key: str | None = Field(
        default=None,
        description="Supabase service-role key",
    )
    ranking_function: str = Field(
        default="hybrid_search",
        description="Name of the Postgres ranking function",
    )
    corpus_seed_path: str | None = Field(
        default=None,
        description="JSON Lines corpus for the in-memory backend",
    )
    fusion_strategy: Literal["rrf", "linear"] = Field(
        default="rrf",
        description="Fusion strategy for the in-memory backend",
    )
    rrf_k: int = Field(default=50, ge=1, description="RRF smoothing constant")

    # ===========================================
    # OUTBOUND CALLS
    # ===========================================
    upstream_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Client-side timeout in seconds; unset defers to the platform",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
