"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Record store
    record_store_backend: Literal["postgrest", "sql"] = "postgrest"

    # Hosted backend REST interface (PostgREST)
    supabase_url: str = "http://localhost:54321"
    supabase_key: str | None = None  # anon or service key
    rest_path: str = "/rest/v1"
    store_max_retries: int = 3
    store_timeout_seconds: float = 30.0

    # Direct database access (sql backend)
    database_url: str = "postgresql+asyncpg://localhost:5432/firreports"

    # Source tables
    fir_table: str = "fir_records"
    accused_table: str = "accused_details"
    bail_table: str = "bail_details"

    # Fetch limits
    fetch_batch_size: int = 1000
    fetch_safety_limit: int = 50000
    in_filter_chunk_size: int = 200

    # Report settings
    repeat_offender_min_cases: int = 2
    repeat_offender_include_blank_identity: bool = True

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
