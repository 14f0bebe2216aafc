"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache), one instance per process
    - Defaults exist for every non-secret setting so docker-compose works unchanged
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://coach:coach@db:5432/coach"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Anthropic (transcript scorer)
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 120
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 60_000
    scorer_model: str = "claude-sonnet-4-5"
    scorer_max_tokens: int = 2000

    # Voice agent (signed conversation URLs)
    elevenlabs_api_key: str = "xi-placeholder"
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    elevenlabs_timeout_seconds: float = 10.0

    # Conversation lifecycle
    time_limit_warning_seconds: float = 5 * 60

    # Transcript export
    transcript_dir: str = "transcripts"
    transcript_base_url: str = "/api/v1/transcripts"
    export_max_attempts: int = 3
    export_retry_delay_ms: int = 500

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
