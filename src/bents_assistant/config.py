"""Configuration for the backend using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bents_assistant.application.exceptions import ConfigurationError

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/bents_assistant/ → project root


class Settings(BaseSettings):
    """All backend settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # OpenAI chat + embedding models
    # ------------------------------------------------------------------
    openai_api_key: str = ""
    openai_base_url: str | None = None
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-ada-002"
    openai_request_timeout_seconds: float = 60.0
    embedding_dimensions: int = 1536
    answer_temperature: float | None = None

    # ------------------------------------------------------------------
    # Database (Postgres + pgvector)
    # ------------------------------------------------------------------
    postgres_url: str = ""
    db_pool_size: int = 20
    db_pool_timeout_seconds: float = 10.0
    db_pool_recycle_seconds: int = 30

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------
    document_table: str = "bents"
    allowed_document_tables: list[str] = ["bents"]
    retrieval_top_k: int = 10
    history_window: int = 5

    # ------------------------------------------------------------------
    # Citation handshake (phase 1 context → phase 2 answer)
    # ------------------------------------------------------------------
    handshake_ttl_seconds: float = 600.0
    handshake_max_entries: int = 1000

    # ------------------------------------------------------------------
    # Call policies: timeout (seconds) and extra attempts per operation
    # ------------------------------------------------------------------
    classification_timeout_seconds: float = 15.0
    classification_retries: int = 1
    rewrite_timeout_seconds: float = 15.0
    rewrite_retries: int = 1
    embedding_timeout_seconds: float = 5.0
    embedding_retries: int = 2
    vector_search_timeout_seconds: float = 10.0
    vector_search_retries: int = 1
    citation_timeout_seconds: float = 20.0
    citation_retries: int = 1
    product_lookup_timeout_seconds: float = 10.0
    product_lookup_retries: int = 1
    identity_timeout_seconds: float = 5.0
    identity_retries: int = 1

    # ------------------------------------------------------------------
    # Identity provider (Clerk), optional and only enriches trace metadata
    # ------------------------------------------------------------------
    clerk_secret_key: str | None = None
    clerk_api_url: str = "https://api.clerk.com/v1"

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------------
    # Observability: "off", "logfire" or "otel"
    # ------------------------------------------------------------------
    observability: str = "off"
    otel_service_name: str = "bents-assistant-backend"
    otel_exporter_otlp_endpoint: str = "http://localhost:4318"
    otel_console_exporter: bool = False

    @model_validator(mode="after")
    def _normalise_tables(self) -> "Settings":
        self.allowed_document_tables = [t.strip() for t in self.allowed_document_tables if t.strip()]
        return self

    @property
    def async_database_url(self) -> str:
        """Connection string rewritten for the asyncpg driver."""
        url = self.postgres_url
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix) :]
        return url

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def validate_runtime(self) -> None:
        """Check that all required values are present.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not set. Add it to .env")
        if not self.postgres_url:
            raise ConfigurationError("POSTGRES_URL not set. Add it to .env")
        if self.document_table not in self.allowed_document_tables:
            raise ConfigurationError(
                f"DOCUMENT_TABLE '{self.document_table}' is not in ALLOWED_DOCUMENT_TABLES"
            )


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()
