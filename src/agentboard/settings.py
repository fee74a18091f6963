"""Application settings using Pydantic BaseSettings."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase (document store)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    # Chroma (vector store). None keeps the index in memory.
    chroma_path: str | None = None
    chroma_tools_collection: str = "tools"
    chroma_knowledge_collection: str = "knowledge"

    # Embeddings
    embedding_backend: Literal["openai", "tei"] = "openai"
    embedding_model: str = "text-embedding-3-small"
    openai_api_key: str | None = None
    tei_url: str = "http://localhost:8080"
    embedding_timeout_seconds: float = 30.0

    # Server configuration
    server_name: str = "agentboard"
    log_level: str = "INFO"
    index_tools_on_startup: bool = True

    # Limits
    max_prompt_notes_length: int = 5000
    discover_default_limit: int = 5
    discover_max_limit: int = 20
    knowledge_default_limit: int = 5
    knowledge_max_limit: int = 50


# Global settings instance
settings = Settings()
