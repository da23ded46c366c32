"""
Configuration settings for catalog-rag
Loads collaborator endpoints and timeouts from the environment or a .env file.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service settings.

    Covers the external collaborators of the retrieval engine (embedding
    provider, vector store, optional Redis index cache). Algorithm constants
    live in ``catalog_rag.ml.config``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,  # Allow field names as well as env aliases
        extra="ignore",  # Ignore extra fields in .env file
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Semantic path
    enable_semantic_retrieval: bool = Field(default=True, alias="ENABLE_SEMANTIC_RETRIEVAL")

    # Embedding provider (Ollama)
    ollama_url: str = Field(default="http://localhost:11434", alias="OLLAMA_URL")
    embedding_model: str = Field(default="all-minilm", alias="EMBEDDING_MODEL")
    embedding_dimension: int = Field(default=384, alias="EMBEDDING_DIMENSION", gt=0)
    embedding_timeout: float = Field(default=10.0, alias="EMBEDDING_TIMEOUT", gt=0)

    # Vector store (Qdrant)
    qdrant_url: str = Field(default="http://localhost:6333", alias="QDRANT_URL")
    qdrant_api_key: Optional[str] = Field(default=None, alias="QDRANT_API_KEY")
    qdrant_timeout: int = Field(default=5, alias="QDRANT_TIMEOUT", gt=0)

    # Index cache
    index_cache_backend: Literal["memory", "redis"] = Field(
        default="memory", alias="INDEX_CACHE_BACKEND"
    )
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=2, alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, alias="REDIS_PASSWORD")
    redis_timeout: float = Field(default=2.0, alias="REDIS_TIMEOUT", gt=0)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("ollama_url", "qdrant_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
