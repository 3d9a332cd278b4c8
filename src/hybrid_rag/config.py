"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

from hybrid_rag.models import AIConfig, AIProvider


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM / embeddings (boot-time values; replaced at runtime via /admin/config)
    llm_provider: AIProvider = AIProvider.OPENAI
    openai_api_key: str = Field(default="", description="API key for OpenAI or Groq (unused by Ollama)")
    llm_model_name: str = Field(default="gpt-4o", description="Chat model identifier")
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible API. Leave empty to use the "
            "provider default, e.g. 'http://localhost:11434/v1' for Ollama."
        ),
    )

    # Knowledge store
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_pass: str = ""
    neo4j_database: str = "neo4j"

    # Pipeline
    chunk_size: int = 1500
    chunk_overlap: int = 200
    retrieval_k: int = 5
    progress_queue_size: int = 32

    # Serving
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def initial_ai_config(self) -> AIConfig:
        """Provider configuration the process boots with."""
        return AIConfig(
            provider=self.llm_provider,
            model_name=self.llm_model_name,
            embedding_model=self.embedding_model,
            api_key=SecretStr(self.openai_api_key),
            embedding_dim=self.embedding_dim,
            base_url=self.llm_base_url or None,
        )


# Shared instance; tests build their own Settings.
settings = Settings()
