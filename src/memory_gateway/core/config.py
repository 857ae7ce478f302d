"""Configuration management."""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Embeddings (Voyage AI)
    voyage_api_key: SecretStr = SecretStr("")
    embedding_model: str = "voyage-3"
    embedding_dimensions: int = 1024
    embedding_timeout: float = Field(default=30.0, description="Seconds allowed per embedding call")
    embedding_cache_enabled: bool = False

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: SecretStr = SecretStr("password")
    store_timeout: float = Field(default=15.0, description="Seconds allowed per vector search")
    vector_candidate_multiplier: int = Field(
        default=4, ge=1, description="Index over-fetch factor applied before scope filtering"
    )

    # Upstream LLM provider (OpenAI-compatible)
    provider_base_url: str = "https://api.openai.com/v1"
    provider_api_key: SecretStr = SecretStr("")
    provider_timeout: float = 120.0

    # Retrieval
    memory_match_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    memory_match_count: int = Field(default=5, ge=1)
    snippet_match_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    snippet_match_count: int = Field(default=5, ge=1)

    # Fact extraction
    extraction_model: str = "gpt-4o-mini"
    extraction_temperature: float = 0.2

    # Audit / analytics
    analytics_url: str = "https://api.us-east.tinybird.co/v0/events?name=llm_call"
    analytics_token: SecretStr = SecretStr("")
    analytics_timeout: float = 10.0
    token_price: float = Field(default=0.0001, description="Price charged per total token")

    # Deferred work
    deferred_shutdown_timeout: float = 30.0

    # App config
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra fields in .env file
    )


settings = Settings()
