"""Configuration management for the content enrichment engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # OpenAI configuration (required, embeddings always go through OpenAI)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Completion providers
    LLM_PROVIDER: str = Field(
        default="openrouter", description="Completion provider: openrouter, openai, anthropic"
    )
    OPENROUTER_API_KEY: str | None = Field(default=None, description="OpenRouter API key")
    OPENROUTER_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1", description="OpenRouter OpenAI-compatible endpoint"
    )
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")

    # Supabase configuration (only needed by the pgvector index)
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )

    # Environment
    ENRICHMENT_ENV: str = Field(default="dev", description="Environment: dev, test, prod")

    # Capability models
    SUMMARY_MODEL: str = Field(
        default="google/gemini-flash-1.5", description="Model for short-form summaries"
    )
    SEO_MODEL: str = Field(default="openai/gpt-4o-mini", description="Model for SEO metadata")
    CATEGORY_MODEL: str = Field(
        default="anthropic/claude-3-haiku", description="Model for content classification"
    )
    TAGS_MODEL: str = Field(default="anthropic/claude-3-haiku", description="Model for tagging")
    SCHEMA_MODEL: str = Field(default="openai/gpt-4o", description="Model for Schema.org data")
    IMAGE_PROMPT_MODEL: str = Field(
        default="anthropic/claude-3-5-sonnet", description="Model for thumbnail image prompts"
    )
    QUALITY_MODEL: str = Field(default="openai/gpt-4o", description="Model for the quality gate")
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-large", description="OpenAI embedding model (3072 dims)"
    )

    # Input limits
    MIN_DOCUMENT_CHARS: int = Field(default=10, description="Min document characters")
    MAX_DOCUMENT_CHARS: int = Field(default=100_000, description="Max document characters")
    MAX_EMBEDDING_INPUT_CHARS: int = Field(
        default=30_000, description="Max characters sent to the embedding model (~8k tokens)"
    )
    QUALITY_SOURCE_EXCERPT_CHARS: int = Field(
        default=2_000, description="Original-text excerpt length shown to the quality gate"
    )

    # Call policy
    CAPABILITY_TIMEOUT_SECONDS: float = Field(
        default=60.0, description="Timeout for a single capability call"
    )
    CAPABILITY_MAX_RETRIES: int = Field(
        default=1, description="Retries on transient capability errors"
    )
    CAPABILITY_RETRY_DELAY_SECONDS: float = Field(
        default=1.0, description="Delay before retrying a transient failure"
    )
    CAPABILITY_MAX_TOKENS: int = Field(default=2000, description="Max completion tokens")

    # Similarity search defaults
    SEARCH_MATCH_THRESHOLD: float = Field(default=0.5, description="Min similarity for a match")
    SEARCH_MATCH_COUNT: int = Field(default=10, description="Max matches returned")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
