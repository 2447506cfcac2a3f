"""Configuration management for FormChat Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    FORMCHAT_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Admin access for internal tools (X-API-Key header)
    ADMIN_API_KEY: str | None = Field(default=None, description="Static admin API key")

    # LLM gateway defaults, used when a profile has no stored setting
    LLM_DEFAULT_MODEL: str = Field(default="gpt-4o-mini", description="Fallback chat model")
    LLM_DEFAULT_MAX_TOKENS: int = Field(default=1000, description="Fallback max output tokens")
    LLM_DEFAULT_TEMPERATURE: float = Field(default=0.7, description="Fallback temperature")
    LLM_MAX_REQUESTS_PER_MIN: int = Field(
        default=20, description="Outbound LLM requests allowed per minute (process-wide)"
    )
    LLM_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=45.0, description="Timeout for a single LLM request"
    )

    # Conversation sessions held by the server
    SESSION_TTL_SECONDS: int = Field(
        default=3600, description="Idle time before a conversation session is dropped"
    )

    # CORS
    CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], description="Allowed CORS origins"
    )


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
