"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        # Look for .env in project root
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App metadata
    APP_NAME: str = "LLM Playground"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database (provider configuration store)
    DATABASE_URL: str = "sqlite:///./data/playground.db"

    # Outbound LLM requests
    LLM_CONNECT_TIMEOUT: float = 10.0  # seconds
    LLM_READ_TIMEOUT: float | None = None  # None = wait for the provider indefinitely
    LLM_SESSION_TIMEOUT: float | None = None  # None = no per-session deadline
    LLM_MAX_CONCURRENT_SESSIONS: int | None = None  # None or 0 = unbounded fan-out
    LLM_DEFAULT_MAX_TOKENS: int | None = None

    # Provider specifics
    AZURE_OPENAI_API_VERSION: str = "2024-10-21"

    # Prompts
    DEFAULT_SYSTEM_PROMPT: str = "You're a helpful assistant."
    CONNECTIVITY_PROMPT: str = "hello"

    # CORS - accepts comma-separated string or list
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, list):
            return ",".join(v)
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"

    # Streaming / SSE
    SSE_PING_INTERVAL: int = 15  # seconds between keep-alive comments


# Singleton instance
settings = Settings()
