"""Application configuration with Pydantic Settings.

This module provides centralized configuration management using pydantic-settings.
Settings are loaded from environment variables and .env files.

Examples:
    >>> from gateway.config import get_settings
    >>> settings = get_settings()
    >>> settings.CHAT_MODEL
    'gemini-2.5-flash'

    >>> settings.chat_fallback_models
    ['gemini-2.0-flash', 'gemini-1.5-flash']

Tests:
    - tests/unit/test_config.py::TestSettings
"""

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Upstream providers the gateway talks to."""

    GEMINI = "gemini"
    SPEECH = "speech"


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
TTS_BASE_URL = "https://texttospeech.googleapis.com/v1"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables and .env file. No credential
    is required at startup: a request that needs a missing key fails fast with
    a MissingCredential error instead.

    Attributes:
        GEMINI_API_KEY: Credential for text and image generation
        TTS_API_KEY: Credential for speech synthesis
        CHAT_MODEL: Primary model for chat
        CHAT_FALLBACK_MODELS: Comma-separated models tried when the primary is unavailable
        IMAGE_MODEL: Model for image generation (imagen-* uses the predict endpoint)
        RATE_LIMIT: Chat requests admitted per client per window
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Provider API Keys
    GEMINI_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GEMINI_KEY", "GOOGLE_API_KEY"),
        description="Gemini API key (text and image)",
    )
    TTS_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TTS_API_KEY", "GOOGLE_TTS_API_KEY"),
        description="Cloud Text-to-Speech API key",
    )

    # Endpoints
    GEMINI_BASE_URL: str = Field(default=GEMINI_BASE_URL)
    TTS_BASE_URL: str = Field(default=TTS_BASE_URL)

    # Model Selection
    CHAT_MODEL: str = Field(
        default="gemini-2.5-flash",
        description="Primary chat model",
    )
    CHAT_FALLBACK_MODELS: str = Field(
        default="gemini-2.0-flash,gemini-1.5-flash",
        description="Comma-separated fallback chat models, tried in order",
    )
    CHAT_SYSTEM_PROMPT: str | None = Field(
        default=None,
        description="Optional system instruction sent with every chat turn",
    )
    CHAT_HISTORY_LIMIT: int = Field(
        default=20,
        ge=0,
        le=200,
        description="Maximum history turns forwarded to the provider",
    )
    IMAGE_MODEL: str = Field(
        default="gemini-2.5-flash-image",
        description="Model for image generation",
    )
    IMAGE_PROMPT_REWRITE: bool = Field(
        default=True,
        description="Rewrite the prompt and retry once when no image comes back",
    )
    REWRITE_MODEL: str | None = Field(
        default=None,
        description="Model used to rewrite image prompts (defaults to CHAT_MODEL)",
    )

    # Rate limiting and caching
    RATE_LIMIT: int = Field(
        default=20,
        ge=1,
        description="Chat requests per client per window",
    )
    RATE_LIMIT_WINDOW_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Sliding window length for the rate limiter",
    )
    VOICE_CACHE_TTL_SECONDS: float = Field(
        default=3600.0,
        gt=0,
        description="How long the voice catalog is reused before refetching",
    )

    # Timeouts
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single outbound call",
    )
    REQUEST_DEADLINE_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Deadline for a whole inbound request, fallbacks included",
    )

    # Application Settings
    STATIC_DIR: str = Field(
        default="public",
        description="Directory served at / when it exists",
    )
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated origins allowed cross-origin in production",
    )
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080, ge=1, le=65535)
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    LOG_LEVEL: str = Field(default="INFO")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @field_validator("GEMINI_BASE_URL", "TTS_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def chat_fallback_models(self) -> list[str]:
        """Fallback chat models in configured order, blanks removed."""
        return [m.strip() for m in self.CHAT_FALLBACK_MODELS.split(",") if m.strip()]

    @property
    def cors_origins(self) -> list[str]:
        """Any origin outside production, the configured list in production."""
        if not self.is_production:
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def rewrite_model(self) -> str:
        return self.REWRITE_MODEL or self.CHAT_MODEL

    def has_provider(self, provider: ProviderType) -> bool:
        """Check if a specific provider is configured.

        Args:
            provider: The provider to check.

        Returns:
            bool: True if the provider's API key is configured.
        """
        if provider == ProviderType.GEMINI:
            return bool(self.GEMINI_API_KEY)
        elif provider == ProviderType.SPEECH:
            return bool(self.TTS_API_KEY)
        return False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The application settings.
    """
    return Settings()
