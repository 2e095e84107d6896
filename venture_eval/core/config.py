"""
Configuration module with strict validation.

Key principles:
- APP STARTUP does NOT require any provider key
- Search and analysis calls DO require their keys (fail at first use with a clear error)
- Pacing, retry and threshold settings are configurable
- Safe defaults for all optional settings
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from venture_eval.core.api_errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings with validation.

    Loads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./venture_eval.db",
        description="SQLAlchemy connection URL"
    )

    # Exa search (OPTIONAL for startup, REQUIRED for retrieval)
    exa_api_key: Optional[str] = Field(
        default=None,
        description="Exa API key - required for any evidence retrieval"
    )

    # LLM providers (OPTIONAL for startup, one REQUIRED for analysis)
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key"
    )

    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="Anthropic API key"
    )

    llm_provider: Optional[str] = Field(
        default=None,
        description="openai or anthropic; None picks the first configured key"
    )

    llm_model: Optional[str] = Field(
        default=None,
        description="Model override; provider default when unset"
    )

    llm_max_tokens: int = Field(default=500, ge=1, le=16000)

    llm_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per extraction call"
    )

    llm_retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Base delay in seconds for linear extraction backoff"
    )

    # Search pacing
    search_min_interval_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Minimum spacing between outbound search requests"
    )

    search_throttle_cooldown_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Wait before the single retry after HTTP 429"
    )

    search_timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)

    # Evaluation
    dd_score_threshold: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Quick score at or above which full due diligence runs"
    )

    focus_industry: str = Field(
        default="fintech",
        description="Industry assumed when a company's industry is unknown"
    )

    fund_name: str = Field(default="Impression Ventures")

    news_days_back: int = Field(default=90, ge=1, le=730)

    monitor_window_days: int = Field(default=7, ge=1, le=90)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v_lower = v.lower()
        if v_lower not in {"openai", "anthropic"}:
            raise ValueError("llm_provider must be 'openai' or 'anthropic'")
        return v_lower

    def require_exa_api_key(self) -> str:
        """
        Get Exa API key, raising clear error if missing.

        Raises:
            ConfigurationError: If the key is not configured

        Returns:
            str: The API key
        """
        if not self.exa_api_key:
            raise ConfigurationError(
                "EXA_API_KEY is required for evidence retrieval. "
                "Please set it in your .env file or environment variables.",
                source="exa",
                missing_config="EXA_API_KEY",
            )
        return self.exa_api_key

    def get_openai_api_key(self) -> Optional[str]:
        return self.openai_api_key

    def get_anthropic_api_key(self) -> Optional[str]:
        return self.anthropic_api_key


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Lazy loaded on first access and reused afterwards; tests reset it
    with reset_settings().
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance."""
    global _settings
    _settings = None
