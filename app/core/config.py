"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (Airtable, OpenAI, secrets, etc.)
- Pipeline thresholds (insight caps, synthesis triggers)
- Validates configuration on startup
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Airtable
    AIRTABLE_TOKEN: Optional[str] = Field(
        default=None,
        description="Airtable personal access token"
    )
    AIRTABLE_BASE_ID: Optional[str] = Field(
        default=None,
        description="Airtable base holding the Sol tables"
    )
    AIRTABLE_API_URL: str = Field(
        default="https://api.airtable.com/v0",
        description="Airtable REST API base URL"
    )
    AIRTABLE_TIMEOUT: float = Field(
        default=20.0,
        description="Airtable request timeout in seconds"
    )

    # OpenAI
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="OpenAI API key"
    )
    OPENAI_CHAT_MODEL: str = Field(
        default="gpt-3.5-turbo",
        description="Model used for routine chat replies"
    )
    OPENAI_ADVANCED_MODEL: str = Field(
        default="gpt-4-turbo-preview",
        description="Model used for complex chat turns when escalation is on"
    )
    OPENAI_ANALYSIS_MODEL: str = Field(
        default="gpt-4-turbo-preview",
        description="Model used for insight extraction, documents and synthesis"
    )
    OPENAI_TIMEOUT: float = Field(
        default=60.0,
        description="OpenAI request timeout in seconds"
    )
    ENABLE_MODEL_ESCALATION: bool = Field(
        default=False,
        description="Allow chat turns to escalate to the advanced model"
    )
    ENABLE_CHAT_INSIGHTS: bool = Field(
        default=True,
        description="Run background insight extraction after chat turns"
    )
    CHAT_HISTORY_TURNS: int = Field(
        default=6,
        description="Number of prior chat messages sent with each turn"
    )

    # Insight extraction
    INSIGHT_MIN_LENGTH: int = Field(
        default=20,
        description="Extracted insight lines must be longer than this"
    )
    INSIGHT_MAX_TOKENS: int = Field(
        default=1200,
        description="Completion budget for insight extraction"
    )
    CHAT_INSIGHT_CAP: int = Field(
        default=2,
        description="Maximum insight entries created per conversation turn"
    )
    DOCUMENT_INSIGHT_CAP: int = Field(
        default=8,
        description="Maximum insight entries created per document"
    )

    # Essence synthesis
    SYNTHESIS_MAX_AGE_DAYS: float = Field(
        default=7,
        description="Resynthesize once the essence is this many days old"
    )
    SYNTHESIS_NEW_ENTRY_THRESHOLD: int = Field(
        default=15,
        description="Resynthesize once this many new entries exist"
    )
    SYNTHESIS_MIN_ENTRIES: int = Field(
        default=5,
        description="Minimum insight entries needed for a synthesis"
    )
    ESSENCE_MAX_CHARS: int = Field(
        default=12000,
        description="Upper bound on the stored essence profile length"
    )

    # Context windows
    RECENT_MESSAGE_HOURS: int = Field(
        default=24,
        description="How far back recent messages are loaded for context"
    )
    BUSINESS_PLAN_REFRESH_DAYS: int = Field(
        default=30,
        description="A generated plan younger than this is not replaced"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("AIRTABLE_TOKEN")
    def validate_airtable_token(cls, v, values):
        """Ensure Airtable token is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("AIRTABLE_TOKEN is required in production environment")
        return v

    @validator("OPENAI_API_KEY")
    def validate_openai_key(cls, v, values):
        """Ensure OpenAI key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("OPENAI_API_KEY is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.AIRTABLE_API_URL:
        errors.append("AIRTABLE_API_URL is required")

    if settings.CHAT_INSIGHT_CAP < 0 or settings.DOCUMENT_INSIGHT_CAP < 0:
        errors.append("Insight caps must not be negative")

    # Production-specific validations
    if settings.is_production:
        if not settings.AIRTABLE_TOKEN:
            errors.append("AIRTABLE_TOKEN is required in production")
        if not settings.AIRTABLE_BASE_ID:
            errors.append("AIRTABLE_BASE_ID is required in production")
        if not settings.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
