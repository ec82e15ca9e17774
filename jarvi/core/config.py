"""
Configuration module - centralized settings for the delegation core.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    Components take these as constructor defaults, so tests can pass
    explicit values instead of patching the environment:
        export CLASSIFIER_BACKEND=gemini
        export INTENT_CONFIDENCE_THRESHOLD=0.7
    """

    # ---------------------------------------------------------------------------
    # PYDANTIC SETTINGS CONFIGURATION
    # ---------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    APP_NAME: str = "Jarvi Delegation Core"
    DEBUG: bool = False

    # ---------------------------------------------------------------------------
    # GENERATIVE BACKENDS
    # ---------------------------------------------------------------------------
    # "rules" keeps classification and token suggestion fully deterministic.
    # "gemini" / "openai" delegate to the provider and fall back to rules
    # whenever the provider fails, times out or answers garbage.
    CLASSIFIER_BACKEND: str = "rules"
    TOKEN_BACKEND: str = "rules"

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Seconds before a generative call is abandoned
    AI_REQUEST_TIMEOUT: float = 15.0

    # ---------------------------------------------------------------------------
    # INTERPRETATION
    # ---------------------------------------------------------------------------
    # Below this confidence the message is treated as a general query
    INTENT_CONFIDENCE_THRESHOLD: float = 0.6

    # First ambiguous 12-hour time of a message is compared against this hour
    DAY_START_HOUR: int = 7

    DEFAULT_TIMEZONE: str = "Europe/Berlin"

    # ---------------------------------------------------------------------------
    # PROVIDER CALLS
    # ---------------------------------------------------------------------------
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # Read-only list calls get exactly one retry after this delay
    READ_RETRY_BACKOFF_SECONDS: float = 0.5

    GOOGLE_CALENDAR_ID: str = "primary"
    GOOGLE_TASKLIST_ID: str = "@default"

    # Development only. Production tokens come from the credential store.
    GOOGLE_ACCESS_TOKEN: str = ""


settings = Settings()
