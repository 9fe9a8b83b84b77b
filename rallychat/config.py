from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Simulated acknowledgement delays, both measured from send time
    DELIVERY_DELAY_MS: int = 1000
    READ_DELAY_MS: int = 2000

    # Display name stamped on messages authored by the local user
    LOCAL_SENDER_NAME: str = "You"

    # Load the prototype's mock conversations on startup
    SEED_MOCK_DATA: bool = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Global settings instance
settings = get_settings()
