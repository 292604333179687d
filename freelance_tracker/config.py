"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "freelance_tracker"

    # Billing
    default_currency: str = "EUR"

    # Analytics
    analytics_months: int = 12

    # Logging
    log_level: str = "INFO"
    debug: bool = False


settings = Settings()
