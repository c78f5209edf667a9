# troubleshooter/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    database_url: str = Field(..., validation_alias="DATABASE_URL")

    # Header set by the upstream auth gateway once the identity is verified
    identity_header: str = Field("X-User-Id", validation_alias="IDENTITY_HEADER")

    stripe_secret_key: str | None = Field(None, validation_alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str | None = Field(None, validation_alias="STRIPE_WEBHOOK_SECRET")

    # Front end that Stripe Checkout sends the user back to
    app_base_url: str = Field("http://localhost:3000", validation_alias="APP_BASE_URL")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
