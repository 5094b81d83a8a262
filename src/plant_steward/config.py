"""Application configuration."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_PLANT_MAP_URL = (
    "https://www.google.com/maps/d/u/0/viewer?mid=1AF_GOZZeEl4gkCOsCWw8taqtH2zAA3U"
)


class Settings(BaseSettings):
    """Bot settings loaded from environment variables."""

    telegram_bot_token: str
    telegram_allowed_user_ids: str | None = None
    strapi_api_url: str
    strapi_api_token: str
    upload_folder: str = "plants"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "low"
    openai_store: bool = False
    plant_map_url: str = DEFAULT_PLANT_MAP_URL
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("strapi_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def debug_errors(self) -> bool:
        """Local runs append exception details to chat error replies."""
        return self.environment == "local"


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Parse allowed Telegram user IDs; empty or "*" means everyone."""
    if raw is None or raw.strip() in {"", "*"}:
        return None
    ids = {int(chunk) for chunk in raw.split(",") if chunk.strip().isdigit()}
    return ids or None
