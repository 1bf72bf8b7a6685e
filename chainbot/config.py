"""Configuration settings using Pydantic."""

from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainbot.errors import ConfigError

# Docs: https://docs.pydantic.dev/2.8/concepts/pydantic_settings/


class Settings(BaseSettings):
    # App name used in logs
    app_name: str = "chainbot"

    # Allows to detect type of deployment
    environment: Literal["dev", "prod"] = "dev"

    # Token got from https://t.me/BotFather
    telegram_bot_token: str

    # Logfire token, logs stay local when missing
    logfire_token: str | None = None

    # --- Ingestion ---

    ingest_mode: Literal["poll", "webhook"] = "poll"

    # Long-poll wait passed to getUpdates
    poll_timeout_seconds: int = Field(default=25, ge=0, le=50)

    # Overrides the persisted cursor when set
    initial_cursor: int | None = None

    # Skip updates queued while the bot was offline
    skip_pending_updates: bool = False

    # Cursor persistence, file wins over database when both are set
    cursor_file: str | None = None
    cursor_database_url: str | None = None

    # Exponential backoff for transport errors and loop restarts
    backoff_initial_delay: float = 1.0
    backoff_max_delay: float = 30.0
    backoff_factor: float = 2.0
    backoff_jitter: float = 0.1

    # 0 means unbounded
    max_concurrent_updates: int = Field(default=0, ge=0)

    # --- Webhook ---

    webhook_host: str = "127.0.0.1"
    webhook_port: int = 8080
    webhook_path: str = "/webhook"

    # Public URL registered with setWebhook, leave empty to manage it yourself
    webhook_url: str | None = None
    webhook_secret: str | None = None

    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from .env
    )

    @property
    def bot_id(self) -> int:
        return int(self.telegram_bot_token.split(":")[0])


def load_settings(**overrides) -> Settings:
    """Read settings from the environment, failing fast on missing values."""
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    token = settings.telegram_bot_token.strip()
    bot_id, _, secret = token.partition(":")
    if not (bot_id.isascii() and bot_id.isdigit()) or not secret:
        raise ConfigError("TELEGRAM_BOT_TOKEN is missing or malformed")
    if settings.ingest_mode == "webhook" and not settings.webhook_path.startswith("/"):
        raise ConfigError("WEBHOOK_PATH must start with '/'")
    return settings
