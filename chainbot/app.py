"""Boot-time extension points of an embedding application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import logfire
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError, TelegramUnauthorizedError

from chainbot.chains import ChainRegistry
from chainbot.config import Settings
from chainbot.db import DatabaseManager
from chainbot.dispatcher import Dispatcher
from chainbot.errors import ConfigError
from chainbot.ingest.backoff import BackoffConfig
from chainbot.ingest.cursor import (
    CursorStore,
    DatabaseCursorStore,
    FileCursorStore,
    MemoryCursorStore,
)
from chainbot.ingest.fetcher import BotUpdateFetcher
from chainbot.ingest.poller import Poller
from chainbot.ingest.source import IngestionSource
from chainbot.ingest.webhook import WebhookReceiver, WebhookServer
from chainbot.supervisor import Supervisor


@dataclass(frozen=True)
class IngestionConfig:
    mode: Literal["poll", "webhook"] = "poll"
    poll_timeout_seconds: int = 25
    initial_cursor: int | None = None
    webhook_path: str | None = None
    webhook_url: str | None = None
    skip_pending: bool = False

    def validate(self) -> None:
        if self.mode not in ("poll", "webhook"):
            raise ConfigError(f"Unknown ingestion mode: {self.mode!r}")
        if self.poll_timeout_seconds < 0:
            raise ConfigError("poll_timeout_seconds must be >= 0")
        if self.initial_cursor is not None and self.initial_cursor < 0:
            raise ConfigError("initial_cursor must be >= 0")
        if self.mode == "webhook" and not (
            self.webhook_path and self.webhook_path.startswith("/")
        ):
            raise ConfigError("Webhook mode needs a webhook_path starting with '/'")


class ChainApp:
    """Wires settings, chains and an ingestion source together.

    Subclass and override ``on_boot`` to pick the ingestion mode and
    ``register_chains`` to add chains. Both run once, before any update is
    fetched; the registry is frozen afterwards.

    Usage:
        class MyApp(ChainApp):
            def register_chains(self, registry):
                registry.add("start", command("start"), cmd_start)

        asyncio.run(MyApp(load_settings()).run())
    """

    def __init__(
        self,
        settings: Settings,
        *,
        bot: Bot | None = None,
        registry: ChainRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.bot = bot or self.build_bot()
        self.registry = registry if registry is not None else ChainRegistry()
        self._db: DatabaseManager | None = None

    def build_bot(self) -> Bot:
        default = DefaultBotProperties(
            parse_mode="HTML",
            link_preview_is_disabled=True,
        )
        return Bot(token=self.settings.telegram_bot_token, default=default)

    def on_boot(self) -> IngestionConfig:
        s = self.settings
        return IngestionConfig(
            mode=s.ingest_mode,
            poll_timeout_seconds=s.poll_timeout_seconds,
            initial_cursor=s.initial_cursor,
            webhook_path=s.webhook_path,
            webhook_url=s.webhook_url,
            skip_pending=s.skip_pending_updates,
        )

    def register_chains(self, registry: ChainRegistry) -> None:
        """Add the application's chains. The default registers nothing."""

    @property
    def backoff(self) -> BackoffConfig:
        s = self.settings
        return BackoffConfig(
            initial_delay=s.backoff_initial_delay,
            max_delay=s.backoff_max_delay,
            factor=s.backoff_factor,
            jitter=s.backoff_jitter,
        )

    def build_cursor_store(self) -> CursorStore:
        if self.settings.cursor_file:
            return FileCursorStore(self.settings.cursor_file)
        if self.settings.cursor_database_url:
            self._db = DatabaseManager(
                self.settings.cursor_database_url,
                echo=self.settings.environment == "dev",
            )
            return DatabaseCursorStore(self._db, bot_id=self.settings.bot_id)
        return MemoryCursorStore()

    def build_source(self, config: IngestionConfig, supervisor: Supervisor) -> IngestionSource:
        if config.mode == "webhook":
            return WebhookServer(
                WebhookReceiver(supervisor, bot=self.bot),
                host=self.settings.webhook_host,
                port=self.settings.webhook_port,
                path=config.webhook_path,
                secret_token=self.settings.webhook_secret,
                public_url=config.webhook_url,
                drop_pending_updates=config.skip_pending,
            )

        return Poller(
            BotUpdateFetcher(self.bot),
            supervisor,
            store=self.build_cursor_store(),
            timeout=config.poll_timeout_seconds,
            initial_cursor=config.initial_cursor,
            skip_pending=config.skip_pending,
            backoff=self.backoff,
        )

    def boot(self) -> tuple[IngestionConfig, Supervisor, IngestionSource]:
        config = self.on_boot()
        config.validate()

        self.register_chains(self.registry)
        dispatcher = Dispatcher(self.registry)
        supervisor = Supervisor(
            dispatcher,
            max_concurrency=self.settings.max_concurrent_updates,
            restart_backoff=self.backoff,
        )
        source = self.build_source(config, supervisor)
        logfire.info(
            "app_booted",
            mode=config.mode,
            chains=self.registry.names(),
        )
        return config, supervisor, source

    async def run(self, drain_timeout: float = 10.0) -> None:
        _, supervisor, source = self.boot()
        try:
            if isinstance(source, Poller):
                await self._drop_webhook()
            await supervisor.supervise(source.name, source.run)
        finally:
            await source.stop()
            await supervisor.drain(timeout=drain_timeout)
            await self.bot.session.close()
            if self._db is not None:
                await self._db.disconnect()

    async def _drop_webhook(self) -> None:
        # getUpdates is refused while a webhook is set
        try:
            await self.bot.delete_webhook(drop_pending_updates=False)
        except TelegramUnauthorizedError as exc:
            raise ConfigError(f"Bot token rejected: {exc.message}") from exc
        except TelegramAPIError as exc:
            logfire.warning("delete_webhook_failed", error=str(exc))
