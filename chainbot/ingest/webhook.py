"""Push-based ingestion: a receiver for single-update payloads and its aiohttp server."""

from __future__ import annotations

import asyncio
import hmac
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import logfire
from aiogram import Bot
from aiogram.exceptions import TelegramUnauthorizedError
from aiogram.types import Update
from aiohttp import web
from pydantic import ValidationError

from chainbot.common.utils import utcnow
from chainbot.errors import ConfigError, DecodeError
from chainbot.ingest.source import IngestionSource
from chainbot.supervisor import Supervisor

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@dataclass(frozen=True)
class WebhookAck:
    accepted: bool
    update_id: int | None = None


class WebhookReceiver:
    """Turns one pushed payload into one supervised dispatch.

    ``deliver`` never waits for handlers: the pusher retries slow deliveries,
    so a late ack would produce duplicates. Undecodable payloads are acked as
    well, otherwise the pusher would retry them forever. There is no
    deduplication here; retried deliveries are dispatched again.
    """

    def __init__(self, supervisor: Supervisor, bot: Bot | None = None) -> None:
        self.supervisor = supervisor
        self.bot = bot

    def decode(self, raw: bytes | str | Mapping[str, Any]) -> Update:
        context = {"bot": self.bot} if self.bot is not None else None
        try:
            if isinstance(raw, Mapping):
                return Update.model_validate(raw, context=context)
            return Update.model_validate_json(raw, context=context)
        except (ValidationError, TypeError, ValueError) as exc:
            raise DecodeError(f"Malformed update payload: {exc}") from exc

    def deliver(self, raw: bytes | str | Mapping[str, Any]) -> WebhookAck:
        """Decode and hand off a payload; must be called from the event loop."""
        try:
            update = self.decode(raw)
        except DecodeError as exc:
            logfire.warning(
                "decode_error",
                payload_size=len(raw) if isinstance(raw, (bytes, str)) else None,
                error=str(exc),
                _exc_info=exc,
            )
            return WebhookAck(accepted=False)

        self.supervisor.submit(update, utcnow())
        return WebhookAck(accepted=True, update_id=update.update_id)


RECEIVER_KEY = web.AppKey("receiver", WebhookReceiver)
SECRET_KEY = web.AppKey("secret_token", str)


async def _handle_update(request: web.Request) -> web.Response:
    secret = request.app.get(SECRET_KEY)
    if secret and not hmac.compare_digest(request.headers.get(SECRET_HEADER, ""), secret):
        logfire.warning("webhook_unauthorized", remote=request.remote)
        return web.json_response({"ok": False, "err": "Unauthorized"}, status=401)

    raw = await request.read()
    ack = request.app[RECEIVER_KEY].deliver(raw)
    return web.json_response({"ok": True, "accepted": ack.accepted})


def create_webhook_app(
    receiver: WebhookReceiver,
    path: str = "/webhook",
    secret_token: str | None = None,
) -> web.Application:
    app = web.Application()
    app[RECEIVER_KEY] = receiver
    if secret_token:
        app[SECRET_KEY] = secret_token
    app.router.add_post(path, _handle_update)
    return app


class WebhookServer(IngestionSource):
    """Serves the webhook app and optionally registers it with ``setWebhook``."""

    name = "webhook"

    def __init__(
        self,
        receiver: WebhookReceiver,
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
        path: str = "/webhook",
        secret_token: str | None = None,
        public_url: str | None = None,
        drop_pending_updates: bool = False,
    ) -> None:
        self.receiver = receiver
        self.host = host
        self.port = port
        self.path = path
        self.secret_token = secret_token
        self.public_url = public_url
        self.drop_pending_updates = drop_pending_updates
        self._stopped = asyncio.Event()

    def build_app(self) -> web.Application:
        return create_webhook_app(self.receiver, self.path, self.secret_token)

    async def _register(self) -> None:
        bot = self.receiver.bot
        if bot is None or not self.public_url:
            return
        try:
            await bot.set_webhook(
                url=self.public_url,
                secret_token=self.secret_token,
                drop_pending_updates=self.drop_pending_updates,
            )
        except TelegramUnauthorizedError as exc:
            raise ConfigError(f"Bot token rejected: {exc.message}") from exc
        logfire.info("webhook_registered", url=self.public_url)

    async def run(self) -> None:
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        try:
            site = web.TCPSite(runner, self.host, self.port)
            await site.start()
            logfire.info(
                "webhook_listening", host=self.host, port=self.port, path=self.path
            )
            await self._register()
            await self._stopped.wait()
        finally:
            await runner.cleanup()

    async def stop(self) -> None:
        self._stopped.set()
