"""Adapter between the Poller and the Bot API ``getUpdates`` method."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

from aiogram import Bot
from aiogram.exceptions import (
    TelegramConflictError,
    TelegramNetworkError,
    TelegramRetryAfter,
    TelegramServerError,
    TelegramUnauthorizedError,
)
from aiogram.types import Update

from chainbot.errors import ConfigError, RateLimitError, TransportError


class UpdateFetcher(Protocol):
    async def get_updates(self, offset: int, timeout: int) -> Sequence[Update]: ...


class BotUpdateFetcher:
    """Fetches updates through an aiogram ``Bot``.

    aiogram errors are translated into the ingestion taxonomy: flood control
    becomes ``RateLimitError``, network and 5xx failures ``TransportError``,
    and a rejected token ``ConfigError``.
    """

    def __init__(
        self,
        bot: Bot,
        *,
        allowed_updates: list[str] | None = None,
        limit: int = 100,
    ) -> None:
        self.bot = bot
        self.allowed_updates = allowed_updates
        self.limit = limit

    async def get_updates(self, offset: int, timeout: int) -> Sequence[Update]:
        try:
            return await self.bot.get_updates(
                offset=offset or None,
                limit=self.limit,
                timeout=timeout,
                allowed_updates=self.allowed_updates,
                request_timeout=int(self.bot.session.timeout + timeout),
            )
        except TelegramRetryAfter as exc:
            raise RateLimitError(exc.retry_after, exc.message) from exc
        except TelegramUnauthorizedError as exc:
            raise ConfigError(f"Bot token rejected: {exc.message}") from exc
        except (TelegramNetworkError, TelegramServerError, TelegramConflictError) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc.message}") from exc
        except (asyncio.TimeoutError, ConnectionError) as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
