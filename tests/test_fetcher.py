"""Tests for the getUpdates adapter and its error translation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.exceptions import (
    TelegramConflictError,
    TelegramNetworkError,
    TelegramRetryAfter,
    TelegramServerError,
    TelegramUnauthorizedError,
)
from aiogram.methods import GetUpdates

from chainbot.errors import ConfigError, RateLimitError, TransportError
from chainbot.ingest.fetcher import BotUpdateFetcher


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.session.timeout = 60.0
    bot.get_updates = AsyncMock(return_value=[])
    return bot


class TestBotUpdateFetcher:
    @pytest.mark.asyncio
    async def test_passes_offset_and_timeout(self, bot, make_update):
        updates = [make_update(5)]
        bot.get_updates.return_value = updates
        fetcher = BotUpdateFetcher(bot, allowed_updates=["message"])

        result = await fetcher.get_updates(offset=5, timeout=25)

        assert result == updates
        bot.get_updates.assert_awaited_once_with(
            offset=5,
            limit=100,
            timeout=25,
            allowed_updates=["message"],
            request_timeout=85,
        )

    @pytest.mark.asyncio
    async def test_zero_offset_is_omitted(self, bot):
        await BotUpdateFetcher(bot).get_updates(offset=0, timeout=10)

        assert bot.get_updates.await_args.kwargs["offset"] is None

    @pytest.mark.asyncio
    async def test_retry_after_becomes_rate_limit(self, bot):
        bot.get_updates.side_effect = TelegramRetryAfter(
            method=GetUpdates(), message="Flood control exceeded", retry_after=12
        )

        with pytest.raises(RateLimitError) as exc_info:
            await BotUpdateFetcher(bot).get_updates(offset=1, timeout=10)

        assert exc_info.value.retry_after == 12

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [
            TelegramNetworkError(method=GetUpdates(), message="connection reset"),
            TelegramServerError(method=GetUpdates(), message="Bad Gateway"),
            TelegramConflictError(method=GetUpdates(), message="terminated by other getUpdates"),
            asyncio.TimeoutError(),
            ConnectionResetError("peer"),
        ],
    )
    async def test_network_failures_become_transport_errors(self, bot, exc):
        bot.get_updates.side_effect = exc

        with pytest.raises(TransportError) as exc_info:
            await BotUpdateFetcher(bot).get_updates(offset=1, timeout=10)

        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.__cause__ is exc

    @pytest.mark.asyncio
    async def test_unauthorized_is_a_config_error(self, bot):
        bot.get_updates.side_effect = TelegramUnauthorizedError(
            method=GetUpdates(), message="Unauthorized"
        )

        with pytest.raises(ConfigError):
            await BotUpdateFetcher(bot).get_updates(offset=1, timeout=10)
