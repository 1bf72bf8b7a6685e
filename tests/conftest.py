"""Shared fixtures: real aiogram updates, registries and fake collaborators."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram.types import Message, Update

# Set up test environment variables before any imports
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST_TOKEN_FOR_TESTING")

from chainbot.chains import ChainRegistry  # noqa: E402
from chainbot.supervisor import Supervisor  # noqa: E402


def message_payload(
    text: str | None = "Hello",
    *,
    message_id: int = 1,
    user_id: int = 12345,
    chat_id: int = -1001234567890,
    chat_type: str = "supergroup",
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "message_id": message_id,
        "date": 1_700_000_000,
        "chat": {"id": chat_id, "type": chat_type, "title": "Test Chat"},
        "from": {"id": user_id, "is_bot": False, "first_name": "Test", "username": "testuser"},
    }
    if text is not None:
        payload["text"] = text
    return payload


@pytest.fixture
def make_update():
    """Factory for real aiogram Update objects.

    Usage:
        update = make_update(101, text="/start")
        update = make_update(7, callback_data="vote:1")
    """

    def _make_update(
        update_id: int = 1,
        text: str | None = "Hello",
        *,
        kind: str = "message",
        callback_data: str | None = None,
        inline_query: str | None = None,
        **message_kwargs: Any,
    ) -> Update:
        data: dict[str, Any] = {"update_id": update_id}
        if callback_data is not None:
            data["callback_query"] = {
                "id": "cb1",
                "from": {"id": 12345, "is_bot": False, "first_name": "Test"},
                "chat_instance": "ci",
                "data": callback_data,
            }
        elif inline_query is not None:
            data["inline_query"] = {
                "id": "iq1",
                "from": {"id": 12345, "is_bot": False, "first_name": "Test"},
                "query": inline_query,
                "offset": "",
            }
        else:
            data[kind] = message_payload(text, **message_kwargs)
        return Update.model_validate(data)

    return _make_update


@pytest.fixture
def registry() -> ChainRegistry:
    return ChainRegistry()


@pytest.fixture
def fake_supervisor() -> MagicMock:
    """Supervisor double that records hand-offs without running anything."""
    supervisor = MagicMock(spec=Supervisor)
    supervisor.submit.return_value = None
    supervisor.submit_bounded = AsyncMock(return_value=None)
    return supervisor


@pytest.fixture
def handed_off_ids(fake_supervisor: MagicMock):
    """Update ids handed off so far, through either hand-off path."""

    def _ids() -> list[int]:
        calls = (
            fake_supervisor.submit.call_args_list
            + fake_supervisor.submit_bounded.await_args_list
        )
        return [c.args[0].update_id for c in calls]

    return _ids


class FakeFetcher:
    """Plays back scripted ``getUpdates`` results.

    Each response is either a sequence of updates or an exception to raise.
    When the script runs out, ``on_exhausted`` is awaited and an empty batch
    is returned.
    """

    def __init__(self, *responses: Sequence[Update] | Exception) -> None:
        self.responses = list(responses)
        self.offsets: list[int] = []
        self.timeouts: list[int] = []
        self.on_exhausted = AsyncMock()

    async def get_updates(self, offset: int, timeout: int) -> Sequence[Update]:
        self.offsets.append(offset)
        self.timeouts.append(timeout)
        if not self.responses:
            await self.on_exhausted()
            return []
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def make_message_update():
    """Factory for a mocked update whose message methods are awaitable mocks."""

    def _make(text: str | None = "Hello", full_name: str = "Test User", update_id: int = 1):
        message = MagicMock(spec=Message)
        message.message_id = 1
        message.text = text
        message.caption = None
        message.sender_chat = None
        message.chat = MagicMock(id=12345, type="private", username=None)
        message.from_user = MagicMock(id=12345, first_name="Test", username=None)
        message.from_user.full_name = full_name
        message.reply = AsyncMock()
        message.answer = AsyncMock()

        update = MagicMock(spec=Update)
        update.update_id = update_id
        update.event_type = "message"
        update.message = message
        update.edited_message = None
        return update

    return _make
