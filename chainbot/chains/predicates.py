"""Predicate builders for the common shapes of chains.

Each builder returns a plain ``Update -> bool`` callable that can be passed to
``ChainRegistry.add``. The combinators (``all_of``, ``any_of``, ``negate``)
accept async predicates too and return an async predicate when given one.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field

from aiogram.types import Message, Update

from chainbot.chains.registry import Predicate
from chainbot.common.tg import update_kind


@dataclass(frozen=True)
class CommandInfo:
    command: str
    mention: str | None = None
    arguments: list[str] = field(default_factory=list)
    text: str = ""


def _message(update: Update, *, edited: bool = False) -> Message | None:
    if update.message is not None:
        return update.message
    if edited:
        return update.edited_message
    return None


def message_text(update: Update, *, edited: bool = False, caption: bool = False) -> str | None:
    message = _message(update, edited=edited)
    if message is None:
        return None
    return message.text or (message.caption if caption else None)


def parse_command(update: Update, prefixes: str = "/") -> CommandInfo | None:
    """Split ``/cmd@bot arg1 arg2`` into its parts, or None if not a command."""
    text = message_text(update)
    if not text or text[0] not in prefixes:
        return None

    full_command, _, remainder = text.partition(" ")
    command, _, mention = full_command[1:].partition("@")
    if not command:
        return None

    return CommandInfo(
        command=command,
        mention=mention or None,
        arguments=remainder.split(),
        text=remainder.strip(),
    )


def any_update() -> Predicate:
    def predicate(update: Update) -> bool:
        return True

    return predicate


def event_types(*kinds: str) -> Predicate:
    """Match updates whose payload is one of ``kinds`` (``message``, ``callback_query``...)."""
    wanted = frozenset(kinds)

    def predicate(update: Update) -> bool:
        return update_kind(update) in wanted

    return predicate


def text(*, edited: bool = False, caption: bool = False) -> Predicate:
    """Match any message carrying text."""

    def predicate(update: Update) -> bool:
        return bool(message_text(update, edited=edited, caption=caption))

    return predicate


def command(
    *names: str,
    prefixes: str = "/",
    ignore_case: bool = True,
    bot_username: str | None = None,
) -> Predicate:
    """Match ``/name`` commands.

    A leading slash in ``names`` is optional. When ``bot_username`` is set,
    commands addressed to another bot (``/start@OtherBot``) do not match.
    """
    commands = {n.lstrip(prefixes) for n in names}
    if ignore_case:
        commands = {c.lower() for c in commands}

    def predicate(update: Update) -> bool:
        info = parse_command(update, prefixes=prefixes)
        if info is None:
            return False

        if (
            info.mention
            and bot_username
            and info.mention.lower() != bot_username.lstrip("@").lower()
        ):
            # Addressed to another bot
            return False

        name = info.command.lower() if ignore_case else info.command
        return name in commands

    return predicate


def regex(pattern: str | re.Pattern[str], *, caption: bool = True) -> Predicate:
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

    def predicate(update: Update) -> bool:
        value = message_text(update, caption=caption)
        return bool(value and compiled.search(value))

    return predicate


def callback_prefix(prefix: str) -> Predicate:
    """Match callback queries whose data starts with ``prefix``."""

    def predicate(update: Update) -> bool:
        query = update.callback_query
        return bool(query and query.data and query.data.startswith(prefix))

    return predicate


def _is_async(predicate: Predicate) -> bool:
    return inspect.iscoroutinefunction(predicate) or inspect.iscoroutinefunction(
        getattr(predicate, "__call__", None)
    )


def _check_sync(value: object) -> object:
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise TypeError("Predicate returned an awaitable; declare it with `async def`")
    return value


async def _resolve(value: object) -> object:
    if inspect.isawaitable(value):
        return await value
    return value


def all_of(*predicates: Predicate) -> Predicate:
    """Match when every predicate matches, short-circuiting on the first miss."""
    if any(_is_async(p) for p in predicates):

        async def async_predicate(update: Update) -> bool:
            for p in predicates:
                if not await _resolve(p(update)):
                    return False
            return True

        return async_predicate

    def predicate(update: Update) -> bool:
        return all(_check_sync(p(update)) for p in predicates)

    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    """Match when at least one predicate matches."""
    if any(_is_async(p) for p in predicates):

        async def async_predicate(update: Update) -> bool:
            for p in predicates:
                if await _resolve(p(update)):
                    return True
            return False

        return async_predicate

    def predicate(update: Update) -> bool:
        return any(_check_sync(p(update)) for p in predicates)

    return predicate


def negate(inner: Predicate) -> Predicate:
    if _is_async(inner):

        async def async_predicate(update: Update) -> bool:
            return not await inner(update)

        return async_predicate

    def predicate(update: Update) -> bool:
        return not _check_sync(inner(update))

    return predicate
