"""Default chains: update logging, /start, /help, unknown commands and echo."""

import logfire
from aiogram import html
from aiogram.types import Update

from chainbot.chains import ChainContext, ChainRegistry, Outcome, done, proceed, stop
from chainbot.chains.predicates import any_update, command, parse_command, text
from chainbot.common.tg import describe_update

HELP_TEXT = (
    "Available commands:\n"
    "• /start - Greeting\n"
    "• /help - Show this help message\n\n"
    "Any other text is echoed back."
)


async def log_update(update: Update, ctx: ChainContext) -> Outcome:
    logfire.info("update_received", **describe_update(update))
    return proceed(ctx)


async def cmd_start(update: Update, ctx: ChainContext) -> Outcome:
    message = update.message
    name = message.from_user.full_name if message.from_user else "there"
    await message.reply(f"👋 Hello, {html.quote(name)}!\n\nType /help to see what I can do.")
    return done(ctx)


async def cmd_help(update: Update, ctx: ChainContext) -> Outcome:
    await update.message.reply(html.quote(HELP_TEXT))
    return done(ctx)


def extract_command(update: Update, ctx: ChainContext) -> Outcome:
    ctx["command"] = parse_command(update)
    return proceed(ctx)


async def unknown_command(update: Update, ctx: ChainContext) -> Outcome:
    info = ctx["command"]
    await update.message.reply(f"Unknown command /{html.quote(info.command)}. Try /help.")
    return stop(ctx)


async def echo(update: Update, ctx: ChainContext) -> Outcome:
    await update.message.reply(html.quote(update.message.text))
    return done(ctx)


def _is_command(update: Update) -> bool:
    return parse_command(update) is not None


def register(registry: ChainRegistry, bot_username: str | None = None) -> None:
    registry.add("log_update", any_update(), log_update)
    registry.add("start", command("start", bot_username=bot_username), cmd_start)
    registry.add("help", command("help", bot_username=bot_username), cmd_help)
    registry.add("extract_command", _is_command, extract_command)
    registry.add("unknown_command", _is_command, unknown_command)
    # Must be the last one to handle all remaining text
    registry.add("echo", text(), echo)
