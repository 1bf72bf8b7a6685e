"""Helpers for describing updates in logs without caring about their variant."""

from aiogram.types import Chat, Message, TelegramObject, Update, User

from .utils import one_liner

UNKNOWN_KIND = "unknown"


def update_kind(update: Update) -> str:
    """Return the payload discriminator, e.g. ``message`` or ``callback_query``."""
    try:
        return update.event_type
    except Exception:
        # Update types newer than the installed aiogram have no known field
        return UNKNOWN_KIND


def user_info(user: User, sender_chat: Chat | None = None) -> str:
    if sender_chat:
        return chat_info(sender_chat)

    username = ", @" + user.username if user.username else ""
    return f"{user.first_name} ({user.id}{username})"


def chat_info(chat: Chat) -> str:
    if chat.type == "private":
        return "private"

    username = ", @" + chat.username if chat.username else ""
    return f"{chat.type} | {chat.title} ({chat.id}{username})"


def message_info(message: Message) -> str:
    prefix = f"{message.message_id} | "
    if message.text:
        return prefix + one_liner(message.text, cut_len=50)
    return prefix + f"type: {message.content_type}"


def decompose_update(
    update: Update,
) -> tuple[TelegramObject, User | None, Chat | None, Chat | None, str]:
    user, sender_chat, chat = None, None, None

    if f := update.message:
        user = f.from_user
        sender_chat = f.sender_chat
        chat = f.chat
        info = message_info(f)
    elif f := update.edited_message:
        user = f.from_user
        sender_chat = f.sender_chat
        chat = f.chat
        info = message_info(f) + " [edited]"
    elif f := update.channel_post:
        chat = f.chat
        info = message_info(f)
    elif f := update.edited_channel_post:
        chat = f.chat
        info = message_info(f) + " [edited]"
    elif f := update.inline_query:
        user = f.from_user
        info = one_liner(f.query, cut_len=50)
    elif f := update.chosen_inline_result:
        user = f.from_user
        info = one_liner(f.query, cut_len=50)
    elif f := update.callback_query:
        if f.message:
            chat = f.message.chat
        user = f.from_user
        info = f.data or ""
    elif f := update.poll_answer:
        user = f.user
        info = f"{f.option_ids} ({f.poll_id})"
    elif f := (update.chat_member or update.my_chat_member):
        user = f.from_user
        chat = f.chat
        info = f"{f.old_chat_member.status} -> {f.new_chat_member.status}"
    else:
        f = update
        info = one_liner(update.model_dump_json(exclude_none=True), cut_len=100)

    return f, user, sender_chat, chat, info


def describe_update(update: Update) -> dict[str, object]:
    """Flat attributes suitable for structured log events."""
    _, user, sender_chat, chat, info = decompose_update(update)
    attrs: dict[str, object] = {
        "update_id": update.update_id,
        "kind": update_kind(update),
        "info": info,
    }
    if user is not None:
        attrs["user"] = user_info(user, sender_chat)
    if chat is not None:
        attrs["chat"] = chat_info(chat)
    return attrs
