# services/notify_user.py
import asyncio
import datetime as dt
import html
import logging
import re
from typing import Awaitable, Callable

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ChatType, ParseMode
from telegram.error import Forbidden, RetryAfter, TelegramError

from models.notification import NotificationContent
from services.translation_service import translate

logger = logging.getLogger(__name__)

TELEGRAM_MAX_MSG_LEN = 4096
TELEGRAM_MAX_CAPTION_LEN = 1024
MAX_RETRY_AFTER_SECONDS = 30

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)

_TAG_RE = re.compile(r"<[^>]*>")


def _truncate_message(msg: str, limit: int = TELEGRAM_MAX_MSG_LEN) -> str:
    """
    Shorten an HTML message without splitting a tag or an entity.

    Whole lines are dropped from the end; every line of a token message closes
    its own tags. A single line that is too long on its own is sent as escaped
    plain text.
    """
    if not isinstance(msg, str):
        msg = str(msg)
    if len(msg) <= limit:
        return msg

    kept = []
    size = len("\n...")
    for line in msg.split("\n"):
        if size + len(line) + 1 > limit:
            break
        kept.append(line)
        size += len(line) + 1
    if kept:
        return "\n".join(kept) + "\n..."

    plain = html.unescape(_TAG_RE.sub("", msg.split("\n", 1)[0]))
    cut = plain[: limit - 3]
    escaped = html.escape(cut, quote=False)
    while len(escaped) > limit - 3:
        cut = cut[: len(cut) - (len(escaped) - (limit - 3))]
        escaped = html.escape(cut, quote=False)
    return escaped + "..."


def _retry_delay(err: RetryAfter) -> float:
    delay = err.retry_after
    if isinstance(delay, dt.timedelta):
        delay = delay.total_seconds()
    return min(float(delay), MAX_RETRY_AFTER_SECONDS)


async def _with_retry_after(send: Callable[[], Awaitable], chat_id: int, what: str):
    """Run one Telegram call, honouring a single RetryAfter for that call only."""
    try:
        return await send()
    except RetryAfter as e:
        delay = _retry_delay(e)
        logger.warning("Rate limited sending %s to %s; retrying in %.1fs", what, chat_id, delay)
        await asyncio.sleep(delay)
        return await send()


def _action_keyboard(content: NotificationContent, lang: str) -> InlineKeyboardMarkup:
    label = f"🚀 {translate(lang, 'open_mini_app_button')}"
    return InlineKeyboardMarkup([[InlineKeyboardButton(label, url=content.action_url)]])


async def is_group_chat(bot: Bot, chat_id: int) -> bool:
    """
    True only for group and supergroup chats. A failed lookup counts as not qualifying.
    """
    try:
        chat = await bot.get_chat(chat_id)
    except TelegramError as e:
        logger.debug("get_chat failed for %s: %s", chat_id, e)
        return False
    return getattr(chat, "type", None) in GROUP_CHAT_TYPES


async def _send_photo(bot: Bot, chat_id: int, content: NotificationContent, reply_markup: InlineKeyboardMarkup):
    symbol = content.token.base_token_symbol
    if len(content.message) <= TELEGRAM_MAX_CAPTION_LEN:
        await _with_retry_after(
            lambda: bot.send_photo(
                chat_id=chat_id,
                photo=content.chart,
                caption=content.message,
                parse_mode=ParseMode.HTML,
                reply_markup=reply_markup,
            ),
            chat_id,
            symbol,
        )
        return

    # Caption too long for a photo: image first, then the full text with the button
    await _with_retry_after(lambda: bot.send_photo(chat_id=chat_id, photo=content.chart), chat_id, symbol)
    text = _truncate_message(content.message)
    await _with_retry_after(
        lambda: bot.send_message(
            chat_id=chat_id,
            text=text,
            parse_mode=ParseMode.HTML,
            reply_markup=reply_markup,
            disable_web_page_preview=True,
        ),
        chat_id,
        f"{symbol} text",
    )


async def send_token_notification(
    bot: Bot,
    chat_id: int,
    content: NotificationContent,
    lang: str = "en",
) -> bool:
    """
    Send one chart + caption with the call-to-action button.
    Each Telegram call honours one RetryAfter; any other failure is logged and reported as False.
    """
    symbol = content.token.base_token_symbol
    reply_markup = _action_keyboard(content, lang)
    try:
        await _send_photo(bot, chat_id, content, reply_markup)
        logger.debug("Sent %s to %s", symbol, chat_id)
        return True
    except Forbidden as e:
        logger.info("Bot blocked or removed from chat %s: %s", chat_id, e)
    except TelegramError as e:
        logger.warning("Failed to send message to user %s for token %s: %s", chat_id, symbol, e)
    except Exception as e:
        logger.exception("Unexpected error sending %s to %s: %s", symbol, chat_id, e)
    return False
