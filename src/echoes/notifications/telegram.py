"""Telegram delivery for unlock notifications."""

import logging
import re

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..logging import JSONLLogger, get_logger
from .dispatcher import MEMORY_ID_KEY, NotificationDispatcher

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
MAX_TITLE_LENGTH = 256


def escape_markdown(text: str) -> str:
    """Escape special characters for Telegram MarkdownV2."""
    special_chars = r"_*[]()~`>#+-=|{}.!"
    pattern = f"([{re.escape(special_chars)}])"
    return re.sub(pattern, r"\\\1", text)


def escape_truncated(text: str, max_length: int) -> str:
    """Escape text, cutting the plain text so the escaped result fits."""
    escaped = escape_markdown(text)
    if len(escaped) <= max_length:
        return escaped

    ellipsis = escape_markdown("...")
    pieces = []
    size = len(ellipsis)
    for char in text:
        piece = escape_markdown(char)
        if size + len(piece) > max_length:
            break
        pieces.append(piece)
        size += len(piece)
    return "".join(pieces) + ellipsis


def format_notification(title: str, body: str, memory_id: str | None = None) -> str:
    """Render a notification as a MarkdownV2 message within Telegram's limit.

    Long titles and bodies are shortened before escaping, so the bold and
    code entities and every escape sequence stay intact.
    """
    header = f"*{escape_truncated(title, MAX_TITLE_LENGTH)}*\n"
    footer = f"\n\n`{escape_markdown(memory_id)}`" if memory_id else ""
    available = MAX_MESSAGE_LENGTH - len(header) - len(footer)
    return header + escape_truncated(body, available) + footer


class TelegramDispatcher(NotificationDispatcher):
    """Sends notifications to a Telegram chat."""

    def __init__(
        self,
        token: str | None,
        chat_id: str | None,
        bot: Bot | None = None,
        event_log: JSONLLogger | None = None,
    ) -> None:
        if not token:
            raise ValueError("TELEGRAM_TOKEN not set")
        if not chat_id:
            raise ValueError("ECHOES_TELEGRAM_CHAT_ID not set")
        self.chat_id = chat_id
        self.bot = bot or Bot(token=token)
        self.event_log = event_log or get_logger()

    async def notify(
        self,
        identifier: str,
        title: str,
        body: str,
        payload: dict[str, str] | None = None,
    ) -> bool:
        memory_id = (payload or {}).get(MEMORY_ID_KEY)
        text = format_notification(title, body, memory_id)
        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2,
            )
        except TelegramError as e:
            logger.warning("Telegram delivery failed for %s: %s", identifier, e)
            self.event_log.log_notification(identifier, False, channel="telegram", error=str(e))
            return False

        self.event_log.log_notification(identifier, True, channel="telegram")
        return True
