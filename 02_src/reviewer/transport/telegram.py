"""Telegram transport on python-telegram-bot."""

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update, User
from telegram.error import BadRequest, Forbidden, RetryAfter, TelegramError

from ..logging_config import get_logger
from .base import InboundMessage, ReplyMarkup, TransportError

logger = get_logger(__name__)


def _error_code(error: TelegramError) -> int | None:
    if isinstance(error, Forbidden):
        return 403
    if isinstance(error, RetryAfter):
        return 429
    if isinstance(error, BadRequest):
        return 400
    return None


def to_inline_keyboard(markup: ReplyMarkup | None) -> InlineKeyboardMarkup | None:
    if markup is None:
        return None
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(b.text, callback_data=b.callback_data) for b in row]
            for row in markup.rows
        ]
    )


class TelegramTransport:
    """Sends and edits messages through a telegram.Bot."""

    def __init__(self, token: str, bot: Bot | None = None):
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable not set")

        self._bot = bot or Bot(token)

    @property
    def bot(self) -> Bot:
        return self._bot

    async def close(self) -> None:
        await self._bot.shutdown()

    async def send_text(
        self,
        chat_id: int,
        text: str,
        reply_markup: ReplyMarkup | None = None,
    ) -> int:
        """Send a message and return its id."""
        try:
            message = await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_markup=to_inline_keyboard(reply_markup),
            )
        except TelegramError as e:
            raise TransportError(
                f"Telegram sendMessage failed: {e.message}", error_code=_error_code(e)
            ) from e
        return message.message_id

    async def edit_text(self, chat_id: int, message_id: int, text: str) -> None:
        """Replace the text of a sent message."""
        try:
            await self._bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=message_id
            )
        except TelegramError as e:
            raise TransportError(
                f"Telegram editMessageText failed: {e.message}", error_code=_error_code(e)
            ) from e

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        """Delete a message."""
        try:
            await self._bot.delete_message(chat_id=chat_id, message_id=message_id)
        except TelegramError as e:
            raise TransportError(
                f"Telegram deleteMessage failed: {e.message}", error_code=_error_code(e)
            ) from e

    async def pin_message(self, chat_id: int, message_id: int) -> None:
        """Pin a message in the chat."""
        try:
            await self._bot.pin_chat_message(
                chat_id=chat_id, message_id=message_id, disable_notification=True
            )
        except TelegramError as e:
            raise TransportError(
                f"Telegram pinChatMessage failed: {e.message}", error_code=_error_code(e)
            ) from e

    async def acknowledge(self, update: Update) -> None:
        """Answer a button press so the client stops its spinner."""
        if update.callback_query is None:
            return
        try:
            await self._bot.answer_callback_query(update.callback_query.id)
        except TelegramError as e:
            logger.warning("Failed to answer callback query: %s", e)


def parse_update(update: Update) -> InboundMessage | None:
    """Turn a message or a button press into an InboundMessage.

    Returns None for updates the bot does not handle.
    """
    callback = update.callback_query
    if callback is not None:
        # Reminders go to private chats, so the sender is the fallback chat.
        message = callback.message
        return _inbound(
            message_id=message.message_id if message else 0,
            sender=callback.from_user,
            chat_id=message.chat.id if message else callback.from_user.id,
            text=callback.data or "",
        )

    message = update.message
    if message is not None and message.from_user is not None and message.text:
        return _inbound(
            message_id=message.message_id,
            sender=message.from_user,
            chat_id=message.chat.id,
            text=message.text,
        )
    return None


def _inbound(message_id: int, sender: User, chat_id: int, text: str) -> InboundMessage:
    return InboundMessage(
        message_id=message_id,
        user_id=sender.id,
        chat_id=chat_id,
        text=text,
        user_name=sender.full_name or sender.username or str(sender.id),
        user_login=sender.username,
        language_id=sender.language_code or "en",
        is_bot=sender.is_bot,
    )
