"""Transport contract between the bot core and a chat platform."""

from dataclasses import dataclass, field
from typing import Protocol


class TransportError(Exception):
    """A chat platform call failed (delivery error, rate limit, bad request)."""

    def __init__(self, message: str, error_code: int | None = None):
        super().__init__(message)
        self.error_code = error_code


@dataclass(frozen=True)
class InlineButton:
    """A button that sends `callback_data` back to the bot when pressed."""

    text: str
    callback_data: str


@dataclass
class ReplyMarkup:
    """Rows of inline buttons attached to a message."""

    rows: list[list[InlineButton]] = field(default_factory=list)

    @classmethod
    def single_row(cls, *buttons: InlineButton) -> "ReplyMarkup":
        return cls(rows=[list(buttons)])

    @property
    def buttons(self) -> list[InlineButton]:
        return [button for row in self.rows for button in row]

    def to_dict(self) -> dict:
        return {
            "inline_keyboard": [
                [{"text": b.text, "callback_data": b.callback_data} for b in row]
                for row in self.rows
            ]
        }


@dataclass(frozen=True)
class InboundMessage:
    """A text event addressed to the bot."""

    message_id: int
    user_id: int
    chat_id: int
    text: str
    user_name: str = ""
    user_login: str | None = None
    language_id: str = "en"
    is_bot: bool = False

    @property
    def is_private(self) -> bool:
        return self.user_id == self.chat_id


class ITransport(Protocol):
    """Outbound chat operations. Every call may raise TransportError."""

    async def send_text(
        self,
        chat_id: int,
        text: str,
        reply_markup: ReplyMarkup | None = None,
    ) -> int:
        """Send a message and return its id."""
        ...

    async def edit_text(self, chat_id: int, message_id: int, text: str) -> None:
        """Replace the text of a sent message."""
        ...

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        """Delete a message."""
        ...

    async def pin_message(self, chat_id: int, message_id: int) -> None:
        """Pin a message in the chat."""
        ...
