"""Transport module."""

from .base import (
    InboundMessage,
    InlineButton,
    ITransport,
    ReplyMarkup,
    TransportError,
)
from .telegram import TelegramTransport, parse_update

__all__ = [
    "ITransport",
    "TransportError",
    "InboundMessage",
    "InlineButton",
    "ReplyMarkup",
    "TelegramTransport",
    "parse_update",
]
