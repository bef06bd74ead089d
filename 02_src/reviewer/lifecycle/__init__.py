"""Review lifecycle module."""

from .messages import OutboundMessage, ReviewMessageBuilder
from .service import IReviewLifecycle, ReviewLifecycle

__all__ = [
    "IReviewLifecycle",
    "ReviewLifecycle",
    "ReviewMessageBuilder",
    "OutboundMessage",
]
