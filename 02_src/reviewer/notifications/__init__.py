"""Notifications module."""

from .scheduler import (
    INotificationScheduler,
    NotificationBatchResult,
    NotificationScheduler,
)

__all__ = [
    "INotificationScheduler",
    "NotificationScheduler",
    "NotificationBatchResult",
]
