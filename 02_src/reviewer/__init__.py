"""Team review assistant."""

from .app import Application, IApplication
from .bot import CommandRouter
from .config import Settings, WorkdayOptions
from .dialogue import DialogContinuation, IDialogContinuation
from .holidays import HolidayService, IHolidayService
from .lifecycle import IReviewLifecycle, ReviewLifecycle, ReviewMessageBuilder
from .models import (
    DialogState,
    HolidayType,
    Player,
    ReviewEvent,
    TaskForReview,
    TaskForReviewState,
    Team,
    TraceEvent,
)
from .notifications import INotificationScheduler, NotificationScheduler
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .translation import ITranslateProvider, TranslateProvider
from .transport import ITransport, TelegramTransport, TransportError

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    "WorkdayOptions",
    # Models
    "DialogState",
    "Team",
    "Player",
    "TaskForReview",
    "TaskForReviewState",
    "ReviewEvent",
    "HolidayType",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ITransport",
    "TelegramTransport",
    "TransportError",
    "ITranslateProvider",
    "TranslateProvider",
    "IDialogContinuation",
    "DialogContinuation",
    "IReviewLifecycle",
    "ReviewLifecycle",
    "ReviewMessageBuilder",
    "CommandRouter",
    "IHolidayService",
    "HolidayService",
    "INotificationScheduler",
    "NotificationScheduler",
]
