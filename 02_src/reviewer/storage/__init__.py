"""Storage module."""

from .storage import (
    IDialogueStateStore,
    IHolidayReader,
    IStorage,
    ITaskForReviewRepository,
    ITeamRepository,
    ITraceEventStore,
    Storage,
)

__all__ = [
    "IStorage",
    "Storage",
    "ITaskForReviewRepository",
    "ITeamRepository",
    "IDialogueStateStore",
    "IHolidayReader",
    "ITraceEventStore",
]
