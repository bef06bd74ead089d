"""Core data models for the review bot."""

from .commands import CommandList, task_command
from .dialogue import (
    AwaitingDescription,
    AwaitingTeamName,
    AwaitingTeamSelection,
    DialogFlow,
    DialogState,
)
from .holiday import HolidayType
from .review import (
    ACTIVE_STATES,
    TRANSITIONS,
    ReviewEvent,
    TaskForReview,
    TaskForReviewState,
)
from .team import Player, PlayerAsOwner, PlayerAsReviewer, Team, new_id
from .tracing import TraceEvent

__all__ = [
    # Commands
    "CommandList",
    "task_command",
    # Dialogue
    "DialogState",
    "DialogFlow",
    "AwaitingTeamName",
    "AwaitingTeamSelection",
    "AwaitingDescription",
    # Teams
    "Team",
    "Player",
    "PlayerAsOwner",
    "PlayerAsReviewer",
    "new_id",
    # Review
    "TaskForReview",
    "TaskForReviewState",
    "ReviewEvent",
    "ACTIVE_STATES",
    "TRANSITIONS",
    # Calendar
    "HolidayType",
    # Tracing
    "TraceEvent",
]
