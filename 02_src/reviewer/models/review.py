"""Review task data model and its state machine."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from ..errors import NotATeamMemberError
from .team import PlayerAsOwner, PlayerAsReviewer, Team, new_id


class TaskForReviewState(str, Enum):
    """Lifecycle states of a review task."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    ON_CORRECTION = "on_correction"
    ACCEPT = "accept"
    IS_ARCHIVED = "is_archived"


ACTIVE_STATES: tuple[TaskForReviewState, ...] = (
    TaskForReviewState.NEW,
    TaskForReviewState.IN_PROGRESS,
    TaskForReviewState.ON_CORRECTION,
)


class ReviewEvent(str, Enum):
    """Things that can happen to a review task."""

    MOVE_TO_IN_PROGRESS = "move_to_in_progress"
    ACCEPT = "accept"
    DECLINE = "decline"
    MOVE_TO_NEXT_ROUND = "move_to_next_round"
    ARCHIVE = "archive"


# (from, event) -> to. Pairs missing here are ignored.
TRANSITIONS: dict[tuple[TaskForReviewState, ReviewEvent], TaskForReviewState] = {
    (TaskForReviewState.NEW, ReviewEvent.MOVE_TO_IN_PROGRESS): TaskForReviewState.IN_PROGRESS,
    (TaskForReviewState.NEW, ReviewEvent.ACCEPT): TaskForReviewState.ACCEPT,
    (TaskForReviewState.IN_PROGRESS, ReviewEvent.ACCEPT): TaskForReviewState.ACCEPT,
    (TaskForReviewState.NEW, ReviewEvent.DECLINE): TaskForReviewState.ON_CORRECTION,
    (TaskForReviewState.IN_PROGRESS, ReviewEvent.DECLINE): TaskForReviewState.ON_CORRECTION,
    (TaskForReviewState.ON_CORRECTION, ReviewEvent.MOVE_TO_NEXT_ROUND): TaskForReviewState.IN_PROGRESS,
    (TaskForReviewState.ACCEPT, ReviewEvent.ARCHIVE): TaskForReviewState.IS_ARCHIVED,
}


@dataclass
class TaskForReview:
    """A work item submitted by an owner and assigned to a reviewer."""

    id: str
    team_id: str
    owner: PlayerAsOwner
    reviewer: PlayerAsReviewer
    description: str
    chat_id: int
    state: TaskForReviewState = TaskForReviewState.NEW
    next_notification: datetime | None = None
    accept_date: datetime | None = None
    message_id: int | None = None

    def __post_init__(self) -> None:
        if self.owner.user_id == self.reviewer.user_id:
            raise ValueError("Owner and reviewer must be different users")

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @classmethod
    def create(
        cls,
        team: Team,
        owner_user_id: int,
        description: str,
        chat_id: int,
        now: datetime,
    ) -> "TaskForReview | None":
        """Create a task for the owner and rotate the team's reviewer.

        Returns None when the team has nobody but the owner. Updates the
        owner's last_reviewer_id on the team record.
        """
        owner = team.find_player(owner_user_id)
        if owner is None:
            raise NotATeamMemberError(team.id, owner_user_id)

        reviewer = team.next_reviewer(owner)
        if reviewer is None:
            return None

        owner.last_reviewer_id = reviewer.user_id
        return cls(
            id=new_id(),
            team_id=team.id,
            owner=owner.as_owner(),
            reviewer=reviewer.as_reviewer(),
            description=description.strip(),
            chat_id=chat_id,
            state=TaskForReviewState.NEW,
            next_notification=now,
        )

    def can_apply(self, event: ReviewEvent) -> bool:
        return (self.state, event) in TRANSITIONS

    def apply(
        self,
        event: ReviewEvent,
        now: datetime,
        notification_interval: timedelta,
    ) -> "TaskForReview | None":
        """Return the task after `event`, or None if the event is not legal now.

        The receiver is never modified.
        """
        target = TRANSITIONS.get((self.state, event))
        if target is None:
            return None

        if target is TaskForReviewState.ACCEPT:
            return replace(self, state=target, accept_date=now, next_notification=None)
        if target is TaskForReviewState.IS_ARCHIVED:
            return replace(self, state=target, next_notification=None)
        return replace(self, state=target, next_notification=now + notification_interval)

    def set_next_notification_time(self, now: datetime, interval: timedelta) -> None:
        self.next_notification = now + interval

    def attach_message(self, message_id: int) -> "TaskForReview":
        self.message_id = message_id
        return self
