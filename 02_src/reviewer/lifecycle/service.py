"""ReviewLifecycle: creates tasks and moves them between states."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from ..errors import TaskNotFoundError, TeamNotFoundError
from ..locks import KeyedLock
from ..logging_config import get_logger
from ..models import ReviewEvent, TaskForReview, Team
from ..storage import ITaskForReviewRepository, ITeamRepository
from ..tracker import ITracker
from ..transport import ITransport, TransportError
from .messages import OutboundMessage, ReviewMessageBuilder

logger = get_logger(__name__)


class IReviewLifecycle(Protocol):
    """Review task operations."""

    async def create_task(
        self,
        team: Team,
        owner_user_id: int,
        description: str,
        chat_id: int,
    ) -> TaskForReview | None:
        """Create a task, post its status message and persist it."""
        ...

    async def transition(self, task_id: str, event: ReviewEvent) -> TaskForReview | None:
        """Apply `event`; None if the task is not in a state that allows it."""
        ...


class ReviewLifecycle:
    """Applies the transition table to stored tasks.

    Every operation reads the task from the repository, persists the new
    state, and only then touches the chat. A failed write leaves nothing
    reported; a failed chat call after the write is logged and the
    transition stands.
    """

    def __init__(
        self,
        tasks: ITaskForReviewRepository,
        teams: ITeamRepository,
        transport: ITransport,
        messages: ReviewMessageBuilder,
        tracker: ITracker,
        notification_interval: timedelta,
        clock: Callable[[], datetime] | None = None,
    ):
        self._tasks = tasks
        self._teams = teams
        self._transport = transport
        self._messages = messages
        self._tracker = tracker
        self._notification_interval = notification_interval
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = KeyedLock()
        self._team_locks = KeyedLock()

    async def create_task(
        self,
        team: Team,
        owner_user_id: int,
        description: str,
        chat_id: int,
    ) -> TaskForReview | None:
        """Create a task, post its status message and persist it.

        Returns None when the team has no reviewer for this owner. The team
        is re-read under a per-team lock so concurrent submissions rotate
        from the stored pointers.
        """
        async with self._team_locks.hold(team.id):
            current = await self._teams.find_team(team.id)
            if current is None:
                raise TeamNotFoundError(team.id)
            return await self._create_task(current, owner_user_id, description, chat_id)

    async def _create_task(
        self,
        team: Team,
        owner_user_id: int,
        description: str,
        chat_id: int,
    ) -> TaskForReview | None:
        task = TaskForReview.create(team, owner_user_id, description, chat_id, self._clock())
        if task is None:
            return None

        message_id = await self._transport.send_text(chat_id, await self._messages.status(task))
        task.attach_message(message_id)

        try:
            await self._teams.set_last_reviewer(task.owner.player_id, task.reviewer.user_id)
            await self._tasks.upsert_task(task)
        except Exception:
            # The task was not stored, so its status message goes too.
            await self._delete_quietly(chat_id, message_id)
            raise

        logger.info(
            "Task %s created in team %s: owner %s, reviewer %s",
            task.id,
            team.id,
            task.owner.user_id,
            task.reviewer.user_id,
        )
        await self._tracker.track(
            "task_created",
            "review_lifecycle",
            {
                "task_id": task.id,
                "team_id": team.id,
                "owner_id": task.owner.user_id,
                "reviewer_id": task.reviewer.user_id,
            },
        )
        return task

    async def transition(self, task_id: str, event: ReviewEvent) -> TaskForReview | None:
        """Apply `event`; None if the task is not in a state that allows it."""
        async with self._locks.hold(task_id):
            return await self._transition(task_id, event)

    async def _transition(self, task_id: str, event: ReviewEvent) -> TaskForReview | None:
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        updated = task.apply(event, self._clock(), self._notification_interval)
        if updated is None:
            logger.info(
                "Ignoring %s for task %s in state %s",
                event.value,
                task_id,
                task.state.value,
            )
            return None

        await self._tasks.upsert_task(updated)

        logger.info(
            "Task %s moved %s -> %s",
            task_id,
            task.state.value,
            updated.state.value,
        )
        await self._tracker.track(
            "task_transitioned",
            "review_lifecycle",
            {
                "task_id": task_id,
                "event": event.value,
                "from": task.state.value,
                "to": updated.state.value,
            },
        )

        await self._refresh_status(updated)
        if event == ReviewEvent.ACCEPT:
            await self._send(await self._messages.accepted(updated))
        elif event == ReviewEvent.DECLINE:
            await self._send(await self._messages.move_to_next_round(updated))

        return updated

    async def move_to_in_progress(self, task_id: str) -> TaskForReview | None:
        return await self.transition(task_id, ReviewEvent.MOVE_TO_IN_PROGRESS)

    async def accept(self, task_id: str) -> TaskForReview | None:
        return await self.transition(task_id, ReviewEvent.ACCEPT)

    async def decline(self, task_id: str) -> TaskForReview | None:
        return await self.transition(task_id, ReviewEvent.DECLINE)

    async def move_to_next_round(self, task_id: str) -> TaskForReview | None:
        return await self.transition(task_id, ReviewEvent.MOVE_TO_NEXT_ROUND)

    async def archive(self, task_id: str) -> TaskForReview | None:
        return await self.transition(task_id, ReviewEvent.ARCHIVE)

    async def _refresh_status(self, task: TaskForReview) -> None:
        if task.message_id is None:
            return
        try:
            await self._transport.edit_text(
                task.chat_id, task.message_id, await self._messages.status(task)
            )
        except TransportError as e:
            logger.warning("Failed to update status of task %s: %s", task.id, e)

    async def _delete_quietly(self, chat_id: int, message_id: int) -> None:
        try:
            await self._transport.delete_message(chat_id, message_id)
        except TransportError as e:
            logger.warning("Failed to delete message %s in %s: %s", message_id, chat_id, e)

    async def _send(self, message: OutboundMessage) -> None:
        try:
            await self._transport.send_text(
                message.chat_id, message.text, message.reply_markup
            )
        except TransportError as e:
            logger.warning("Failed to notify %s: %s", message.chat_id, e)
