"""NotificationScheduler: periodic reminders about due review tasks."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from ..config import WorkdayOptions
from ..holidays import IHolidayService
from ..lifecycle import ReviewMessageBuilder
from ..logging_config import get_logger
from ..models import ACTIVE_STATES
from ..storage import ITaskForReviewRepository
from ..tracker import ITracker
from ..transport import ITransport

logger = get_logger(__name__)


@dataclass
class NotificationBatchResult:
    """Outcome of one scheduler tick."""

    notifiable: bool
    fetched: int = 0
    sent: int = 0
    failed_task_ids: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_task_ids)


class INotificationScheduler(Protocol):
    """Background reminder loop."""

    async def start(self) -> None:
        """Start the loop in a background task."""
        ...

    async def stop(self) -> None:
        """Stop the loop after the current batch is persisted."""
        ...


class NotificationScheduler:
    """Polls for due tasks and reminds whoever has to act on them."""

    def __init__(
        self,
        tasks: ITaskForReviewRepository,
        holidays: IHolidayService,
        transport: ITransport,
        messages: ReviewMessageBuilder,
        tracker: ITracker,
        options: WorkdayOptions,
        batch_size: int,
        delay: timedelta,
        clock: Callable[[], datetime] | None = None,
    ):
        self._tasks = tasks
        self._holidays = holidays
        self._transport = transport
        self._messages = messages
        self._tracker = tracker
        self._options = options
        self._batch_size = batch_size
        self._delay = delay
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the loop in a background task."""
        if self.running:
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Notification scheduler started (batch %s, delay %s)",
            self._batch_size,
            self._delay,
        )

    async def stop(self) -> None:
        """Stop the loop after the current batch is persisted."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Notification scheduler stopped")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once(self._clock())
            except Exception as e:
                logger.error("Notification tick failed: %s", e, exc_info=True)

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._delay.total_seconds()
                )
            except asyncio.TimeoutError:
                pass

    async def is_work_time(self, now: datetime) -> bool:
        """True if reminders may be sent at `now` (UTC)."""
        if self._options.work_on_holiday:
            return True

        time_of_day = now.astimezone(timezone.utc).time().replace(tzinfo=None)
        if (
            time_of_day < self._options.start_time_utc
            or time_of_day >= self._options.end_time_utc
        ):
            return False

        return await self._holidays.is_workday(now.astimezone(timezone.utc).date())

    async def run_once(self, now: datetime) -> NotificationBatchResult:
        """One tick: re-arm and remind every due task of one batch."""
        if not await self.is_work_time(now):
            return NotificationBatchResult(notifiable=False)

        tasks = await self._tasks.get_tasks_for_notifications(
            now, ACTIVE_STATES, self._batch_size
        )
        result = NotificationBatchResult(notifiable=True, fetched=len(tasks))
        if not tasks:
            return result

        for task in tasks:
            task.set_next_notification_time(now, self._options.notification_interval)
            try:
                message = await self._messages.reminder(task)
                await self._transport.send_text(
                    message.chat_id, message.text, message.reply_markup
                )
                result.sent += 1
            except Exception as e:
                result.failed_task_ids.append(task.id)
                logger.warning("Failed to remind about task %s: %s", task.id, e)

        # Persisted even if every send failed; a failed task is retried on its
        # next due cycle.
        await self._tasks.update_tasks(tasks)

        logger.info(
            "Reminders sent: %s of %s (failed %s)",
            result.sent,
            result.fetched,
            result.failed,
        )
        await self._tracker.track(
            "notifications_sent",
            "notification_scheduler",
            {
                "fetched": result.fetched,
                "sent": result.sent,
                "failed_task_ids": result.failed_task_ids,
            },
        )
        return result
