"""Texts and buttons the bot sends about review tasks."""

from dataclasses import dataclass

from ..models import CommandList, TaskForReview, TaskForReviewState, task_command
from ..transport import InlineButton, ReplyMarkup
from ..translation import ITranslateProvider, MessageKey

STATE_MARKERS: dict[TaskForReviewState, str] = {
    TaskForReviewState.NEW: "⏳",
    TaskForReviewState.IN_PROGRESS: "🤩",
    TaskForReviewState.ON_CORRECTION: "😱",
    TaskForReviewState.ACCEPT: "👍",
    TaskForReviewState.IS_ARCHIVED: "👍",
}


@dataclass
class OutboundMessage:
    """A message addressed to one chat or user."""

    chat_id: int
    text: str
    reply_markup: ReplyMarkup | None = None


class ReviewMessageBuilder:
    """Builds status messages and reminders for tasks."""

    def __init__(self, translate_provider: ITranslateProvider):
        self._translate = translate_provider

    async def status(self, task: TaskForReview) -> str:
        """Text of the live status message in the team chat."""
        header = await self._translate.get(
            MessageKey.NEW_TASK_FOR_REVIEW,
            task.owner.language_id,
            task.description,
            task.owner.name,
            task.reviewer.mention,
        )
        return f"{header}\n\n{STATE_MARKERS[task.state]}"

    async def need_review(self, task: TaskForReview) -> OutboundMessage:
        """Reminder for the reviewer with the three review actions."""
        language = task.reviewer.language_id
        markup = ReplyMarkup.single_row(
            InlineButton(
                await self._translate.get(MessageKey.MOVE_TO_IN_PROGRESS, language),
                task_command(CommandList.MOVE_TO_IN_PROGRESS, task.id),
            ),
            InlineButton(
                await self._translate.get(MessageKey.MOVE_TO_ACCEPT, language),
                task_command(CommandList.ACCEPT, task.id),
            ),
            InlineButton(
                await self._translate.get(MessageKey.MOVE_TO_DECLINE, language),
                task_command(CommandList.DECLINE, task.id),
            ),
        )
        text = await self._translate.get(MessageKey.NEED_REVIEW, language, task.description)
        return OutboundMessage(chat_id=task.reviewer.user_id, text=text, reply_markup=markup)

    async def move_to_next_round(self, task: TaskForReview) -> OutboundMessage:
        """Prompt for the owner to send the task back after corrections."""
        language = task.owner.language_id
        markup = ReplyMarkup.single_row(
            InlineButton(
                await self._translate.get(MessageKey.MOVE_TO_NEXT_ROUND, language),
                task_command(CommandList.MOVE_TO_NEXT_ROUND, task.id),
            )
        )
        text = await self._translate.get(
            MessageKey.REVIEW_DECLINED, language, task.description
        )
        return OutboundMessage(chat_id=task.owner.user_id, text=text, reply_markup=markup)

    async def accepted(self, task: TaskForReview) -> OutboundMessage:
        text = await self._translate.get(
            MessageKey.ACCEPTED, task.owner.language_id, task.description
        )
        return OutboundMessage(chat_id=task.owner.user_id, text=text)

    async def reminder(self, task: TaskForReview) -> OutboundMessage:
        """Reminder for whoever has to act on the task next."""
        if task.state in (TaskForReviewState.NEW, TaskForReviewState.IN_PROGRESS):
            return await self.need_review(task)
        if task.state == TaskForReviewState.ON_CORRECTION:
            return await self.move_to_next_round(task)
        raise ValueError(f"No reminder for task {task.id} in state {task.state.value}")
