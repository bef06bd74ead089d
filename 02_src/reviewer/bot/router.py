"""CommandRouter: turns inbound chat messages into bot actions."""

import re
import uuid
from dataclasses import dataclass

from ..config import Settings
from ..dialogue import IDialogContinuation
from ..errors import NotATeamMemberError, TeamNotFoundError
from ..lifecycle import IReviewLifecycle
from ..locks import KeyedLock
from ..logging_config import get_logger
from ..models import (
    ACTIVE_STATES,
    AwaitingDescription,
    AwaitingTeamName,
    AwaitingTeamSelection,
    CommandList,
    DialogState,
    ReviewEvent,
    Team,
)
from ..storage import ITaskForReviewRepository, ITeamRepository
from ..tracker import ITracker
from ..translation import ITranslateProvider, MessageKey
from ..transport import InboundMessage, ITransport, TransportError

logger = get_logger(__name__)

MIN_TEAM_SIZE = 2

TASK_COMMANDS: dict[str, ReviewEvent] = {
    CommandList.MOVE_TO_IN_PROGRESS: ReviewEvent.MOVE_TO_IN_PROGRESS,
    CommandList.ACCEPT: ReviewEvent.ACCEPT,
    CommandList.DECLINE: ReviewEvent.DECLINE,
    CommandList.MOVE_TO_NEXT_ROUND: ReviewEvent.MOVE_TO_NEXT_ROUND,
}

_TASK_CALLBACK = re.compile(
    r"^({commands})_([0-9a-f]{{32}})".format(
        commands="|".join(re.escape(c) for c in TASK_COMMANDS)
    ),
    re.IGNORECASE,
)


def _starts_with(text: str, command: str) -> bool:
    return text.lower().startswith(command.lower())


def parse_id(token: str) -> str | None:
    """Normalize `/<hex>` or a dashed uuid to 32-hex, or None."""
    token = token.strip().lstrip("/")
    if not token:
        return None
    try:
        return uuid.UUID(token).hex
    except ValueError:
        return None


@dataclass(frozen=True)
class CommandContext:
    """One inbound message with the bot mention removed."""

    message: InboundMessage
    text: str

    @property
    def user_id(self) -> int:
        return self.message.user_id

    @property
    def chat_id(self) -> int:
        return self.message.chat_id

    @property
    def message_id(self) -> int:
        return self.message.message_id

    @property
    def language_id(self) -> str:
        return self.message.language_id


class CommandRouter:
    """Decides what one inbound message means and carries it out.

    Messages of one user are handled one at a time; different users are
    handled concurrently. No exception escapes handle().
    """

    def __init__(
        self,
        settings: Settings,
        dialogs: IDialogContinuation,
        tasks: ITaskForReviewRepository,
        teams: ITeamRepository,
        lifecycle: IReviewLifecycle,
        transport: ITransport,
        translate_provider: ITranslateProvider,
        tracker: ITracker,
    ):
        self._settings = settings
        self._dialogs = dialogs
        self._tasks = tasks
        self._teams = teams
        self._lifecycle = lifecycle
        self._transport = transport
        self._translate = translate_provider
        self._tracker = tracker
        self._user_locks = KeyedLock()
        self._mention = re.compile(re.escape(f"@{settings.bot_name}"), re.IGNORECASE)

    async def handle(self, message: InboundMessage) -> None:
        """Handle one inbound message."""
        if message.is_bot or not message.text or not message.text.strip():
            return

        async with self._user_locks.hold(message.user_id):
            try:
                await self._dispatch(message)
            except TransportError as e:
                logger.warning("Error from chat transport: %s", e, exc_info=True)
            except Exception as e:
                logger.error(
                    "Unhandled exception for message %s from %s: %s",
                    message.message_id,
                    message.user_id,
                    e,
                    exc_info=True,
                )
                await self._report_failure(message, e)

    async def _dispatch(self, message: InboundMessage) -> None:
        context = CommandContext(message=message, text=self._mention.sub("", message.text).strip())

        if message.is_private and not any(
            _starts_with(context.text, c) for c in CommandList.PUBLIC
        ):
            await self._send_key(context, message.user_id, MessageKey.GET_STARTED, CommandList.HELP)
            return

        current_dialog = await self._dialogs.find(context.user_id)

        if _starts_with(context.text, CommandList.CANCEL):
            await self._cancel_dialog(context, current_dialog)
            return

        if await self._try_task_command(context):
            return

        # A dialog continues only in the chat where it was started.
        if current_dialog is not None and current_dialog.chat_id != context.chat_id:
            current_dialog = None

        command = (
            current_dialog.continuation_state
            if current_dialog is not None
            else context.text.lower()
        )
        if command == CommandList.CREATE_TEAM:
            if current_dialog is None:
                await self._create_team(context)
            else:
                await self._continue_create_team(context, current_dialog)
            return
        if command == CommandList.MOVE_TO_REVIEW:
            if current_dialog is None:
                await self._move_to_review(context)
            else:
                await self._continue_move_to_review(context, current_dialog)
            return
        if command == CommandList.HELP:
            await self._show_help(context)
            return

        if _starts_with(context.text, CommandList.START):
            token = context.text[len(CommandList.START):]
            team_id = parse_id(token)
            if team_id is not None:
                await self._connect_to_team(context, team_id)
            elif context.message.is_private:
                await self._send_key(
                    context, context.user_id, MessageKey.GET_STARTED, CommandList.HELP
                )

    async def _try_task_command(self, context: CommandContext) -> bool:
        match = _TASK_CALLBACK.match(context.text)
        if match is None:
            return False

        task_id = match.group(2).lower()
        active_ids = set(await self._tasks.get_task_ids(ACTIVE_STATES))
        if task_id not in active_ids:
            return False

        event = TASK_COMMANDS[match.group(1).lower()]
        logger.info("User %s sent %s for task %s", context.user_id, event.value, task_id)
        await self._lifecycle.transition(task_id, event)
        return True

    async def _cancel_dialog(
        self,
        context: CommandContext,
        current_dialog: DialogState | None,
    ) -> None:
        if current_dialog is not None:
            await self._dialogs.end(
                context.user_id, current_dialog.continuation_state, context.message_id
            )
            await self._delete_messages(current_dialog)
        else:
            await self._send_key(context, context.chat_id, MessageKey.CANCEL_DIALOG_FAIL)

    async def _show_help(self, context: CommandContext) -> None:
        lines = [
            await self._translate.get(
                MessageKey.CREATE_TEAM_HELP, context.language_id, CommandList.CREATE_TEAM
            ),
            await self._translate.get(
                MessageKey.MOVE_TO_REVIEW_HELP, context.language_id, CommandList.MOVE_TO_REVIEW
            ),
            await self._translate.get(
                MessageKey.CANCEL_HELP, context.language_id, CommandList.CANCEL
            ),
        ]
        await self._transport.send_text(context.chat_id, "\n".join(lines))

    async def _create_team(self, context: CommandContext) -> None:
        dialog = await self._dialogs.try_begin(
            context.user_id, CommandList.CREATE_TEAM, context.message_id, context.chat_id
        )
        if dialog is None:
            await self._send_key(context, context.chat_id, MessageKey.BEGIN_DIALOG_FAIL)
            return

        message_id = await self._send_key(context, context.chat_id, MessageKey.ENTER_TEAM_NAME)
        await self._dialogs.attach_message(dialog, message_id)

    async def _continue_create_team(
        self,
        context: CommandContext,
        current_dialog: DialogState,
    ) -> None:
        if not isinstance(current_dialog.flow, AwaitingTeamName):
            raise ValueError(f"Unexpected dialog flow {current_dialog.flow!r}")

        team = Team.create(context.chat_id, context.text)
        team.add_player(
            context.user_id,
            context.message.user_name,
            context.message.user_login,
            context.language_id,
        )
        await self._teams.upsert_team(team)
        logger.info("Team %s (%s) created in chat %s", team.id, team.name, team.chat_id)
        await self._tracker.track(
            "team_created",
            "command_router",
            {"team_id": team.id, "name": team.name, "chat_id": team.chat_id},
        )

        link = self._settings.link_for_connect(team.id)
        message_id = await self._send_key(
            context, context.chat_id, MessageKey.CONNECT_TO_TEAM, team.name, link
        )
        try:
            await self._transport.pin_message(context.chat_id, message_id)
        except TransportError as e:
            logger.warning("Failed to pin team link in chat %s: %s", context.chat_id, e)

        await self._dialogs.end(context.user_id, CommandList.CREATE_TEAM, context.message_id)
        await self._delete_messages(current_dialog)

    async def _move_to_review(self, context: CommandContext) -> None:
        dialog = await self._dialogs.try_begin(
            context.user_id, CommandList.MOVE_TO_REVIEW, context.message_id, context.chat_id
        )
        if dialog is None:
            await self._send_key(context, context.chat_id, MessageKey.BEGIN_DIALOG_FAIL)
            return

        teams = sorted(await self._teams.get_teams(context.chat_id), key=lambda t: t.name)
        lines = [await self._translate.get(MessageKey.SELECT_TEAM, context.language_id)]
        for index, team in enumerate(teams, start=1):
            lines.append("")
            lines.append(f"{index}. {team.name} /{team.id}")

        message_id = await self._transport.send_text(context.chat_id, "\n".join(lines))
        await self._dialogs.attach_message(dialog, message_id)

    async def _continue_move_to_review(
        self,
        context: CommandContext,
        current_dialog: DialogState,
    ) -> None:
        flow = current_dialog.flow

        if isinstance(flow, AwaitingDescription):
            await self._submit_for_review(context, current_dialog, flow.team_id)
            return

        if not isinstance(flow, AwaitingTeamSelection):
            raise ValueError(f"Unexpected dialog flow {flow!r}")

        team_id = parse_id(context.text)
        if team_id is None:
            return

        team = await self._teams.find_team(team_id)
        if team is None:
            await self._abort_dialog(context, current_dialog, MessageKey.TEAM_NOT_FOUND_ERROR)
            return
        if len(team.players) < MIN_TEAM_SIZE:
            await self._abort_dialog(
                context, current_dialog, MessageKey.TEAM_MIN_ERROR, MIN_TEAM_SIZE
            )
            return
        if team.find_player(context.user_id) is None:
            await self._abort_dialog(context, current_dialog, MessageKey.NOT_A_TEAM_MEMBER_ERROR)
            return

        await self._dialogs.add_to_data(current_dialog, team.id)
        message_id = await self._send_key(
            context, context.chat_id, MessageKey.ENTER_REQUEST_FOR_REVIEW
        )
        await self._dialogs.attach_message(current_dialog, context.message_id)
        await self._dialogs.attach_message(current_dialog, message_id)

    async def _submit_for_review(
        self,
        context: CommandContext,
        current_dialog: DialogState,
        team_id: str,
    ) -> None:
        team = await self._teams.find_team(team_id)
        if team is None:
            raise TeamNotFoundError(team_id)

        try:
            task = await self._lifecycle.create_task(
                team, context.user_id, context.text, context.chat_id
            )
        except NotATeamMemberError:
            await self._abort_dialog(context, current_dialog, MessageKey.NOT_A_TEAM_MEMBER_ERROR)
            return

        if task is None:
            await self._abort_dialog(
                context, current_dialog, MessageKey.TEAM_MIN_ERROR, MIN_TEAM_SIZE
            )
            return

        await self._dialogs.end(context.user_id, CommandList.MOVE_TO_REVIEW, context.message_id)
        await self._delete_messages(current_dialog)

    async def _connect_to_team(self, context: CommandContext, team_id: str) -> None:
        team = await self._teams.find_team(team_id)
        if team is None:
            await self._send_key(context, context.user_id, MessageKey.TEAM_NOT_FOUND_ERROR)
            return

        team.add_player(
            context.user_id,
            context.message.user_name,
            context.message.user_login,
            context.language_id,
        )
        await self._teams.upsert_team(team)
        logger.info("User %s joined team %s", context.user_id, team.id)
        await self._tracker.track(
            "team_joined",
            "command_router",
            {"team_id": team.id, "user_id": context.user_id},
        )
        await self._send_key(
            context, context.user_id, MessageKey.JOIN_TO_TEAM_SUCCESS, team.name
        )

    async def _abort_dialog(
        self,
        context: CommandContext,
        current_dialog: DialogState,
        key: MessageKey,
        *args: object,
    ) -> None:
        await self._send_key(context, context.chat_id, key, *args)
        await self._dialogs.end(
            context.user_id, current_dialog.continuation_state, context.message_id
        )
        await self._delete_messages(current_dialog)

    async def _delete_messages(self, dialog: DialogState) -> None:
        for message_id in dialog.message_ids:
            try:
                await self._transport.delete_message(dialog.chat_id, message_id)
            except TransportError as e:
                logger.warning(
                    "Failed to delete message %s in chat %s: %s",
                    message_id,
                    dialog.chat_id,
                    e,
                )

    async def _send_key(
        self,
        context: CommandContext,
        chat_id: int,
        key: MessageKey,
        *args: object,
    ) -> int:
        text = await self._translate.get(key, context.language_id, *args)
        return await self._transport.send_text(chat_id, text)

    async def _report_failure(self, message: InboundMessage, error: Exception) -> None:
        try:
            text = await self._translate.get(
                MessageKey.UNEXPECTED_ERROR,
                message.language_id,
                str(error) or type(error).__name__,
            )
            await self._transport.send_text(message.chat_id, text)
        except Exception as e:
            logger.error(
                "Can not send message to chat %s: %s", message.chat_id, e, exc_info=True
            )
