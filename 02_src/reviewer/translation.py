"""Translated bot texts."""

from enum import Enum
from typing import Protocol

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "en"


class MessageKey(str, Enum):
    """Keys of user-visible texts."""

    GET_STARTED = "get_started"
    CREATE_TEAM_HELP = "create_team_help"
    MOVE_TO_REVIEW_HELP = "move_to_review_help"
    CANCEL_HELP = "cancel_help"
    ENTER_TEAM_NAME = "enter_team_name"
    CONNECT_TO_TEAM = "connect_to_team"
    SELECT_TEAM = "select_team"
    ENTER_REQUEST_FOR_REVIEW = "enter_request_for_review"
    TEAM_MIN_ERROR = "team_min_error"
    JOIN_TO_TEAM_SUCCESS = "join_to_team_success"
    TEAM_NOT_FOUND_ERROR = "team_not_found_error"
    NOT_A_TEAM_MEMBER_ERROR = "not_a_team_member_error"
    NEED_REVIEW = "need_review"
    REVIEW_DECLINED = "review_declined"
    NEW_TASK_FOR_REVIEW = "new_task_for_review"
    CANCEL_DIALOG_FAIL = "cancel_dialog_fail"
    BEGIN_DIALOG_FAIL = "begin_dialog_fail"
    ACCEPTED = "accepted"
    MOVE_TO_IN_PROGRESS = "move_to_in_progress"
    MOVE_TO_ACCEPT = "move_to_accept"
    MOVE_TO_DECLINE = "move_to_decline"
    MOVE_TO_NEXT_ROUND = "move_to_next_round"
    UNEXPECTED_ERROR = "unexpected_error"


CATALOG: dict[str, dict[MessageKey, str]] = {
    "en": {
        MessageKey.GET_STARTED: "Add me to a group chat to start reviewing. Type {0} there for the list of commands.",
        MessageKey.CREATE_TEAM_HELP: "{0} - create a team",
        MessageKey.MOVE_TO_REVIEW_HELP: "{0} - send a task for review",
        MessageKey.CANCEL_HELP: "{0} - cancel the current command",
        MessageKey.ENTER_TEAM_NAME: "Enter the team name",
        MessageKey.CONNECT_TO_TEAM: "Team {0} is created. Follow the link to join: {1}",
        MessageKey.SELECT_TEAM: "Select a team",
        MessageKey.ENTER_REQUEST_FOR_REVIEW: "Describe what needs a review",
        MessageKey.TEAM_MIN_ERROR: "A team needs at least {0} members to review tasks",
        MessageKey.JOIN_TO_TEAM_SUCCESS: "You have joined team {0}",
        MessageKey.TEAM_NOT_FOUND_ERROR: "Team was not found",
        MessageKey.NOT_A_TEAM_MEMBER_ERROR: "Join the team before sending tasks for review",
        MessageKey.NEED_REVIEW: "Please review: {0}",
        MessageKey.REVIEW_DECLINED: "Changes requested for: {0}. Press the button when the next round is ready",
        MessageKey.NEW_TASK_FOR_REVIEW: "{0}\nOwner: {1}\nReviewer: {2}",
        MessageKey.CANCEL_DIALOG_FAIL: "There is nothing to cancel",
        MessageKey.BEGIN_DIALOG_FAIL: "Finish or cancel the current command first",
        MessageKey.ACCEPTED: "Review accepted: {0}",
        MessageKey.MOVE_TO_IN_PROGRESS: "Start review",
        MessageKey.MOVE_TO_ACCEPT: "Accept",
        MessageKey.MOVE_TO_DECLINE: "Decline",
        MessageKey.MOVE_TO_NEXT_ROUND: "Next round",
        MessageKey.UNEXPECTED_ERROR: "Something went wrong: {0}",
    },
    "ru": {
        MessageKey.GET_STARTED: "Добавьте меня в групповой чат. Наберите там {0}, чтобы увидеть список команд.",
        MessageKey.CREATE_TEAM_HELP: "{0} - создать команду",
        MessageKey.MOVE_TO_REVIEW_HELP: "{0} - отправить задачу на ревью",
        MessageKey.CANCEL_HELP: "{0} - отменить текущую команду",
        MessageKey.ENTER_TEAM_NAME: "Введите название команды",
        MessageKey.CONNECT_TO_TEAM: "Команда {0} создана. Для подключения перейдите по ссылке: {1}",
        MessageKey.SELECT_TEAM: "Выберите команду",
        MessageKey.ENTER_REQUEST_FOR_REVIEW: "Опишите, что нужно проверить",
        MessageKey.TEAM_MIN_ERROR: "В команде должно быть не меньше {0} участников",
        MessageKey.JOIN_TO_TEAM_SUCCESS: "Вы подключились к команде {0}",
        MessageKey.TEAM_NOT_FOUND_ERROR: "Команда не найдена",
        MessageKey.NOT_A_TEAM_MEMBER_ERROR: "Сначала подключитесь к команде",
        MessageKey.NEED_REVIEW: "Нужно ревью: {0}",
        MessageKey.REVIEW_DECLINED: "Есть замечания: {0}. Нажмите кнопку, когда будет готов следующий раунд",
        MessageKey.NEW_TASK_FOR_REVIEW: "{0}\nАвтор: {1}\nРевьюер: {2}",
        MessageKey.CANCEL_DIALOG_FAIL: "Нечего отменять",
        MessageKey.BEGIN_DIALOG_FAIL: "Сначала завершите или отмените текущую команду",
        MessageKey.ACCEPTED: "Ревью пройдено: {0}",
        MessageKey.MOVE_TO_IN_PROGRESS: "Взять в работу",
        MessageKey.MOVE_TO_ACCEPT: "Принять",
        MessageKey.MOVE_TO_DECLINE: "Отклонить",
        MessageKey.MOVE_TO_NEXT_ROUND: "Следующий раунд",
        MessageKey.UNEXPECTED_ERROR: "Что-то пошло не так: {0}",
    },
}


class ITranslateProvider(Protocol):
    """Lookup of user-visible texts."""

    async def get(self, key: MessageKey, language_id: str | None, *args: object) -> str:
        """Text for `key` in the user's language, formatted with `args`."""
        ...


class TranslateProvider:
    """Translations from an in-process catalog."""

    def __init__(self, catalog: dict[str, dict[MessageKey, str]] | None = None):
        self._catalog = catalog if catalog is not None else CATALOG

    async def get(self, key: MessageKey, language_id: str | None, *args: object) -> str:
        """Text for `key`; falls back to English, then to the key itself."""
        language = (language_id or DEFAULT_LANGUAGE).split("-")[0].lower()
        template = self._catalog.get(language, {}).get(key)
        if template is None:
            template = self._catalog.get(DEFAULT_LANGUAGE, {}).get(key)
        if template is None:
            logger.warning("No translation for %s (%s)", key.value, language)
            return " ".join([key.value, *(str(a) for a in args)])
        return template.format(*args)
