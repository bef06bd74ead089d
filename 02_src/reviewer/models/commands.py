"""Bot command names."""


class CommandList:
    """Text commands understood by the bot."""

    START = "/start"
    HELP = "/help"
    CANCEL = "/cancel"
    CREATE_TEAM = "/new_team"
    MOVE_TO_REVIEW = "/review"

    MOVE_TO_IN_PROGRESS = "/in_progress"
    ACCEPT = "/accept"
    DECLINE = "/decline"
    MOVE_TO_NEXT_ROUND = "/next_round"

    # Allowed in a private chat with the bot.
    PUBLIC = (START, ACCEPT, DECLINE, MOVE_TO_NEXT_ROUND, MOVE_TO_IN_PROGRESS)


def task_command(command: str, task_id: str) -> str:
    """Callback text targeting one task, e.g. `/accept_<id>`."""
    return f"{command}_{task_id}"
