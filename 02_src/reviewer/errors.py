"""Exceptions raised by the review bot core."""


class ReviewerError(Exception):
    """Base class for contract violations inside the core."""


class TaskNotFoundError(ReviewerError):
    """A referenced review task is missing from storage."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} was not found.")
        self.task_id = task_id


class TeamNotFoundError(ReviewerError):
    """A referenced team is missing from storage."""

    def __init__(self, team_id: str):
        super().__init__(f"Team {team_id} was not found.")
        self.team_id = team_id


class NotATeamMemberError(ReviewerError):
    """The user is not a player of the team."""

    def __init__(self, team_id: str, user_id: int):
        super().__init__(f"User {user_id} is not a member of team {team_id}.")
        self.team_id = team_id
        self.user_id = user_id
