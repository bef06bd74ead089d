"""Dialogue-related data models."""

from dataclasses import dataclass, field

from .commands import CommandList


@dataclass(frozen=True)
class AwaitingTeamName:
    """CreateTeam: the next message is the team name."""


@dataclass(frozen=True)
class AwaitingTeamSelection:
    """MoveToReview: the next message picks a team."""


@dataclass(frozen=True)
class AwaitingDescription:
    """MoveToReview: team chosen, the next message describes the task."""

    team_id: str


DialogFlow = AwaitingTeamName | AwaitingTeamSelection | AwaitingDescription


@dataclass
class DialogState:
    """Persistent state of a multi-turn command for one user."""

    user_id: int
    continuation_state: str  # command tag of the active flow
    chat_id: int
    origin_message_id: int | None = None
    data: list[str] = field(default_factory=list)
    message_ids: list[int] = field(default_factory=list)

    @property
    def flow(self) -> DialogFlow:
        """Typed view over continuation_state and collected data."""
        if self.continuation_state == CommandList.CREATE_TEAM:
            return AwaitingTeamName()
        if self.continuation_state == CommandList.MOVE_TO_REVIEW:
            if self.data:
                return AwaitingDescription(team_id=self.data[-1])
            return AwaitingTeamSelection()
        raise ValueError(f"Unknown dialog state {self.continuation_state!r}")

    def add_to_data(self, value: str) -> "DialogState":
        self.data.append(value)
        return self

    def attach_message(self, message_id: int) -> "DialogState":
        if message_id not in self.message_ids:
            self.message_ids.append(message_id)
        return self
