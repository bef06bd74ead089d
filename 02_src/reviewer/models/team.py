"""Team and membership data models."""

import uuid
from dataclasses import dataclass, field


def new_id() -> str:
    """Generate an identifier safe to embed into bot commands."""
    return uuid.uuid4().hex


@dataclass
class Player:
    """Membership record of a user within one team."""

    id: str
    team_id: str
    user_id: int
    name: str
    login: str | None = None
    language_id: str = "en"
    last_reviewer_id: int | None = None  # user id, used for rotation

    def as_owner(self) -> "PlayerAsOwner":
        return PlayerAsOwner(
            player_id=self.id,
            user_id=self.user_id,
            name=self.name,
            language_id=self.language_id,
            last_reviewer_id=self.last_reviewer_id,
        )

    def as_reviewer(self) -> "PlayerAsReviewer":
        return PlayerAsReviewer(
            player_id=self.id,
            user_id=self.user_id,
            name=self.name,
            login=self.login,
            language_id=self.language_id,
        )


@dataclass(frozen=True)
class PlayerAsOwner:
    """Read-only view of a player who submitted a task."""

    player_id: str
    user_id: int
    name: str
    language_id: str
    last_reviewer_id: int | None = None


@dataclass(frozen=True)
class PlayerAsReviewer:
    """Read-only view of a player assigned to review a task."""

    player_id: str
    user_id: int
    name: str
    login: str | None
    language_id: str

    @property
    def mention(self) -> str:
        return f"@{self.login}" if self.login else self.name


@dataclass
class Team:
    """A team created in a group chat."""

    id: str
    chat_id: int
    name: str
    players: list[Player] = field(default_factory=list)

    @classmethod
    def create(cls, chat_id: int, name: str) -> "Team":
        return cls(id=new_id(), chat_id=chat_id, name=name.strip())

    def find_player(self, user_id: int) -> Player | None:
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def add_player(
        self,
        user_id: int,
        name: str,
        login: str | None = None,
        language_id: str = "en",
    ) -> Player:
        """Add a member; joining twice returns the existing record."""
        existing = self.find_player(user_id)
        if existing is not None:
            return existing

        player = Player(
            id=new_id(),
            team_id=self.id,
            user_id=user_id,
            name=name,
            login=login,
            language_id=language_id,
        )
        self.players.append(player)
        return player

    def next_reviewer(self, owner: Player) -> Player | None:
        """Pick the reviewer that follows the owner's previous one, round-robin."""
        candidates = [p for p in self.players if p.user_id != owner.user_id]
        if not candidates:
            return None

        if owner.last_reviewer_id is not None:
            for index, candidate in enumerate(candidates):
                if candidate.user_id == owner.last_reviewer_id:
                    return candidates[(index + 1) % len(candidates)]

        return candidates[0]
