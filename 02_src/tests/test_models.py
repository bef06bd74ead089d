"""Tests for data models."""

from dataclasses import FrozenInstanceError

import pytest

from conftest import INTERVAL, NOW
from reviewer.errors import NotATeamMemberError
from reviewer.models import (
    ACTIVE_STATES,
    TRANSITIONS,
    AwaitingDescription,
    AwaitingTeamName,
    AwaitingTeamSelection,
    CommandList,
    DialogState,
    ReviewEvent,
    TaskForReview,
    TaskForReviewState,
    Team,
    task_command,
)


def _team(*user_ids: int) -> Team:
    team = Team.create(chat_id=100, name="Alpha")
    for user_id in user_ids:
        team.add_player(user_id, f"User {user_id}", login=f"user{user_id}")
    return team


def _task(state: TaskForReviewState = TaskForReviewState.NEW) -> TaskForReview:
    task = TaskForReview.create(_team(1, 2), 1, "Fix bug X", 100, NOW)
    task.state = state
    return task


class TestTeam:
    """Tests for Team membership."""

    def test_create_generates_hex_id(self):
        """Test that team ids can be embedded into commands."""
        team = Team.create(chat_id=100, name="  Alpha ")

        assert len(team.id) == 32
        int(team.id, 16)
        assert team.name == "Alpha"
        assert team.players == []

    def test_add_player_is_idempotent(self):
        """Test that joining twice keeps one membership."""
        team = _team(1)

        again = team.add_player(1, "Someone else")

        assert len(team.players) == 1
        assert again is team.players[0]
        assert again.name == "User 1"

    def test_next_reviewer_skips_owner(self):
        team = _team(1, 2)
        owner = team.find_player(1)

        assert team.next_reviewer(owner).user_id == 2

    def test_next_reviewer_none_for_single_member(self):
        team = _team(1)

        assert team.next_reviewer(team.find_player(1)) is None

    def test_next_reviewer_rotates_round_robin(self):
        """Test that reviewers rotate after the owner's previous one."""
        team = _team(1, 2, 3, 4)
        owner = team.find_player(1)

        picked = []
        for _ in range(4):
            reviewer = team.next_reviewer(owner)
            owner.last_reviewer_id = reviewer.user_id
            picked.append(reviewer.user_id)

        assert picked == [2, 3, 4, 2]

    def test_next_reviewer_unknown_previous_starts_over(self):
        team = _team(1, 2, 3)
        owner = team.find_player(1)
        owner.last_reviewer_id = 99

        assert team.next_reviewer(owner).user_id == 2


class TestPlayerProjections:
    """Tests for owner and reviewer views of a player."""

    def test_projections_share_identity(self):
        player = _team(1).players[0]

        owner = player.as_owner()
        reviewer = player.as_reviewer()

        assert owner.player_id == reviewer.player_id == player.id
        assert owner.user_id == reviewer.user_id == 1

    def test_projections_are_read_only(self):
        player = _team(1).players[0]

        with pytest.raises(FrozenInstanceError):
            player.as_reviewer().name = "changed"

    def test_mention_prefers_login(self):
        player = _team(1).players[0]
        assert player.as_reviewer().mention == "@user1"

        player.login = None
        assert player.as_reviewer().mention == "User 1"


class TestTaskCreate:
    """Tests for TaskForReview.create()."""

    def test_create_assigns_next_reviewer(self):
        team = _team(1, 2)

        task = TaskForReview.create(team, 1, " Fix bug X ", 100, NOW)

        assert task.state == TaskForReviewState.NEW
        assert task.owner.user_id == 1
        assert task.reviewer.user_id == 2
        assert task.description == "Fix bug X"
        assert task.next_notification == NOW
        assert task.accept_date is None
        assert team.find_player(1).last_reviewer_id == 2

    def test_create_without_reviewer_returns_none(self):
        assert TaskForReview.create(_team(1), 1, "Fix bug X", 100, NOW) is None

    def test_create_by_outsider_raises(self):
        with pytest.raises(NotATeamMemberError):
            TaskForReview.create(_team(1, 2), 3, "Fix bug X", 100, NOW)

    def test_owner_and_reviewer_must_differ(self):
        player = _team(1).players[0]

        with pytest.raises(ValueError):
            TaskForReview(
                id="t1",
                team_id=player.team_id,
                owner=player.as_owner(),
                reviewer=player.as_reviewer(),
                description="Fix bug X",
                chat_id=100,
            )


class TestTaskTransitions:
    """Tests for the review state machine."""

    def test_transition_table(self):
        """Test that exactly the listed pairs are legal."""
        assert TRANSITIONS == {
            (TaskForReviewState.NEW, ReviewEvent.MOVE_TO_IN_PROGRESS): TaskForReviewState.IN_PROGRESS,
            (TaskForReviewState.NEW, ReviewEvent.ACCEPT): TaskForReviewState.ACCEPT,
            (TaskForReviewState.IN_PROGRESS, ReviewEvent.ACCEPT): TaskForReviewState.ACCEPT,
            (TaskForReviewState.NEW, ReviewEvent.DECLINE): TaskForReviewState.ON_CORRECTION,
            (TaskForReviewState.IN_PROGRESS, ReviewEvent.DECLINE): TaskForReviewState.ON_CORRECTION,
            (TaskForReviewState.ON_CORRECTION, ReviewEvent.MOVE_TO_NEXT_ROUND): TaskForReviewState.IN_PROGRESS,
            (TaskForReviewState.ACCEPT, ReviewEvent.ARCHIVE): TaskForReviewState.IS_ARCHIVED,
        }

    @pytest.mark.parametrize(
        "state,event,expected",
        [
            (TaskForReviewState.NEW, ReviewEvent.MOVE_TO_IN_PROGRESS, TaskForReviewState.IN_PROGRESS),
            (TaskForReviewState.NEW, ReviewEvent.DECLINE, TaskForReviewState.ON_CORRECTION),
            (TaskForReviewState.IN_PROGRESS, ReviewEvent.DECLINE, TaskForReviewState.ON_CORRECTION),
            (TaskForReviewState.ON_CORRECTION, ReviewEvent.MOVE_TO_NEXT_ROUND, TaskForReviewState.IN_PROGRESS),
        ],
    )
    def test_active_transition_rearms_notification(self, state, event, expected):
        task = _task(state)

        updated = task.apply(event, NOW, INTERVAL)

        assert updated.state == expected
        assert updated.next_notification == NOW + INTERVAL
        assert updated.accept_date is None

    def test_accept_sets_accept_date(self):
        task = _task(TaskForReviewState.IN_PROGRESS)

        updated = task.apply(ReviewEvent.ACCEPT, NOW, INTERVAL)

        assert updated.state == TaskForReviewState.ACCEPT
        assert updated.accept_date == NOW
        assert updated.next_notification is None
        assert not updated.is_active

    def test_archive_after_accept(self):
        task = _task(TaskForReviewState.ACCEPT)

        updated = task.apply(ReviewEvent.ARCHIVE, NOW, INTERVAL)

        assert updated.state == TaskForReviewState.IS_ARCHIVED
        assert updated.next_notification is None

    def test_apply_does_not_modify_receiver(self):
        task = _task()

        task.apply(ReviewEvent.MOVE_TO_IN_PROGRESS, NOW, INTERVAL)

        assert task.state == TaskForReviewState.NEW
        assert task.next_notification == NOW

    @pytest.mark.parametrize("state", list(TaskForReviewState))
    @pytest.mark.parametrize("event", list(ReviewEvent))
    def test_unlisted_pairs_are_noops(self, state, event):
        """Test that an illegal event leaves the task untouched."""
        if (state, event) in TRANSITIONS:
            pytest.skip("legal transition")
        task = _task(state)
        task.accept_date = None

        assert not task.can_apply(event)
        assert task.apply(event, NOW, INTERVAL) is None
        assert task.state == state
        assert task.next_notification == NOW
        assert task.accept_date is None

    def test_second_accept_is_noop(self):
        accepted = _task().apply(ReviewEvent.ACCEPT, NOW, INTERVAL)

        assert accepted.apply(ReviewEvent.ACCEPT, NOW + INTERVAL, INTERVAL) is None
        assert accepted.accept_date == NOW

    def test_active_states(self):
        assert set(ACTIVE_STATES) == {
            TaskForReviewState.NEW,
            TaskForReviewState.IN_PROGRESS,
            TaskForReviewState.ON_CORRECTION,
        }


class TestDialogState:
    """Tests for DialogState and its typed flow."""

    def test_create_team_flow(self):
        state = DialogState(user_id=1, continuation_state=CommandList.CREATE_TEAM, chat_id=100)

        assert state.flow == AwaitingTeamName()

    def test_move_to_review_flow(self):
        state = DialogState(user_id=1, continuation_state=CommandList.MOVE_TO_REVIEW, chat_id=100)
        assert state.flow == AwaitingTeamSelection()

        state.add_to_data("abc")
        assert state.flow == AwaitingDescription(team_id="abc")

    def test_unknown_flow_raises(self):
        state = DialogState(user_id=1, continuation_state="/unknown", chat_id=100)

        with pytest.raises(ValueError):
            state.flow

    def test_attach_message_skips_duplicates(self):
        state = DialogState(user_id=1, continuation_state=CommandList.CREATE_TEAM, chat_id=100)

        state.attach_message(5).attach_message(5).attach_message(6)

        assert state.message_ids == [5, 6]


def test_task_command():
    assert task_command(CommandList.ACCEPT, "abc") == "/accept_abc"
