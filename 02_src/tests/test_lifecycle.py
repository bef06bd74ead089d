"""Tests for ReviewLifecycle."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import INTERVAL, NOW
from reviewer.errors import NotATeamMemberError, TaskNotFoundError, TeamNotFoundError
from reviewer.models import ReviewEvent, TaskForReviewState, Team
from reviewer.transport import TransportError


@pytest.fixture
async def task(lifecycle, make_team, transport):
    team = await make_team()
    created = await lifecycle.create_task(team, 1, "Fix bug X", 100)
    transport.send_text.reset_mock()
    return created


class TestCreateTask:
    """Tests for ReviewLifecycle.create_task()."""

    async def test_create_posts_status_and_persists(self, lifecycle, make_team, transport, storage):
        team = await make_team()

        task = await lifecycle.create_task(team, 1, "Fix bug X", 100)

        assert task.state == TaskForReviewState.NEW
        assert task.owner.user_id == 1
        assert task.reviewer.user_id == 2
        transport.send_text.assert_awaited_once()
        chat_id, text = transport.send_text.await_args.args[:2]
        assert chat_id == 100
        assert "Fix bug X" in text
        assert "@bob" in text
        assert text.endswith("⏳")

        stored = await storage.get_task(task.id)
        assert stored.message_id == task.message_id == 1000
        assert stored.next_notification == NOW

    async def test_create_persists_rotation(self, lifecycle, make_team, storage):
        team = await make_team(members=((1, "Ann"), (2, "Bob"), (3, "Cid")))

        first = await lifecycle.create_task(team, 1, "one", 100)
        second = await lifecycle.create_task(await storage.find_team(team.id), 1, "two", 100)

        assert first.reviewer.user_id == 2
        assert second.reviewer.user_id == 3
        stored = await storage.find_team(team.id)
        assert stored.find_player(1).last_reviewer_id == 3

    async def test_create_without_reviewer(self, lifecycle, make_team, transport):
        team = await make_team(members=((1, "Ann"),))

        assert await lifecycle.create_task(team, 1, "Fix bug X", 100) is None
        transport.send_text.assert_not_awaited()

    async def test_create_by_outsider(self, lifecycle, make_team):
        team = await make_team()

        with pytest.raises(NotATeamMemberError):
            await lifecycle.create_task(team, 3, "Fix bug X", 100)

    async def test_concurrent_creates_keep_both_pointers(
        self, lifecycle, make_team, storage, transport
    ):
        """Test that two owners submitting at once both advance their rotation."""
        team = await make_team(members=((1, "Ann"), (2, "Bob"), (3, "Cid")))
        message_ids = iter(range(1000, 1010))

        async def slow_send(*args, **kwargs):
            await asyncio.sleep(0.01)
            return next(message_ids)

        transport.send_text.side_effect = slow_send

        first, second = await asyncio.gather(
            lifecycle.create_task(team, 1, "one", 100),
            lifecycle.create_task(team, 2, "two", 100),
        )

        stored = await storage.find_team(team.id)
        assert stored.find_player(1).last_reviewer_id == first.reviewer.user_id == 2
        assert stored.find_player(2).last_reviewer_id == second.reviewer.user_id == 1

    async def test_create_uses_stored_rotation(self, lifecycle, make_team, storage):
        """Test that a stale team copy does not repeat the previous reviewer."""
        team = await make_team(members=((1, "Ann"), (2, "Bob"), (3, "Cid")))

        first = await lifecycle.create_task(team, 1, "one", 100)
        second = await lifecycle.create_task(team, 1, "two", 100)

        assert (first.reviewer.user_id, second.reviewer.user_id) == (2, 3)

    async def test_failed_write_deletes_status_message(
        self, lifecycle, make_team, storage, transport
    ):
        team = await make_team()
        storage.upsert_task = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(RuntimeError):
            await lifecycle.create_task(team, 1, "Fix bug X", 100)

        transport.delete_message.assert_awaited_once_with(100, 1000)

    async def test_failed_cleanup_keeps_original_error(
        self, lifecycle, make_team, storage, transport
    ):
        team = await make_team()
        storage.upsert_task = AsyncMock(side_effect=RuntimeError("disk full"))
        transport.delete_message.side_effect = TransportError("message can't be deleted")

        with pytest.raises(RuntimeError, match="disk full"):
            await lifecycle.create_task(team, 1, "Fix bug X", 100)

    async def test_create_in_missing_team(self, lifecycle, transport):
        with pytest.raises(TeamNotFoundError):
            await lifecycle.create_task(Team.create(100, "Ghost"), 1, "Fix bug X", 100)
        transport.send_text.assert_not_awaited()

    async def test_create_tracks_event(self, lifecycle, make_team, storage):
        team = await make_team()

        task = await lifecycle.create_task(team, 1, "Fix bug X", 100)

        events = await storage.get_trace_events(event_types=["task_created"])
        assert events[0].data["task_id"] == task.id


class TestTransition:
    """Tests for ReviewLifecycle.transition()."""

    async def test_in_progress_edits_status_in_place(self, lifecycle, task, transport, storage, clock):
        updated = await lifecycle.move_to_in_progress(task.id)

        assert updated.state == TaskForReviewState.IN_PROGRESS
        assert updated.next_notification == clock.now + INTERVAL
        transport.edit_text.assert_awaited_once()
        chat_id, message_id, text = transport.edit_text.await_args.args
        assert (chat_id, message_id) == (100, task.message_id)
        assert text.endswith("🤩")
        transport.send_text.assert_not_awaited()
        assert (await storage.get_task(task.id)).state == TaskForReviewState.IN_PROGRESS

    async def test_decline_prompts_owner_with_one_button(self, lifecycle, task, transport):
        await lifecycle.move_to_in_progress(task.id)

        updated = await lifecycle.decline(task.id)

        assert updated.state == TaskForReviewState.ON_CORRECTION
        transport.send_text.assert_awaited_once()
        chat_id, _text, markup = transport.send_text.await_args.args
        assert chat_id == 1
        assert len(markup.buttons) == 1
        assert markup.buttons[0].callback_data == f"/next_round_{task.id}"

    async def test_accept_notifies_owner(self, lifecycle, task, transport, storage, clock):
        updated = await lifecycle.accept(task.id)

        assert updated.state == TaskForReviewState.ACCEPT
        assert updated.accept_date == clock.now
        assert updated.next_notification is None
        assert transport.send_text.await_args.args[0] == 1
        assert transport.edit_text.await_args.args[2].endswith("👍")

    async def test_next_round_after_decline(self, lifecycle, task, clock):
        await lifecycle.decline(task.id)
        clock.advance(INTERVAL)

        updated = await lifecycle.move_to_next_round(task.id)

        assert updated.state == TaskForReviewState.IN_PROGRESS
        assert updated.next_notification == clock.now + INTERVAL

    async def test_archive_after_accept(self, lifecycle, task):
        await lifecycle.accept(task.id)

        updated = await lifecycle.archive(task.id)

        assert updated.state == TaskForReviewState.IS_ARCHIVED

    async def test_illegal_event_is_noop(self, lifecycle, task, transport, storage, clock):
        """Test that a repeated accept changes nothing and sends nothing."""
        await lifecycle.accept(task.id)
        transport.send_text.reset_mock()
        transport.edit_text.reset_mock()
        clock.advance(INTERVAL)

        assert await lifecycle.accept(task.id) is None

        stored = await storage.get_task(task.id)
        assert stored.accept_date == NOW
        transport.send_text.assert_not_awaited()
        transport.edit_text.assert_not_awaited()

    async def test_missing_task_raises(self, lifecycle):
        with pytest.raises(TaskNotFoundError):
            await lifecycle.transition("0" * 32, ReviewEvent.ACCEPT)

    async def test_edit_failure_keeps_transition(self, lifecycle, task, transport, storage):
        transport.edit_text.side_effect = TransportError("message to edit not found")

        updated = await lifecycle.move_to_in_progress(task.id)

        assert updated.state == TaskForReviewState.IN_PROGRESS
        assert (await storage.get_task(task.id)).state == TaskForReviewState.IN_PROGRESS

    async def test_write_failure_reports_nothing(self, lifecycle, task, transport, storage):
        storage.upsert_task = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(RuntimeError):
            await lifecycle.accept(task.id)

        transport.edit_text.assert_not_awaited()
        transport.send_text.assert_not_awaited()

    async def test_concurrent_accept_and_decline(self, lifecycle, task):
        """Test that one of two racing events wins and the other is ignored."""
        results = await asyncio.gather(
            lifecycle.accept(task.id),
            lifecycle.decline(task.id),
        )

        assert sum(1 for r in results if r is not None) == 1
