"""SQLite storage implementation."""

import asyncio
import json
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    DialogState,
    HolidayType,
    Player,
    PlayerAsOwner,
    PlayerAsReviewer,
    TaskForReview,
    TaskForReviewState,
    Team,
    TraceEvent,
)


class ITaskForReviewRepository(Protocol):
    """Review tasks."""

    async def get_task_ids(self, states: Iterable[TaskForReviewState]) -> list[str]:
        """Ids of tasks in any of `states`."""
        ...

    async def get_task(self, task_id: str) -> TaskForReview | None:
        """Get a task with its owner and reviewer."""
        ...

    async def upsert_task(self, task: TaskForReview) -> None:
        """Insert or update a task."""
        ...

    async def get_tasks_for_notifications(
        self,
        now: datetime,
        states: Iterable[TaskForReviewState],
        limit: int,
    ) -> list[TaskForReview]:
        """Due tasks in `states`, earliest next_notification first."""
        ...

    async def update_tasks(self, tasks: list[TaskForReview]) -> None:
        """Persist next_notification of a batch in one transaction."""
        ...


class ITeamRepository(Protocol):
    """Teams and their players."""

    async def find_team(self, team_id: str) -> Team | None:
        """Get a team by ID."""
        ...

    async def upsert_team(self, team: Team) -> None:
        """Insert or update a team and its players."""
        ...

    async def set_last_reviewer(self, player_id: str, reviewer_user_id: int) -> None:
        """Store the reviewer an owner was last given."""
        ...

    async def get_teams(self, chat_id: int) -> list[Team]:
        """Teams created in a chat."""
        ...


class IDialogueStateStore(Protocol):
    """Persisted dialog slots."""

    async def save_dialogue_state(self, state: DialogState) -> None:
        """Save dialogue state."""
        ...

    async def get_dialogue_state(self, user_id: int) -> DialogState | None:
        """Get dialogue state for a user."""
        ...

    async def delete_dialogue_state(self, user_id: int) -> None:
        """Remove dialogue state for a user."""
        ...


class IHolidayReader(Protocol):
    """Calendar exceptions."""

    async def get_holidays(self) -> dict[date, HolidayType]:
        """All calendar exceptions."""
        ...

    async def save_holiday(self, day: date, holiday_type: HolidayType) -> None:
        """Add or replace a calendar exception."""
        ...


class ITraceEventStore(Protocol):
    """Audit trail."""

    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...


class IStorage(
    ITaskForReviewRepository,
    ITeamRepository,
    IDialogueStateStore,
    IHolidayReader,
    ITraceEventStore,
    Protocol,
):
    """Persistent storage for all system data (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


def _to_db(value: datetime | None) -> str | None:
    """Normalize to a UTC ISO string so text comparison matches time order."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_TASK_SELECT = """
    SELECT
        t.id, t.team_id, t.description, t.state, t.next_notification,
        t.accept_date, t.message_id, t.chat_id,
        o.id, o.user_id, o.name, o.language_id, o.last_reviewer_id,
        r.id, r.user_id, r.name, r.login, r.language_id
    FROM task_for_reviews AS t
    JOIN players AS o ON o.id = t.owner_id
    JOIN players AS r ON r.id = t.reviewer_id
"""


def _task_from_row(row) -> TaskForReview:
    return TaskForReview(
        id=row[0],
        team_id=row[1],
        description=row[2],
        state=TaskForReviewState(row[3]),
        next_notification=_from_db(row[4]),
        accept_date=_from_db(row[5]),
        message_id=row[6],
        chat_id=row[7],
        owner=PlayerAsOwner(
            player_id=row[8],
            user_id=row[9],
            name=row[10],
            language_id=row[11],
            last_reviewer_id=row[12],
        ),
        reviewer=PlayerAsReviewer(
            player_id=row[13],
            user_id=row[14],
            name=row[15],
            login=row[16],
            language_id=row[17],
        ),
    )


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        # Multi-statement writes must not interleave on the shared connection.
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Tasks
    async def get_task_ids(self, states: Iterable[TaskForReviewState]) -> list[str]:
        """Ids of tasks in any of `states`."""
        conn = self._require_conn()
        values = [TaskForReviewState(s).value for s in states]
        if not values:
            return []

        placeholders = ",".join("?" * len(values))
        cursor = await conn.execute(
            f"SELECT id FROM task_for_reviews WHERE state IN ({placeholders})",
            values,
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def get_task(self, task_id: str) -> TaskForReview | None:
        """Get a task with its owner and reviewer."""
        conn = self._require_conn()
        cursor = await conn.execute(f"{_TASK_SELECT} WHERE t.id = ?", (task_id,))
        row = await cursor.fetchone()
        if not row:
            return None
        return _task_from_row(row)

    async def upsert_task(self, task: TaskForReview) -> None:
        """Insert or update a task.

        Player records are written by upsert_team only.
        """
        conn = self._require_conn()

        async with self._write_lock:
            try:
                await conn.execute(
                    """
                    INSERT INTO task_for_reviews
                    (id, team_id, owner_id, reviewer_id, description, state,
                     next_notification, accept_date, message_id, chat_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET
                        owner_id = excluded.owner_id,
                        reviewer_id = excluded.reviewer_id,
                        description = excluded.description,
                        state = excluded.state,
                        next_notification = excluded.next_notification,
                        accept_date = excluded.accept_date,
                        message_id = excluded.message_id,
                        chat_id = excluded.chat_id
                    """,
                    (
                        task.id,
                        task.team_id,
                        task.owner.player_id,
                        task.reviewer.player_id,
                        task.description,
                        task.state.value,
                        _to_db(task.next_notification),
                        _to_db(task.accept_date),
                        task.message_id,
                        task.chat_id,
                    ),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def get_tasks_for_notifications(
        self,
        now: datetime,
        states: Iterable[TaskForReviewState],
        limit: int,
    ) -> list[TaskForReview]:
        """Due tasks in `states`, earliest next_notification first."""
        conn = self._require_conn()
        values = [TaskForReviewState(s).value for s in states]
        if not values or limit <= 0:
            return []

        placeholders = ",".join("?" * len(values))
        cursor = await conn.execute(
            f"""
            {_TASK_SELECT}
            WHERE t.state IN ({placeholders})
              AND t.next_notification IS NOT NULL
              AND t.next_notification <= ?
            ORDER BY t.next_notification ASC
            LIMIT ?
            """,
            [*values, _to_db(now), limit],
        )
        rows = await cursor.fetchall()
        return [_task_from_row(row) for row in rows]

    async def update_tasks(self, tasks: list[TaskForReview]) -> None:
        """Persist next_notification of a batch in one transaction.

        Only the notification clock is written, and only while the task is
        still in the state it was read in, so a transition committed by the
        router in the meantime wins.
        """
        conn = self._require_conn()
        if not tasks:
            return

        async with self._write_lock:
            try:
                await conn.executemany(
                    """
                    UPDATE task_for_reviews SET next_notification = ?
                    WHERE id = ? AND state = ?
                    """,
                    [
                        (_to_db(t.next_notification), t.id, t.state.value)
                        for t in tasks
                    ],
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    # Teams
    async def find_team(self, team_id: str) -> Team | None:
        """Get a team by ID."""
        conn = self._require_conn()
        cursor = await conn.execute(
            "SELECT id, chat_id, name FROM teams WHERE id = ?", (team_id,)
        )
        row = await cursor.fetchone()
        if not row:
            return None

        team = Team(id=row[0], chat_id=row[1], name=row[2])
        team.players = await self._get_players(team.id)
        return team

    async def get_teams(self, chat_id: int) -> list[Team]:
        """Teams created in a chat."""
        conn = self._require_conn()
        cursor = await conn.execute(
            "SELECT id, chat_id, name FROM teams WHERE chat_id = ? ORDER BY name",
            (chat_id,),
        )
        rows = await cursor.fetchall()

        teams = []
        for row in rows:
            team = Team(id=row[0], chat_id=row[1], name=row[2])
            team.players = await self._get_players(team.id)
            teams.append(team)
        return teams

    async def _get_players(self, team_id: str) -> list[Player]:
        conn = self._require_conn()
        cursor = await conn.execute(
            """
            SELECT id, team_id, user_id, name, login, language_id, last_reviewer_id
            FROM players
            WHERE team_id = ?
            ORDER BY position ASC
            """,
            (team_id,),
        )
        rows = await cursor.fetchall()
        return [
            Player(
                id=row[0],
                team_id=row[1],
                user_id=row[2],
                name=row[3],
                login=row[4],
                language_id=row[5],
                last_reviewer_id=row[6],
            )
            for row in rows
        ]

    async def upsert_team(self, team: Team) -> None:
        """Insert or update a team and its players."""
        conn = self._require_conn()

        async with self._write_lock:
            try:
                # Name is immutable once created.
                await conn.execute(
                    """
                    INSERT INTO teams (id, chat_id, name)
                    VALUES (?, ?, ?)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    (team.id, team.chat_id, team.name),
                )
                await conn.executemany(
                    """
                    INSERT INTO players
                    (id, team_id, user_id, name, login, language_id,
                     last_reviewer_id, position)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET
                        name = excluded.name,
                        login = excluded.login,
                        language_id = excluded.language_id,
                        position = excluded.position
                    """,
                    [
                        (
                            p.id,
                            team.id,
                            p.user_id,
                            p.name,
                            p.login,
                            p.language_id,
                            p.last_reviewer_id,
                            position,
                        )
                        for position, p in enumerate(team.players)
                    ],
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def set_last_reviewer(self, player_id: str, reviewer_user_id: int) -> None:
        """Move one owner's rotation pointer.

        upsert_team never writes the pointer of an existing player, so a
        stale team copy cannot roll it back.
        """
        conn = self._require_conn()

        async with self._write_lock:
            try:
                await conn.execute(
                    "UPDATE players SET last_reviewer_id = ? WHERE id = ?",
                    (reviewer_user_id, player_id),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    # DialogState
    async def save_dialogue_state(self, state: DialogState) -> None:
        """Save dialogue state."""
        conn = self._require_conn()

        async with self._write_lock:
            await conn.execute(
                """
                INSERT OR REPLACE INTO dialogue_states
                (user_id, continuation_state, chat_id, origin_message_id,
                 data, message_ids, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                """,
                (
                    state.user_id,
                    state.continuation_state,
                    state.chat_id,
                    state.origin_message_id,
                    json.dumps(state.data),
                    json.dumps(state.message_ids),
                ),
            )
            await conn.commit()

    async def get_dialogue_state(self, user_id: int) -> DialogState | None:
        """Get dialogue state for a user."""
        conn = self._require_conn()
        cursor = await conn.execute(
            """
            SELECT user_id, continuation_state, chat_id, origin_message_id,
                   data, message_ids
            FROM dialogue_states
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None

        return DialogState(
            user_id=row[0],
            continuation_state=row[1],
            chat_id=row[2],
            origin_message_id=row[3],
            data=json.loads(row[4]),
            message_ids=json.loads(row[5]),
        )

    async def delete_dialogue_state(self, user_id: int) -> None:
        """Remove dialogue state for a user."""
        conn = self._require_conn()

        async with self._write_lock:
            await conn.execute(
                "DELETE FROM dialogue_states WHERE user_id = ?", (user_id,)
            )
            await conn.commit()

    # Holidays
    async def get_holidays(self) -> dict[date, HolidayType]:
        """All calendar exceptions."""
        conn = self._require_conn()
        cursor = await conn.execute("SELECT date, type FROM holidays")
        rows = await cursor.fetchall()
        return {date.fromisoformat(row[0]): HolidayType(row[1]) for row in rows}

    async def save_holiday(self, day: date, holiday_type: HolidayType) -> None:
        """Add or replace a calendar exception."""
        conn = self._require_conn()

        async with self._write_lock:
            await conn.execute(
                "INSERT OR REPLACE INTO holidays (date, type) VALUES (?, ?)",
                (day.isoformat(), HolidayType(holiday_type).value),
            )
            await conn.commit()

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        async with self._write_lock:
            await conn.execute(
                """
                INSERT INTO trace_events (id, event_type, actor, data, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    event.id or str(uuid.uuid4()),
                    event.event_type,
                    event.actor,
                    json.dumps(event.data, default=str),
                    _to_db(event.timestamp),
                ),
            )
            await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_to_db(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_from_db(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        tables = [
            "task_for_reviews",
            "players",
            "teams",
            "dialogue_states",
            "holidays",
            "trace_events",
        ]

        async with self._write_lock:
            for table in tables:
                await conn.execute(f"DELETE FROM {table}")
            await conn.commit()
