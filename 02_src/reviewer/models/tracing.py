"""Tracing and audit data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single audit event (task transitions, reminders, team changes)."""

    id: str
    event_type: str  # e.g. "task_created", "notifications_sent"
    actor: str  # who created this event
    data: dict  # full self-contained data for display
    timestamp: datetime
