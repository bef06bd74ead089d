"""Workday calendar backed by the holidays table."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Protocol

from ..logging_config import get_logger
from ..models import HolidayType
from ..storage import IHolidayReader

logger = get_logger(__name__)


class IHolidayService(Protocol):
    """Answers whether a date is a working day."""

    async def is_workday(self, day: date) -> bool:
        """True if people are expected to work on `day`."""
        ...


class HolidayService:
    """Mon-Fri are workdays unless the calendar says otherwise."""

    def __init__(
        self,
        reader: IHolidayReader,
        cache_ttl: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] | None = None,
    ):
        self._reader = reader
        self._cache_ttl = cache_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._holidays: dict[date, HolidayType] | None = None
        self._loaded_at: datetime | None = None
        self._lock = asyncio.Lock()

    async def is_workday(self, day: date) -> bool:
        """True if people are expected to work on `day`."""
        holidays = await self._get_holidays()
        holiday_type = holidays.get(day)
        if holiday_type is not None:
            return holiday_type == HolidayType.WORKDAY
        return day.weekday() < 5

    async def refresh(self) -> None:
        """Drop the cached calendar; the next lookup reloads it."""
        async with self._lock:
            self._holidays = None
            self._loaded_at = None

    async def _get_holidays(self) -> dict[date, HolidayType]:
        async with self._lock:
            now = self._clock()
            expired = (
                self._loaded_at is None or now - self._loaded_at >= self._cache_ttl
            )
            if self._holidays is None or expired:
                self._holidays = await self._reader.get_holidays()
                self._loaded_at = now
                logger.debug("Loaded %s calendar exceptions", len(self._holidays))
            return self._holidays
