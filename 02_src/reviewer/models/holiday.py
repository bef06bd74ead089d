"""Calendar data models."""

from enum import Enum


class HolidayType(str, Enum):
    """Kind of calendar exception for a date."""

    HOLIDAY = "holiday"
    WORKDAY = "workday"  # e.g. a Saturday moved to a working day
