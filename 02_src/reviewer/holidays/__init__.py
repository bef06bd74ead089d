"""Holidays module."""

from .service import HolidayService, IHolidayService

__all__ = ["HolidayService", "IHolidayService"]
