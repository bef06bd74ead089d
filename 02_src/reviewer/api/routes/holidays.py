"""Holiday calendar routes."""

from datetime import date

from pydantic import BaseModel
from fastapi import APIRouter

from ...app import Application
from ...models import HolidayType


class HolidayRequest(BaseModel):
    """Request model for a calendar entry."""

    type: HolidayType


class HolidayResponse(BaseModel):
    """Response model for a calendar entry."""

    day: date
    type: HolidayType


def create_holidays_router(app: Application) -> APIRouter:
    """Create holiday calendar router."""
    router = APIRouter(prefix="/api/holidays", tags=["holidays"])

    @router.get("", response_model=list[HolidayResponse])
    async def list_holidays() -> list[dict]:
        """All explicit calendar entries, oldest first."""
        holidays = await app.storage.get_holidays()
        return [
            {"day": day, "type": holiday_type}
            for day, holiday_type in sorted(holidays.items())
        ]

    @router.put("/{day}", response_model=HolidayResponse)
    async def set_holiday(day: date, request: HolidayRequest) -> dict:
        """Mark a day as a holiday or a working day."""
        await app.storage.save_holiday(day, request.type)
        await app.holidays.refresh()
        return {"day": day, "type": request.type}

    return router
