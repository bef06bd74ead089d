"""Telegram webhook route."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...logging_config import get_logger

logger = get_logger(__name__)


class WebhookResponse(BaseModel):
    """Response model for webhook delivery."""

    ok: bool
    handled: bool


def create_telegram_router(app: IApplication) -> APIRouter:
    """Create Telegram webhook router."""
    router = APIRouter(prefix="/api/telegram", tags=["telegram"])

    @router.post("/webhook", response_model=WebhookResponse)
    async def receive_update(update: dict[str, Any]) -> dict:
        """Route one Telegram update to the bot."""
        try:
            handled = await app.handle_update(update)
        except Exception as e:
            logger.error(
                "Webhook update %s failed: %s", update.get("update_id"), e, exc_info=True
            )
            raise HTTPException(status_code=500, detail=str(e))
        return {"ok": True, "handled": handled}

    return router
