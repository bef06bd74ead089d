"""Health check route."""

from pydantic import BaseModel
from fastapi import APIRouter

from ...app import Application


class HealthResponse(BaseModel):
    """Response model for health."""

    status: str
    scheduler_running: bool


def create_health_router(app: Application) -> APIRouter:
    """Create health router."""
    router = APIRouter(prefix="/api", tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    async def health() -> dict:
        return {"status": "ok", "scheduler_running": app.scheduler.running}

    return router
