"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_sync_controller
from services.sync_controller import SyncController


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    session: str
    feed: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    controller: SyncController = Depends(get_sync_controller),
) -> HealthResponse:
    """Report whether a session is active and its change feed attached."""
    state = controller.state
    if state.subject_id is None:
        return HealthResponse(status="healthy", session="inactive", feed="detached")

    feed_status = "connected" if state.feed_connected else "disconnected"
    degraded = state.error is not None or not state.feed_connected
    if degraded:
        logger.warning("health_degraded error=%s feed=%s", state.error, feed_status)
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        session="active",
        feed=feed_status,
    )
