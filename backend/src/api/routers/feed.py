"""Change notification intake: republishes database change webhooks on the feed."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api.dependencies import get_change_channel, get_settings
from core.config import Settings
from schemas.feed import FeedEvent
from services.change_feed import InMemoryChangeChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])


class PublishResponse(BaseModel):
    """Result of publishing a change."""

    kind: str
    id: str
    delivered: int


@router.post("/events", response_model=PublishResponse, status_code=202)
async def publish_change(
    payload: dict[str, Any] = Body(...),
    channel: InMemoryChangeChannel = Depends(get_change_channel),
    settings: Settings = Depends(get_settings),
) -> PublishResponse:
    """
    Publish a Postgres change notification to subscribers.

    Body shape: `{"eventType": "INSERT"|"UPDATE"|"DELETE", "new": {...}, "old": {...}}`.
    """
    try:
        event = FeedEvent.from_postgres_change(payload)
    except PydanticValidationError as e:
        logger.warning("feed_payload_rejected error=%s", e)
        raise HTTPException(status_code=422, detail="Malformed change payload") from e
    delivered = channel.publish(settings.feed_topic, event)
    return PublishResponse(kind=event.kind, id=event.id, delivered=delivered)
