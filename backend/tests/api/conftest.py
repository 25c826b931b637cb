"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import (
    get_change_channel,
    get_session_guard,
    get_settings,
    get_sync_controller,
)
from api.main import app
from core.config import Settings
from core.session import SessionGuard
from services.change_feed import InMemoryChangeChannel
from services.sync_controller import SyncController
from tests.conftest import FEED_TOPIC


@pytest.fixture
async def client(
    controller: SyncController,
    session_guard: SessionGuard,
    channel: InMemoryChangeChannel,
) -> AsyncGenerator[AsyncClient]:
    """
    Client wired to a started controller over the fake remote store.

    The application lifespan isn't run by ASGITransport, so the objects it would
    put on app.state are injected through dependency overrides instead.
    """
    def override_get_settings() -> Settings:
        return Settings(_env_file=None, BOOKMARK_FEED_TOPIC=FEED_TOPIC)

    app.dependency_overrides[get_sync_controller] = lambda: controller
    app.dependency_overrides[get_session_guard] = lambda: session_guard
    app.dependency_overrides[get_change_channel] = lambda: channel
    app.dependency_overrides[get_settings] = override_get_settings
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as async_client:
            yield async_client
    finally:
        app.dependency_overrides.clear()
