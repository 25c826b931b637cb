"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import bookmarks, feed, health, session
from core.config import get_settings
from core.session import SessionGuard
from services.change_feed import InMemoryChangeChannel
from services.remote_store import RestRemoteStore, create_http_client
from services.sync_controller import SyncController


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    guard = SessionGuard()
    channel = InMemoryChangeChannel()

    def current_token() -> str | None:
        subject = guard.current_subject()
        return subject.access_token if subject else None

    # Startup: HTTP client for the remote store
    http_client = create_http_client(app_settings.rest_url, app_settings.request_timeout)
    remote = RestRemoteStore(
        http_client,
        api_key=app_settings.remote_store_api_key,
        token_provider=current_token,
    )

    controller = SyncController.from_settings(app_settings, guard, remote, channel)
    await controller.start()

    app.state.session_guard = guard
    app.state.change_channel = channel
    app.state.sync_controller = controller

    yield

    # Shutdown: release the feed, then close the HTTP client
    await controller.aclose()
    await http_client.aclose()


app_settings = get_settings()

app = FastAPI(
    title="Bookmark Sync API",
    description="Live, searchable view of a user's bookmarks kept in sync with a remote store.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(session.router)
app.include_router(bookmarks.router)
app.include_router(feed.router)
