"""FastAPI dependencies for injection."""
from fastapi import Request

from core.config import get_settings
from core.session import SessionGuard
from services.change_feed import InMemoryChangeChannel
from services.sync_controller import SyncController


def get_sync_controller(request: Request) -> SyncController:
    """Get the controller created by the application lifespan."""
    return request.app.state.sync_controller


def get_session_guard(request: Request) -> SessionGuard:
    """Get the session guard created by the application lifespan."""
    return request.app.state.session_guard


def get_change_channel(request: Request) -> InMemoryChangeChannel:
    """Get the change channel created by the application lifespan."""
    return request.app.state.change_channel


__all__ = [
    "get_change_channel",
    "get_session_guard",
    "get_settings",
    "get_sync_controller",
]
