"""Session endpoints: activate, inspect and end the current subject."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import get_session_guard, get_sync_controller
from core.session import SessionGuard
from schemas.subject import Subject
from services.sync_controller import SyncController

router = APIRouter(prefix="/session", tags=["session"])


class SessionCreate(BaseModel):
    """Identity established by the external identity provider."""

    id: str = Field(min_length=1)
    email: str | None = None
    full_name: str | None = None
    access_token: str | None = None


class SessionResponse(BaseModel):
    """The active subject."""

    id: str
    email: str | None
    display_name: str


def _to_response(subject: Subject) -> SessionResponse:
    return SessionResponse(id=subject.id, email=subject.email, display_name=subject.display_name)


@router.post("/", response_model=SessionResponse, status_code=201)
async def activate_session(
    data: SessionCreate,
    guard: SessionGuard = Depends(get_session_guard),
    controller: SyncController = Depends(get_sync_controller),
) -> SessionResponse:
    """Activate a subject and wait for its collection to load."""
    subject = Subject(
        id=data.id,
        email=data.email,
        full_name=data.full_name,
        access_token=data.access_token,
    )
    guard.activate(subject)
    await controller.wait_idle()
    return _to_response(subject)


@router.get("/", response_model=SessionResponse)
async def get_session(
    guard: SessionGuard = Depends(get_session_guard),
) -> SessionResponse:
    """Get the active subject."""
    subject = guard.current_subject()
    if subject is None:
        raise HTTPException(status_code=404, detail="No active session")
    return _to_response(subject)


@router.delete("/", status_code=204)
async def end_session(
    guard: SessionGuard = Depends(get_session_guard),
    controller: SyncController = Depends(get_sync_controller),
) -> None:
    """Sign out: clears the collection and releases the change feed."""
    guard.end()
    await controller.wait_idle()
