"""Translate sync engine errors into HTTP errors."""
from typing import NoReturn

from fastapi import HTTPException

from services.exceptions import (
    AuthError,
    BookmarkSyncError,
    NetworkError,
    NotFoundError,
    SessionEndedError,
    ValidationError,
)


def raise_for_sync_error(e: BookmarkSyncError) -> NoReturn:
    """
    Raise the HTTPException matching a sync engine error.

    Raises:
        HTTPException: 422 validation, 401 auth (the session has already been
            ended), 404 missing bookmark, 409 no active session, 503 network.
    """
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e)) from e
    if isinstance(e, AuthError):
        raise HTTPException(status_code=401, detail=str(e)) from e
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e
    if isinstance(e, SessionEndedError):
        raise HTTPException(status_code=409, detail=str(e)) from e
    if isinstance(e, NetworkError):
        raise HTTPException(status_code=503, detail=str(e)) from e
    raise HTTPException(status_code=500, detail=str(e)) from e
