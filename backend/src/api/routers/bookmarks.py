"""Bookmark endpoints over the synchronized collection."""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.dependencies import get_sync_controller
from api.helpers import raise_for_sync_error
from schemas.bookmark import Bookmark
from schemas.state import CollectionState
from services.exceptions import BookmarkSyncError
from services.sync_controller import SyncController

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


class BookmarkCreateRequest(BaseModel):
    """
    Request body for creating a bookmark.

    Emptiness is checked by the sync controller so that the rejection follows the
    same path as every other client-side validation failure.
    """

    title: str | None = None
    url: str | None = None


class SearchRequest(BaseModel):
    """Request body for changing the search query."""

    query: str = ""


@router.get("/", response_model=CollectionState)
async def get_bookmarks(
    q: str | None = Query(default=None, description="Set the search query (matches title and url, case-insensitive)"),  # noqa: E501
    controller: SyncController = Depends(get_sync_controller),
) -> CollectionState:
    """
    Get the projected collection.

    - **q**: when given, replaces the current search query before projecting
    """
    if q is not None:
        controller.set_search_query(q)
    return controller.state


@router.put("/search", response_model=CollectionState)
async def set_search(
    data: SearchRequest,
    controller: SyncController = Depends(get_sync_controller),
) -> CollectionState:
    """Replace the search query."""
    controller.set_search_query(data.query)
    return controller.state


@router.post("/", response_model=Bookmark, status_code=201)
async def create_bookmark(
    data: BookmarkCreateRequest,
    controller: SyncController = Depends(get_sync_controller),
) -> Bookmark:
    """Create a bookmark; it is visible in the collection as soon as this returns."""
    try:
        return await controller.add_bookmark(data.title, data.url)
    except BookmarkSyncError as e:
        raise_for_sync_error(e)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: str,
    controller: SyncController = Depends(get_sync_controller),
) -> None:
    """Delete a bookmark and reload the collection."""
    try:
        await controller.delete_bookmark(bookmark_id)
    except BookmarkSyncError as e:
        raise_for_sync_error(e)


@router.post("/reload", response_model=CollectionState)
async def reload_bookmarks(
    controller: SyncController = Depends(get_sync_controller),
) -> CollectionState:
    """Re-run the bulk load (loads are never retried automatically)."""
    try:
        await controller.reload()
    except BookmarkSyncError as e:
        raise_for_sync_error(e)
    return controller.state
