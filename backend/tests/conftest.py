"""Pytest fixtures for testing."""
import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from core.session import SessionGuard
from schemas.bookmark import Bookmark
from schemas.subject import Subject
from services.change_feed import InMemoryChangeChannel
from services.exceptions import NotFoundError
from services.sync_controller import SyncController

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)
USER_ID = "user-1"
FEED_TOPIC = "bookmarks-changes"


class FakeRemoteStore:
    """
    In-memory stand-in for the remote store.

    Rows are kept in their wire form (`user_id`, ISO timestamps). Individual
    operations can be made to fail via `failures`, and `query_gate` holds queries
    until the test releases it.
    """

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, Exception] = {}
        self.query_gate: asyncio.Event | None = None
        self._next_id = 1

    def add_row(
        self,
        title: str,
        url: str,
        user_id: str = USER_ID,
        minutes: int | None = None,
        row_id: str | None = None,
    ) -> dict[str, Any]:
        """Seed a row directly (bypasses call tracking)."""
        if row_id is None:
            row_id = str(self._next_id)
        if row_id.isdigit():
            self._next_id = max(self._next_id, int(row_id) + 1)
        if minutes is None:
            minutes = int(row_id) if row_id.isdigit() else 0
        row = {
            "id": row_id,
            "title": title,
            "url": url,
            "user_id": user_id,
            "created_at": (BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        }
        self.rows[row_id] = row
        return row

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("query", dict(filters)))
        if self.query_gate is not None:
            await self.query_gate.wait()
        if "query" in self.failures:
            raise self.failures["query"]
        rows = [
            dict(row) for row in self.rows.values()
            if all(row.get(key) == value for key, value in filters.items())
        ]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append(("insert", dict(record)))
        if "insert" in self.failures:
            raise self.failures["insert"]
        row = self.add_row(record["title"], record["url"], record["user_id"])
        return dict(row)

    async def delete(self, collection: str, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        if "delete" in self.failures:
            raise self.failures["delete"]
        if self.rows.pop(record_id, None) is None:
            raise NotFoundError(record_id)

    def count(self, operation: str) -> int:
        """Number of calls made for `operation`."""
        return sum(1 for name, _ in self.calls if name == operation)


def build_bookmark(
    bookmark_id: str,
    title: str = "Example",
    url: str = "https://example.com",
    owner_id: str = USER_ID,
    minutes: int = 0,
    revision: datetime | None = None,
) -> Bookmark:
    """Build a bookmark record created `minutes` after BASE_TIME."""
    return Bookmark(
        id=bookmark_id,
        title=title,
        url=url,
        owner_id=owner_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        revision=revision,
    )


@pytest.fixture
def make_bookmark() -> Callable[..., Bookmark]:
    """Factory for bookmark records."""
    return build_bookmark


@pytest.fixture
def remote() -> FakeRemoteStore:
    """Empty fake remote store."""
    return FakeRemoteStore()


@pytest.fixture
def channel() -> InMemoryChangeChannel:
    """In-process change channel."""
    return InMemoryChangeChannel()


@pytest.fixture
def session_guard() -> SessionGuard:
    """Session guard with USER_ID signed in."""
    return SessionGuard(Subject(id=USER_ID, email="ada@example.com", full_name="Ada Lovelace"))


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Let queued feed events and background transitions run."""

    async def _settle() -> None:
        for _ in range(10):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
async def controller(
    session_guard: SessionGuard,
    remote: FakeRemoteStore,
    channel: InMemoryChangeChannel,
) -> AsyncGenerator[SyncController]:
    """Started controller following `session_guard`."""
    sync = SyncController(
        session_guard,
        remote,
        channel,
        topic=FEED_TOPIC,
        max_resubscribe_attempts=2,
        resubscribe_delay=0,
    )
    await sync.start()
    yield sync
    await sync.aclose()
