"""Pydantic schemas for change feed events."""
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from schemas.bookmark import Bookmark, normalize_id


class FeedEventKind(StrEnum):
    """Kind of change delivered by the push channel."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class FeedEvent(BaseModel):
    """
    A single change delivered by the push channel.

    Insert and update events carry the full record. Delete events carry the id
    (a record, if present, is only used to recover the id).
    """

    model_config = ConfigDict(frozen=True)

    kind: FeedEventKind
    record: Bookmark | None = None
    id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_payload(cls, data: Any) -> Any:
        """Lowercase the kind and derive the id from the record when missing."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind = data.get("kind")
        if isinstance(kind, str):
            data["kind"] = kind.lower()
        record = data.get("record")
        if data.get("id") is None:
            if isinstance(record, Bookmark):
                data["id"] = record.id
            elif isinstance(record, dict) and record.get("id") is not None:
                data["id"] = record["id"]
        if data.get("id") is not None:
            data["id"] = normalize_id(data["id"])
        return data

    @model_validator(mode="after")
    def check_shape(self) -> "FeedEvent":
        """Insert/update need a record; delete needs an id."""
        if self.kind in (FeedEventKind.INSERT, FeedEventKind.UPDATE):
            if self.record is None:
                raise ValueError(f"{self.kind} event requires a record")
            if self.id != self.record.id:
                raise ValueError(
                    f"{self.kind} event id '{self.id}' does not match record id '{self.record.id}'",  # noqa: E501
                )
        elif self.id is None:
            raise ValueError("delete event requires an id")
        return self

    @classmethod
    def insert(cls, record: Bookmark) -> "FeedEvent":
        """Build an insert event."""
        return cls(kind=FeedEventKind.INSERT, record=record)

    @classmethod
    def update(cls, record: Bookmark) -> "FeedEvent":
        """Build an update event."""
        return cls(kind=FeedEventKind.UPDATE, record=record)

    @classmethod
    def delete(cls, bookmark_id: Any) -> "FeedEvent":
        """Build a delete event."""
        return cls(kind=FeedEventKind.DELETE, id=normalize_id(bookmark_id))

    @classmethod
    def from_postgres_change(cls, payload: dict[str, Any]) -> "FeedEvent":
        """
        Parse a Postgres change notification.

        The payload has the shape ``{"eventType": "INSERT"|"UPDATE"|"DELETE",
        "new": {...}, "old": {...}}``. Deletes only carry the primary key in ``old``.
        """
        kind = str(payload.get("eventType", "")).lower()
        if kind == FeedEventKind.DELETE:
            old = payload.get("old") or {}
            return cls(kind=kind, id=old.get("id"))
        return cls(kind=kind, record=payload.get("new"))
