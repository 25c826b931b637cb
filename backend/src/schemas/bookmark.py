"""Pydantic schemas for bookmark records and their display projection."""
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def normalize_id(value: Any) -> str:
    """
    Normalize a remote-assigned record id to its opaque string form.

    Remote stores commonly hand out integer or UUID keys; both are kept as strings
    so ids from the fetch path and the feed path compare equal.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Bookmark id is required")
    normalized = str(value).strip()
    if not normalized:
        raise ValueError("Bookmark id cannot be empty")
    return normalized


def id_sort_key(bookmark_id: str) -> tuple[int, int | str]:
    """
    Ascending sort key for opaque ids.

    ASCII-digit ids compare numerically (so "9" sorts before "10"); all other ids,
    including ones like "²" that str.isdigit accepts, compare lexically after every
    numeric id.
    """
    if bookmark_id.isascii() and bookmark_id.isdigit():
        return (0, int(bookmark_id))
    return (1, bookmark_id)


def validate_non_empty(value: str | None, field: str) -> str:
    """
    Strip and validate a required text field.

    Raises:
        ValueError: If the value is missing or only whitespace.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field.capitalize()} cannot be empty")
    return value.strip()


class Bookmark(BaseModel):
    """
    A bookmark record as stored remotely.

    Instances are immutable; the collection store replaces whole records rather
    than editing them in place.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    title: str
    url: str
    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "user_id"))
    created_at: datetime
    # Monotonic per-record revision; absent when the remote store doesn't track one
    revision: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("revision", "updated_at"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Store ids as opaque strings."""
        return normalize_id(v)

    @field_validator("owner_id", mode="before")
    @classmethod
    def coerce_owner_id(cls, v: Any) -> str:
        """Store owner ids as strings (UUIDs arrive as strings or UUID objects)."""
        return str(v)


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    title: str
    url: str

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: str | None) -> str:
        """Title must be non-empty."""
        return validate_non_empty(v, "title")

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v: str | None) -> str:
        """URL must be non-empty."""
        return validate_non_empty(v, "url")

    def to_record(self, owner_id: str) -> dict[str, str]:
        """Build the insert payload using the remote store's column names."""
        return {"title": self.title, "url": self.url, "user_id": owner_id}


class BookmarkView(BaseModel):
    """A bookmark annotated for display."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str
    owner_id: str
    created_at: datetime
    icon: str
    color: str
    domain: str
