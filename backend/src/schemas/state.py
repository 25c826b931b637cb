"""Read-only state exposed to the presentation layer."""
from pydantic import BaseModel, ConfigDict

from schemas.bookmark import BookmarkView


class CollectionState(BaseModel):
    """
    Snapshot of everything the presentation layer may read.

    `items` is the projected view (filtered, ordered, annotated). `loading` is True
    while the initial load or a confirm-by-reload is in flight. `error` holds the
    message of the last failed load.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str | None
    items: list[BookmarkView]
    query: str = ""
    loading: bool = False
    error: str | None = None
    feed_connected: bool = False

    @property
    def total(self) -> int:
        """Number of projected items."""
        return len(self.items)
