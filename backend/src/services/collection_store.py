"""Authoritative in-memory id -> record mapping for the active subject."""
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from schemas.bookmark import Bookmark

logger = logging.getLogger(__name__)


class CollectionStore:
    """
    The collection of bookmarks owned by one subject.

    Every mutation is a single synchronous call, so the store is always fully
    resolved between two applications. Records whose owner differs from the
    store's owner are rejected even though the remote store should never send
    them. Readers get a read-only snapshot, never the backing dict.

    Records are ordered by the view projector, not here.
    """

    def __init__(self, owner_id: str | None = None) -> None:
        self._owner_id = owner_id
        self._records: dict[str, Bookmark] = {}

    @property
    def owner_id(self) -> str | None:
        """The subject whose records this store holds (None when no session)."""
        return self._owner_id

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, bookmark_id: object) -> bool:
        return bookmark_id in self._records

    def get(self, bookmark_id: str) -> Bookmark | None:
        """Get a record by id."""
        return self._records.get(bookmark_id)

    def snapshot(self) -> Mapping[str, Bookmark]:
        """Return a read-only copy of the current mapping."""
        return MappingProxyType(dict(self._records))

    def _owns(self, record: Bookmark) -> bool:
        if self._owner_id is None or record.owner_id != self._owner_id:
            logger.warning(
                "collection_store_foreign_record_dropped id=%s owner_id=%s expected=%s",
                record.id, record.owner_id, self._owner_id,
            )
            return False
        return True

    def _is_stale(self, incoming: Bookmark) -> bool:
        """
        True if `incoming` is older than the stored record.

        Only decidable when both sides carry a revision; otherwise the later arrival
        wins.
        """
        current = self._records.get(incoming.id)
        if current is None or current.revision is None or incoming.revision is None:
            return False
        return incoming.revision < current.revision

    def upsert(self, record: Bookmark) -> bool:
        """
        Insert or replace a record by id.

        Returns:
            True if the store changed.
        """
        if not self._owns(record):
            return False
        if self._is_stale(record):
            logger.debug("collection_store_stale_record_ignored id=%s", record.id)
            return False
        if self._records.get(record.id) == record:
            return False
        self._records[record.id] = record
        return True

    def remove(self, bookmark_id: str) -> bool:
        """
        Remove a record by id. Removing an absent id is a no-op.

        Returns:
            True if a record was removed.
        """
        return self._records.pop(bookmark_id, None) is not None

    def replace_all(self, records: Iterable[Bookmark]) -> None:
        """
        Replace the whole collection with `records`.

        Foreign records are dropped. Duplicate ids keep the last occurrence.
        """
        fresh: dict[str, Bookmark] = {}
        for record in records:
            if self._owns(record):
                fresh[record.id] = record
        self._records = fresh

    def clear(self) -> None:
        """Drop every record."""
        self._records = {}

    def reset(self, owner_id: str | None) -> None:
        """Clear the store and bind it to a new owner."""
        self._owner_id = owner_id
        self._records = {}
