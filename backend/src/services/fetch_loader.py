"""One-shot bulk retrieval of a subject's bookmarks."""
import logging

from pydantic import ValidationError as PydanticValidationError

from schemas.bookmark import Bookmark
from services.exceptions import NetworkError
from services.remote_store import RemoteStore

logger = logging.getLogger(__name__)


class FetchLoader:
    """Loads every bookmark owned by a subject, newest first."""

    def __init__(self, remote: RemoteStore, collection: str) -> None:
        self._remote = remote
        self._collection = collection

    async def load(self, subject_id: str) -> list[Bookmark]:
        """
        Fetch all records owned by `subject_id`.

        Rows are filtered by owner server-side; rows for any other owner that slip
        through are dropped by the collection store.

        Raises:
            NetworkError: The remote store is unreachable or returned malformed rows.
            AuthError: The session is invalid or expired.
        """
        rows = await self._remote.query(
            self._collection,
            {"user_id": subject_id},
            order_by="created_at.desc",
        )
        try:
            records = [Bookmark.model_validate(row) for row in rows]
        except PydanticValidationError as e:
            logger.warning("fetch_loader_malformed_rows subject_id=%s error=%s", subject_id, e)
            raise NetworkError("Remote store returned malformed bookmark rows") from e
        logger.info("fetch_loader_loaded subject_id=%s count=%d", subject_id, len(records))
        return records
