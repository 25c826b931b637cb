"""Create and delete bookmarks against the remote store."""
import logging

from pydantic import ValidationError as PydanticValidationError

from schemas.bookmark import Bookmark, BookmarkCreate
from services.exceptions import NetworkError, ValidationError
from services.remote_store import RemoteStore

logger = logging.getLogger(__name__)


def validate_create(title: str | None, url: str | None) -> BookmarkCreate:
    """
    Validate create input without touching the network.

    Raises:
        ValidationError: If title or url is empty.
    """
    try:
        return BookmarkCreate(title=title, url=url)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "payload"
        message = str(error["msg"]).removeprefix("Value error, ")
        raise ValidationError(field, message) from e


class MutationExecutor:
    """
    Performs mutations and reports the definitive outcome.

    The executor never touches the collection store; the sync controller decides
    how a confirmed outcome is reflected locally.
    """

    def __init__(self, remote: RemoteStore, collection: str) -> None:
        self._remote = remote
        self._collection = collection

    async def create(self, title: str | None, url: str | None, subject_id: str) -> Bookmark:
        """
        Create a bookmark owned by `subject_id`.

        Returns:
            The record as confirmed by the remote store.

        Raises:
            ValidationError: Empty title or url (checked before any network call).
            NetworkError: Transient failure or malformed confirmation.
            AuthError: Session invalid or expired.
        """
        data = validate_create(title, url)
        row = await self._remote.insert(self._collection, data.to_record(subject_id))
        try:
            created = Bookmark.model_validate(row)
        except PydanticValidationError as e:
            raise NetworkError("Remote store returned a malformed bookmark") from e
        logger.info("bookmark_created id=%s subject_id=%s", created.id, subject_id)
        return created

    async def delete(self, bookmark_id: str) -> None:
        """
        Delete a bookmark by id.

        Raises:
            NotFoundError: The bookmark no longer exists.
            NetworkError: Transient failure.
            AuthError: Session invalid or expired.
        """
        await self._remote.delete(self._collection, bookmark_id)
        logger.info("bookmark_deleted id=%s", bookmark_id)
