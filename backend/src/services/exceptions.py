"""Shared exceptions for bookmark synchronization."""


class BookmarkSyncError(Exception):
    """Base exception for all bookmark sync failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(BookmarkSyncError):
    """
    Raised when a mutation is rejected client-side.

    Never reaches the network. Not to be confused with pydantic's ValidationError,
    which is only raised while parsing remote payloads.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class AuthError(BookmarkSyncError):
    """
    Raised when the session is invalid or expired.

    This is the only fatal condition: the controller ends the session and clears
    all local state when it sees one.
    """

    def __init__(self, message: str = "Invalid or expired session", status_code: int | None = None) -> None:  # noqa: E501
        self.status_code = status_code
        super().__init__(message)


class NetworkError(BookmarkSyncError):
    """Raised for transient remote failures. Never retried automatically."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(BookmarkSyncError):
    """Raised when a delete target is already gone."""

    def __init__(self, bookmark_id: str) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark not found: {bookmark_id}")


class FeedDroppedError(BookmarkSyncError):
    """Raised by a change channel when a subscription is lost."""

    def __init__(self, topic: str, reason: str = "subscription dropped") -> None:
        self.topic = topic
        super().__init__(f"Change feed '{topic}': {reason}")


class SessionEndedError(BookmarkSyncError):
    """
    Raised when there is no active session for an operation.

    Also raised when a result is discarded because its originating session ended
    while the request was in flight.
    """

    def __init__(self, message: str = "No active session") -> None:
        super().__init__(message)
