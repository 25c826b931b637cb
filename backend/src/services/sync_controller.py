"""
Session-scoped synchronization controller.

Owns one collection store and merges its three mutation sources: the bulk load
run on every session activation, local create/delete mutations, and the change
feed. Everything runs on one asyncio event loop and every store application is a
synchronous call, so no two applications interleave even when their requests are
in flight concurrently.

Each session activation opens a new epoch. A load or mutation result is applied
only if the epoch it started in is still current; anything resolving after its
session ended is discarded.
"""
import asyncio
import logging
from collections.abc import Callable, Coroutine, Mapping
from typing import Any

from core.config import Settings
from core.session import SessionProvider
from schemas.bookmark import Bookmark
from schemas.feed import FeedEvent, FeedEventKind
from schemas.state import CollectionState
from schemas.subject import Subject
from services.change_feed import ChangeChannel, ChangeFeedListener
from services.collection_store import CollectionStore
from services.exceptions import (
    AuthError,
    BookmarkSyncError,
    NotFoundError,
    SessionEndedError,
)
from services.fetch_loader import FetchLoader
from services.mutation_executor import MutationExecutor, validate_create
from services.remote_store import RemoteStore
from services.view_projector import project

logger = logging.getLogger(__name__)

StateListener = Callable[[CollectionState], None]


class SyncController:
    """
    Presentation boundary of the bookmark collection.

    Read `state` for the projected view plus loading flags. Call `add_bookmark`,
    `delete_bookmark` and `set_search_query` to act on it. Listeners registered with
    `subscribe` are called synchronously after every applied change.

    Use as an async context manager, or call `start()` and `aclose()`.
    """

    def __init__(
        self,
        session: SessionProvider,
        remote: RemoteStore,
        channel: ChangeChannel,
        *,
        collection: str = "book_mark",
        topic: str = "bookmarks-changes",
        max_resubscribe_attempts: int = 5,
        resubscribe_delay: float = 1.0,
    ) -> None:
        self._session = session
        self._store = CollectionStore()
        self._loader = FetchLoader(remote, collection)
        self._executor = MutationExecutor(remote, collection)
        self._listener = ChangeFeedListener(
            channel,
            topic,
            self.apply_event,
            on_status=self._on_feed_status,
            max_resubscribe_attempts=max_resubscribe_attempts,
            resubscribe_delay=resubscribe_delay,
        )
        self._subject: Subject | None = None
        self._epoch = 0
        self._query = ""
        self._pending_loads = 0
        self._error: str | None = None
        self._feed_connected = False
        self._state_listeners: list[StateListener] = []
        self._lifecycle_lock = asyncio.Lock()
        # Background tasks set to prevent garbage collection
        self._background_tasks: set[asyncio.Task] = set()
        self._unregister_session: Callable[[], None] | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: SessionProvider,
        remote: RemoteStore,
        channel: ChangeChannel,
    ) -> "SyncController":
        """Build a controller configured from application settings."""
        return cls(
            session,
            remote,
            channel,
            collection=settings.collection_name,
            topic=settings.feed_topic,
            max_resubscribe_attempts=settings.feed_max_resubscribe_attempts,
            resubscribe_delay=settings.feed_resubscribe_delay,
        )

    # === Lifecycle ===

    async def start(self) -> None:
        """
        Follow the session provider and activate its current subject.

        Returns once the initial load for that subject has finished (successfully
        or not).
        """
        if self._unregister_session is not None:
            return
        self._unregister_session = self._session.on_change(self._on_session_change)
        subject = self._session.current_subject()
        self._begin_epoch(subject)
        await self._attach(self._epoch, subject)

    async def aclose(self) -> None:
        """Stop following the session, clear the store and release the feed."""
        if self._unregister_session is not None:
            self._unregister_session()
            self._unregister_session = None
        self._begin_epoch(None)
        for task in list(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        async with self._lifecycle_lock:
            await self._listener.stop()

    async def wait_idle(self) -> None:
        """Wait until every pending session transition has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def __aenter__(self) -> "SyncController":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _on_session_change(self, subject: Subject | None) -> None:
        # The store is reset synchronously so nothing from the old session survives
        # the transition; the feed is moved asynchronously.
        self._begin_epoch(subject)
        self._spawn(self._attach(self._epoch, subject))

    def _begin_epoch(self, subject: Subject | None) -> None:
        self._epoch += 1
        self._subject = subject
        self._store.reset(subject.id if subject else None)
        self._pending_loads = 0
        self._error = None
        logger.info(
            "sync_epoch_started epoch=%d subject_id=%s",
            self._epoch, subject.id if subject else None,
        )
        self._notify()

    async def _attach(self, epoch: int, subject: Subject | None) -> None:
        """Release the previous feed, load the new subject, then listen to its feed."""
        async with self._lifecycle_lock:
            await self._listener.stop()
        if subject is None or epoch != self._epoch:
            return
        try:
            await self._load(epoch, subject.id)
        except BookmarkSyncError as e:
            # Already reflected in state.error (or the session was ended)
            logger.warning("sync_initial_load_failed subject_id=%s error=%s", subject.id, e)
            return
        await self._listen(epoch, subject.id)

    async def _listen(self, epoch: int, subject_id: str) -> None:
        async with self._lifecycle_lock:
            if epoch != self._epoch:
                return
            try:
                await self._listener.start(subject_id)
            except BookmarkSyncError as e:
                logger.warning("sync_feed_attach_failed subject_id=%s error=%s", subject_id, e)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("sync_background_task_failed", exc_info=task.exception())

    # === Read side ===

    @property
    def subject(self) -> Subject | None:
        """The subject of the current epoch."""
        return self._subject

    @property
    def query(self) -> str:
        """Current search query."""
        return self._query

    @property
    def state(self) -> CollectionState:
        """Project the current store; recomputed on every access."""
        return CollectionState(
            subject_id=self._subject.id if self._subject else None,
            items=project(self._store.snapshot(), self._query),
            query=self._query,
            loading=self._pending_loads > 0,
            error=self._error,
            feed_connected=self._feed_connected,
        )

    def snapshot(self) -> Mapping[str, Bookmark]:
        """Read-only copy of the collection store."""
        return self._store.snapshot()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns an unregister callable."""
        self._state_listeners.append(listener)

        def remove() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        if not self._state_listeners:
            return
        state = self.state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("sync_state_listener_failed")

    # === Dispatch ===

    def set_search_query(self, text: str | None) -> None:
        """Change the search query and notify."""
        self._query = text or ""
        self._notify()

    async def add_bookmark(self, title: str | None, url: str | None) -> Bookmark:
        """
        Create a bookmark and show it immediately.

        The confirmed record is upserted into the store right away; the feed's
        Insert for the same id later reconciles as a no-op.

        Raises:
            ValidationError: Empty title or url (no network call is made).
            NetworkError: Transient failure; nothing is retried.
            AuthError: The session is ended and the store cleared before raising.
            SessionEndedError: No session, or it ended before the create resolved.
        """
        # Input errors are reported even when signed out
        validate_create(title, url)
        subject = self._require_subject()
        epoch = self._epoch
        try:
            created = await self._executor.create(title, url, subject.id)
        except AuthError as e:
            self._handle_auth_error(epoch, e)
            raise
        self._ensure_current(epoch, "create")
        self._store.upsert(created)
        self._notify()
        return created

    async def delete_bookmark(self, bookmark_id: str) -> None:
        """
        Delete a bookmark, then confirm by reloading the whole collection.

        The reload replaces the store regardless of feed timing, so the id is gone
        once this returns; a later Delete event for it is a no-op. A target that is
        already gone counts as success.

        Raises:
            NetworkError: The delete or the confirming reload failed.
            AuthError: The session is ended and the store cleared before raising.
            SessionEndedError: No session, or it ended before the delete resolved.
        """
        subject = self._require_subject()
        epoch = self._epoch
        try:
            await self._executor.delete(bookmark_id)
        except NotFoundError:
            logger.info("sync_delete_target_missing id=%s", bookmark_id)
        except AuthError as e:
            self._handle_auth_error(epoch, e)
            raise
        self._ensure_current(epoch, "delete")
        await self._load(epoch, subject.id)

    async def reload(self) -> None:
        """
        Re-run the bulk load for the current subject.

        Loads are never retried automatically; this is the caller's retry. The feed
        is re-attached if it isn't connected.
        """
        subject = self._require_subject()
        epoch = self._epoch
        await self._load(epoch, subject.id)
        if not self._listener.connected:
            await self._listen(epoch, subject.id)

    # === Feed ===

    def apply_event(self, event: FeedEvent) -> bool:
        """
        Apply one change feed event. Applying the same event twice is a no-op.

        Returns:
            True if the store changed.
        """
        if self._store.owner_id is None:
            logger.debug("sync_event_without_session_ignored kind=%s id=%s", event.kind, event.id)
            return False
        if event.kind == FeedEventKind.DELETE:
            changed = self._store.remove(event.id)
        else:
            # An update for an unknown id inserts it, so both kinds upsert
            changed = self._store.upsert(event.record)
        logger.debug("feed_event_applied kind=%s id=%s changed=%s", event.kind, event.id, changed)
        if changed:
            self._notify()
        return changed

    def _on_feed_status(self, connected: bool) -> None:
        if connected != self._feed_connected:
            self._feed_connected = connected
            self._notify()

    # === Helpers ===

    def _require_subject(self) -> Subject:
        if self._subject is None:
            raise SessionEndedError()
        return self._subject

    def _ensure_current(self, epoch: int, operation: str) -> None:
        if epoch != self._epoch:
            logger.info(
                "sync_stale_result_discarded operation=%s epoch=%d current=%d",
                operation, epoch, self._epoch,
            )
            raise SessionEndedError(f"Session ended before the {operation} completed")

    def _handle_auth_error(self, epoch: int, error: AuthError) -> None:
        if epoch != self._epoch:
            return
        logger.warning("sync_auth_failed subject_id=%s error=%s", self._store.owner_id, error)
        self._session.end()
        if self._epoch == epoch:
            # Provider didn't report the teardown; do it locally
            self._on_session_change(None)

    async def _load(self, epoch: int, subject_id: str) -> None:
        """Bulk-load and replace the store; on failure leave it empty and error-flagged."""
        self._pending_loads += 1
        self._notify()
        try:
            records = await self._loader.load(subject_id)
        except AuthError as e:
            self._finish_load(epoch)
            self._handle_auth_error(epoch, e)
            raise
        except BookmarkSyncError as e:
            if epoch == self._epoch:
                self._pending_loads = max(0, self._pending_loads - 1)
                self._store.clear()
                self._error = str(e)
                self._notify()
            raise
        if epoch != self._epoch:
            logger.info("sync_stale_load_discarded subject_id=%s epoch=%d", subject_id, epoch)
            raise SessionEndedError("Session ended before the load completed")
        self._store.replace_all(records)
        self._error = None
        self._finish_load(epoch)

    def _finish_load(self, epoch: int) -> None:
        if epoch == self._epoch:
            self._pending_loads = max(0, self._pending_loads - 1)
            self._notify()
