"""
Change feed: a typed publish/subscribe channel and the listener that consumes it.

The channel contract is transport independent. `InMemoryChangeChannel` is an
in-process implementation used to embed the engine and to drive it with synthetic
events; a network-backed channel only needs to implement `ChangeChannel`.
"""
import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from schemas.feed import FeedEvent
from services.exceptions import BookmarkSyncError, FeedDroppedError

logger = logging.getLogger(__name__)

EventHandler = Callable[[FeedEvent], None]
StatusHandler = Callable[[bool], None]

_CLOSED = object()


class Subscription:
    """
    A live subscription: an async iterator of feed events.

    Iteration ends when the subscription is closed and raises FeedDroppedError if
    the channel dropped it.
    """

    def __init__(self, topic: str, filters: Mapping[str, Any]) -> None:
        self.topic = topic
        self.filters = dict(filters)
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once the subscription can no longer deliver events."""
        return self._closed

    def matches(self, topic: str, event: FeedEvent) -> bool:
        """
        True if `event` on `topic` passes this subscription's filters.

        Events without a record (deletes) can't be filtered by column and are
        delivered to every subscription on the topic.
        """
        if self._closed or topic != self.topic:
            return False
        if event.record is None:
            return True
        return all(getattr(event.record, key, None) == value for key, value in self.filters.items())  # noqa: E501

    def deliver(self, event: FeedEvent) -> None:
        """Queue an event for the consumer."""
        if not self._closed:
            self._queue.put_nowait(event)

    def drop(self, reason: str = "subscription dropped") -> None:
        """Terminate the subscription with a FeedDroppedError."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(FeedDroppedError(self.topic, reason))

    def close(self) -> None:
        """Terminate the subscription cleanly."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> FeedEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class ChangeChannel(Protocol):
    """Push channel contract."""

    async def subscribe(self, topic: str, filters: Mapping[str, Any]) -> Subscription:
        """Open a subscription to `topic` restricted by equality `filters`."""
        ...

    async def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription."""
        ...


class InMemoryChangeChannel:
    """In-process change channel."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    @property
    def active_subscriptions(self) -> list[Subscription]:
        """Subscriptions that have been acquired and not yet released."""
        return list(self._subscriptions)

    async def subscribe(self, topic: str, filters: Mapping[str, Any]) -> Subscription:
        """Open a subscription."""
        subscription = Subscription(topic, filters)
        self._subscriptions.append(subscription)
        logger.debug("channel_subscribed topic=%s filters=%s", topic, subscription.filters)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        """
        Release a subscription.

        Raises:
            ValueError: If the subscription isn't active on this channel.
        """
        if subscription not in self._subscriptions:
            raise ValueError(f"Subscription to '{subscription.topic}' is not active")
        self._subscriptions.remove(subscription)
        subscription.close()
        logger.debug("channel_unsubscribed topic=%s", subscription.topic)

    def publish(self, topic: str, event: FeedEvent | dict[str, Any]) -> int:
        """
        Deliver an event to every matching subscription.

        Returns:
            Number of subscriptions the event was delivered to.
        """
        if not isinstance(event, FeedEvent):
            event = FeedEvent.model_validate(event)
        delivered = 0
        for subscription in self._subscriptions:
            if subscription.matches(topic, event):
                subscription.deliver(event)
                delivered += 1
        return delivered

    def drop(self, topic: str, reason: str = "connection lost") -> None:
        """Drop every subscription on `topic`, as a lost connection would."""
        for subscription in list(self._subscriptions):
            if subscription.topic == topic:
                self._subscriptions.remove(subscription)
                subscription.drop(reason)


class ChangeFeedListener:
    """
    Consumes one subject's change feed and hands every event to `on_event`.

    The subscription is a scoped resource: `start` acquires it, `stop` releases it,
    and it is released exactly once however often the two are called. A dropped
    subscription is re-acquired up to `max_resubscribe_attempts` times in a row,
    waiting `resubscribe_delay` seconds before each attempt.
    """

    def __init__(
        self,
        channel: ChangeChannel,
        topic: str,
        on_event: EventHandler,
        *,
        on_status: StatusHandler | None = None,
        max_resubscribe_attempts: int = 5,
        resubscribe_delay: float = 1.0,
    ) -> None:
        self._channel = channel
        self._topic = topic
        self._on_event = on_event
        self._on_status = on_status
        self._max_resubscribe_attempts = max_resubscribe_attempts
        self._resubscribe_delay = resubscribe_delay
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None
        self._subject_id: str | None = None

    @property
    def connected(self) -> bool:
        """True while a subscription is held."""
        return self._subscription is not None

    @property
    def subject_id(self) -> str | None:
        """The subject the listener is attached to."""
        return self._subject_id

    async def start(self, subject_id: str) -> None:
        """
        Attach to `subject_id`'s feed, releasing any previous subscription first.

        Raises:
            FeedDroppedError: The initial subscription couldn't be acquired.
        """
        await self.stop()
        self._subject_id = subject_id
        await self._acquire()
        self._task = asyncio.create_task(self._consume(), name=f"change-feed:{subject_id}")

    async def stop(self) -> None:
        """Detach and release the subscription. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._release()
        self._subject_id = None

    async def _acquire(self) -> None:
        self._subscription = await self._channel.subscribe(
            self._topic, {"owner_id": self._subject_id},
        )
        logger.info("feed_subscribed topic=%s subject_id=%s", self._topic, self._subject_id)
        self._set_status(True)

    async def _release(self) -> None:
        # Detach before awaiting so a concurrent stop can't release the same handle
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        self._set_status(False)
        if subscription.closed:
            # Already torn down by the channel (dropped); nothing to hand back
            return
        await self._channel.unsubscribe(subscription)
        logger.info("feed_unsubscribed topic=%s subject_id=%s", self._topic, self._subject_id)

    def _set_status(self, connected: bool) -> None:
        if self._on_status is not None:
            self._on_status(connected)

    async def _consume(self) -> None:
        while True:
            subscription = self._subscription
            if subscription is None:
                return
            try:
                async for event in subscription:
                    self._dispatch(event)
                reason = "stream closed"
            except FeedDroppedError as e:
                reason = str(e)

            logger.warning(
                "feed_dropped topic=%s subject_id=%s reason=%s",
                self._topic, self._subject_id, reason,
            )
            await self._release()
            if not await self._resubscribe():
                return

    async def _resubscribe(self) -> bool:
        """Try to re-acquire the subscription; False once attempts are exhausted."""
        attempts = 0
        while attempts < self._max_resubscribe_attempts:
            attempts += 1
            await asyncio.sleep(self._resubscribe_delay)
            try:
                await self._acquire()
            except BookmarkSyncError as e:
                logger.warning(
                    "feed_resubscribe_failed topic=%s attempt=%d error=%s",
                    self._topic, attempts, e,
                )
                continue
            logger.info("feed_resubscribed topic=%s attempt=%d", self._topic, attempts)
            return True
        logger.error(
            "feed_resubscribe_exhausted topic=%s subject_id=%s attempts=%d",
            self._topic, self._subject_id, attempts,
        )
        return False

    def _dispatch(self, event: FeedEvent) -> None:
        try:
            self._on_event(event)
        except Exception:
            # One bad event must not kill the subscription
            logger.exception("feed_event_failed kind=%s id=%s", event.kind, event.id)
