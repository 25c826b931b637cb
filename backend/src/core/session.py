"""Session guard: the current subject and its activation/teardown signals."""
import logging
from collections.abc import Callable
from typing import Protocol

from schemas.subject import Subject

logger = logging.getLogger(__name__)

SubjectListener = Callable[[Subject | None], None]


class SessionProvider(Protocol):
    """Contract consumed by the sync controller."""

    def current_subject(self) -> Subject | None:
        """Return the active subject, or None when signed out."""
        ...

    def on_change(self, listener: SubjectListener) -> Callable[[], None]:
        """
        Register a listener called with the new subject on every transition.

        Returns a callable that removes the listener.
        """
        ...

    def end(self) -> None:
        """End the current session."""
        ...


class SessionGuard:
    """
    In-process session provider.

    Identity is established elsewhere (an OAuth callback, a token exchange); this
    class only holds the result and notifies listeners when it changes. A
    transition to None is the teardown signal.
    """

    def __init__(self, subject: Subject | None = None) -> None:
        self._subject = subject
        self._listeners: list[SubjectListener] = []

    def current_subject(self) -> Subject | None:
        """Return the active subject, or None when signed out."""
        return self._subject

    def on_change(self, listener: SubjectListener) -> Callable[[], None]:
        """Register a subject-change listener; returns an unregister callable."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def activate(self, subject: Subject) -> None:
        """Make `subject` the active identity (re-activating the same id is a no-op)."""
        if self._subject is not None and self._subject.id == subject.id:
            self._subject = subject
            return
        logger.info("session_activated subject_id=%s", subject.id)
        self._subject = subject
        self._notify()

    def end(self) -> None:
        """Sign out. Ending an already-ended session is a no-op."""
        if self._subject is None:
            return
        logger.info("session_ended subject_id=%s", self._subject.id)
        self._subject = None
        self._notify()

    def _notify(self) -> None:
        subject = self._subject
        for listener in list(self._listeners):
            listener(subject)
