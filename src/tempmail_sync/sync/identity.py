# =============================================================================
# Identity Store
# =============================================================================
# Holds the current session and its lifecycle.
#
# Key concepts:
#   - There is at most one current session per SyncContext
#   - Changing or clearing the session makes everything cached for the old
#     one stale; listeners are told so they can drop it
#   - generation: a counter bumped on every change. Async operations grab it
#     before awaiting the gateway and compare afterwards, which is how late
#     results for an old session get thrown away
#
# Nothing here is persisted. storage.Repository can save and load the
# session id when the application asks for it explicitly.
# =============================================================================

import logging
from typing import Callable

from tempmail_sync.core import Session


logger = logging.getLogger(__name__)


# Type alias for session change listeners
SessionListener = Callable[[Session | None], None]


class IdentityStore:
    """
    Current session holder.

    Usage:
        >>> identity = IdentityStore()
        >>> identity.subscribe(lambda s: print("now", s))
        >>> identity.set_session("abc123")
        >>> identity.clear()

    Attributes:
        generation: Incremented every time the session changes.
    """

    def __init__(self) -> None:
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []
        self.generation = 0

    def current_session(self) -> Session | None:
        """Returns the current session, or None if there isn't one."""
        return self._session

    @property
    def session_id(self) -> str | None:
        """Shortcut for the current session's id."""
        return self._session.id if self._session else None

    def set_session(self, session_id: str) -> Session:
        """
        Replace the current session.

        No validation happens here; an unknown id surfaces as NotFoundError
        the first time the gateway is asked about it. Setting the id that is
        already current changes nothing.

        Args:
            session_id: Opaque session identifier.

        Returns:
            The current Session.
        """
        if self._session is not None and self._session.id == session_id:
            return self._session
        self._change(Session(id=session_id))
        return self._session

    def new_session(self) -> Session:
        """Generate a client-side session id and make it current."""
        self._change(Session.generate())
        return self._session

    def clear(self) -> None:
        """
        Drop the current session.

        Safe to call when there is no session.
        """
        if self._session is None:
            return
        self._change(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session changes.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _change(self, session: Session | None) -> None:
        """Swap the session, bump the generation and notify listeners."""
        previous = self._session
        self._session = session
        self.generation += 1

        if session is None:
            logger.info(f"Session {previous} cleared")
        else:
            logger.info(f"Session set to {session}")

        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                logger.error(f"Error in session listener: {e}", exc_info=True)
