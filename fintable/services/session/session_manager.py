"""In-memory registry of extraction sessions."""

import time
from typing import Callable, Dict, List

from fintable.core.exceptions import InvalidTransitionError, SessionNotFoundError
from fintable.services.session.state_machine import ExtractionSession
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)

SessionFactory = Callable[[], ExtractionSession]


class SessionManager:
    """Holds sessions in memory; nothing is persisted.

    A session untouched for ``idle_ttl_seconds`` is evicted the next time a
    session is created, unless it is extracting or structuring. A TTL of 0
    keeps sessions until they are deleted.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        idle_ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self.idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, ExtractionSession] = {}
        self._last_touched: Dict[str, float] = {}

    def create(self) -> ExtractionSession:
        self.evict_idle()
        session = self._session_factory()
        self._sessions[session.session_id] = session
        self._last_touched[session.session_id] = self._clock()
        LOGGER.info("Created session", extra={"session_id": session.session_id, "active_sessions": len(self._sessions)})
        return session

    def get(self, session_id: str) -> ExtractionSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        self._last_touched[session_id] = self._clock()
        return session

    def delete(self, session_id: str) -> None:
        """Drop a session.

        Raises:
            SessionNotFoundError: If the id is unknown
            InvalidTransitionError: While the session is extracting or structuring
        """
        session = self.get(session_id)
        if session.is_busy:
            raise InvalidTransitionError("delete session", session.state.value)
        self._remove(session_id)
        LOGGER.info("Deleted session", extra={"session_id": session_id})

    def evict_idle(self) -> List[str]:
        """Drop idle sessions past the TTL and return their ids."""
        if self.idle_ttl_seconds <= 0:
            return []
        cutoff = self._clock() - self.idle_ttl_seconds
        expired = [
            session_id
            for session_id, touched in self._last_touched.items()
            if touched < cutoff and not self._sessions[session_id].is_busy
        ]
        for session_id in expired:
            self._remove(session_id)
            LOGGER.info(
                "Evicted idle session",
                extra={"session_id": session_id, "idle_ttl_seconds": self.idle_ttl_seconds},
            )
        return expired

    def _remove(self, session_id: str) -> None:
        del self._sessions[session_id]
        self._last_touched.pop(session_id, None)

    def list_ids(self) -> List[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
