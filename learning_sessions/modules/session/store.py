"""In-memory session store.

Owns every ``LearningSession`` instance. Open sessions live in the active map;
completed and abandoned sessions move to a history map so late readers (the
progress flush, reporting) can still resolve them while active-session
queries no longer see them.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from learning_sessions.modules.session.interface import LearningSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Keyed session store with one asyncio lock per session id.

    Every writer (caller-driven lifecycle operations and timer callbacks)
    must hold ``lock(session_id)`` while mutating that session.
    """

    def __init__(self) -> None:
        self._active: dict[str, LearningSession] = {}
        self._finished: dict[str, LearningSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, session_id: str) -> asyncio.Lock:
        """Serialization point for one session.

        Only open sessions keep their lock between calls. Finished sessions
        are read-only, so callers get a throwaway lock for them.
        """
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            if session_id in self._active:
                self._locks[session_id] = lock
        return lock

    def add(self, session: LearningSession) -> None:
        if session.session_id in self._active or session.session_id in self._finished:
            raise ValueError(f"Duplicate session id: {session.session_id}")
        self._active[session.session_id] = session

    def get(self, session_id: str) -> LearningSession | None:
        """Look up a session whether it is open or finished."""
        return self._active.get(session_id) or self._finished.get(session_id)

    def get_active(self, session_id: str) -> LearningSession | None:
        return self._active.get(session_id)

    def finish(self, session_id: str) -> None:
        """Move a session out of the active map into history and drop its lock."""
        session = self._active.pop(session_id, None)
        if session is not None:
            self._finished[session_id] = session
        self._locks.pop(session_id, None)

    def evict(self, session_id: str) -> bool:
        """Forget a session entirely. Returns False if it was unknown."""
        removed = self._active.pop(session_id, None) or self._finished.pop(session_id, None)
        self._locks.pop(session_id, None)
        if removed is not None:
            logger.debug(f"Session evicted from store: {session_id}")
        return removed is not None

    def evict_finished(self, cutoff: datetime, keep: Iterable[str] = ()) -> list[str]:
        """Evict finished sessions idle since before ``cutoff``.

        Sessions named in ``keep`` stay in history regardless of age.

        Returns:
            Ids of the evicted sessions.
        """
        keep = set(keep)
        expired = [
            session_id
            for session_id, session in self._finished.items()
            if session_id not in keep and session.last_activity < cutoff
        ]
        for session_id in expired:
            self.evict(session_id)
        return expired

    def active_sessions(self) -> list[LearningSession]:
        return list(self._active.values())

    def finished_sessions(self) -> list[LearningSession]:
        return list(self._finished.values())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._active or session_id in self._finished

    def __len__(self) -> int:
        return len(self._active)
