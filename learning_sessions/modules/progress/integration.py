"""Session Progress Integration Service.

Buffers voice and photo evidence while a session is open, forwards each
record live to the progress tracker, and performs one consolidated push when
the session completes.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from learning_sessions.modules.progress.interface import (
    IProgressTracker,
    PhotoAssessmentRecord,
    VoiceInteractionRecord,
)
from learning_sessions.modules.session.interface import LearningSession
from learning_sessions.modules.session.service import LearningSessionService
from learning_sessions.shared.config import get_settings
from learning_sessions.shared.datetime_utils import Clock, ensure_utc, utc_now
from learning_sessions.shared.exceptions import SessionNotFoundError
from learning_sessions.shared.models import SessionState

logger = logging.getLogger(__name__)

ANALYTICS_DEFAULT_DAYS = 30


class SessionProgressIntegrationService:
    """Orchestrates progress tracking for learning sessions.

    Pending evidence is owned here, keyed by session id, independent of the
    session store. Record and flush operations for one session id are
    serialized by a per-session lock.
    """

    def __init__(
        self,
        progress_tracker: IProgressTracker,
        session_service: LearningSessionService,
        clock: Clock = utc_now,
    ) -> None:
        self._tracker = progress_tracker
        self._sessions = session_service
        self._clock = clock
        self._pending_voice: dict[str, list[VoiceInteractionRecord]] = {}
        self._pending_photos: dict[str, list[PhotoAssessmentRecord]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._hook_installed = False

        logger.info("SessionProgressIntegrationService initialized")

    def setup_session_completion_hook(self) -> None:
        """Flush evidence automatically whenever the engine completes a session."""
        if self._hook_installed:
            return
        self._sessions.add_completion_listener(self._handle_completion)
        self._hook_installed = True
        logger.info("Session completion hook installed")

    async def on_session_completed(self, session_id: str) -> None:
        """Push the session and its buffered evidence to the tracker once.

        Pending lists are dropped only after the tracker accepts them, so a
        failed push can be retried. Calling again after a successful flush
        sends empty lists.
        """
        session = self._sessions.get_session(session_id)
        if session is None:
            logger.warning(
                f"Session not found for progress tracking: {session_id}",
                extra={"session_id": session_id},
            )
            return

        async with self._lock(session_id):
            voice_data = list(self._pending_voice.get(session_id, []))
            photo_assessments = list(self._pending_photos.get(session_id, []))

            try:
                progress = await self._tracker.track_session_progress(
                    session,
                    voice_data,
                    photo_assessments,
                )
            except Exception:
                logger.error(
                    f"Failed to track session completion progress: {session_id}",
                    extra={"session_id": session_id},
                    exc_info=True,
                )
                return

            self._pending_voice.pop(session_id, None)
            self._pending_photos.pop(session_id, None)

        self._discard_idle_lock(session_id)
        logger.info(
            f"Session completion progress tracked: {session_id}",
            extra={
                "session_id": session_id,
                "child_id": session.child_id,
                "subject": session.subject,
                "overall_progress": getattr(progress, "overall_progress", None),
                "voice_interactions": len(voice_data),
                "photo_assessments": len(photo_assessments),
            },
        )

    async def record_voice_interaction(
        self,
        session_id: str,
        record: VoiceInteractionRecord,
    ) -> None:
        """Record voice evidence for a session.

        Open sessions buffer the record for the completion flush and forward
        it live; completed sessions only forward it. Unknown sessions are
        logged and ignored.
        """
        if record.session_id != session_id:
            record = replace(record, session_id=session_id)

        await self._record(
            session_id,
            record,
            self._pending_voice,
            self._tracker.add_voice_interaction_data,
            "voice interaction",
        )
        logger.debug(
            "Voice interaction recorded for session",
            extra={
                "session_id": session_id,
                "skills_demonstrated": len(record.skills_demonstrated),
                "confidence_level": record.confidence_level,
            },
        )

    async def record_photo_assessment(
        self,
        session_id: str,
        record: PhotoAssessmentRecord,
    ) -> None:
        """Record a photo assessment for a session. Same rules as voice."""
        await self._record(
            session_id,
            record,
            self._pending_photos,
            self._tracker.add_photo_assessment_result,
            "photo assessment",
        )
        logger.debug(
            "Photo assessment recorded for session",
            extra={
                "session_id": session_id,
                "subject": record.subject,
                "correctness_score": record.correctness_score,
            },
        )

    async def get_session_progress_data(self, session_id: str) -> dict[str, Any]:
        """Session, tracker-side progress and pending evidence counts."""
        session = self._sessions.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        return {
            "session": session,
            "progress_data": self._tracker.get_session_progress(session_id),
            "pending_voice_interactions": len(self._pending_voice.get(session_id, [])),
            "pending_photo_assessments": len(self._pending_photos.get(session_id, [])),
            "is_complete": session.state == SessionState.COMPLETED,
        }

    async def sync_session_progress(self, session_id: str) -> None:
        """Push the current session snapshot and pending evidence without clearing it.

        Raises:
            SessionNotFoundError: Unknown session
            Exception: Whatever the tracker raised
        """
        session = self._sessions.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        async with self._lock(session_id):
            try:
                await self._tracker.track_session_progress(
                    session,
                    list(self._pending_voice.get(session_id, [])),
                    list(self._pending_photos.get(session_id, [])),
                )
            except Exception:
                logger.error(
                    f"Failed to sync session progress: {session_id}",
                    extra={"session_id": session_id},
                    exc_info=True,
                )
                raise

        logger.info(
            f"Session progress manually synced: {session_id}",
            extra={"session_id": session_id, "state": session.state.value},
        )

    async def get_child_progress_analytics(
        self,
        child_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Any:
        """Progress analytics for a child; defaults to the last 30 days."""
        end = ensure_utc(end) or self._clock()
        start = ensure_utc(start) or end - timedelta(days=ANALYTICS_DEFAULT_DAYS)

        try:
            analytics = await self._tracker.generate_progress_analytics(child_id, start, end)
        except Exception:
            logger.error(
                f"Failed to get child progress analytics: {child_id}",
                extra={"child_id": child_id},
                exc_info=True,
            )
            raise

        logger.debug(
            "Child progress analytics generated",
            extra={"child_id": child_id, "start": start.isoformat(), "end": end.isoformat()},
        )
        return analytics

    def get_pending_data_summary(self) -> dict[str, int]:
        """Pending buffer sizes for monitoring."""
        return {
            "sessions_with_pending_voice_data": len(self._pending_voice),
            "sessions_with_pending_photo_data": len(self._pending_photos),
            "total_pending_voice_interactions": sum(
                len(records) for records in self._pending_voice.values()
            ),
            "total_pending_photo_assessments": sum(
                len(records) for records in self._pending_photos.values()
            ),
        }

    def cleanup_abandoned_sessions(self, max_age_hours: float | None = None) -> int:
        """Discard pending evidence that will never be flushed.

        A buffer is dropped when its session is gone from the store, or when
        the session is not completed and has been idle longer than
        ``max_age_hours``. Buffers currently being recorded or flushed are
        skipped.

        Afterwards, locks of sessions with nothing pending are released and
        finished sessions older than the cutoff are evicted from the session
        store, except those still holding unflushed evidence.

        Returns:
            Number of sessions whose buffers were discarded.
        """
        if max_age_hours is None:
            max_age_hours = get_settings().buffer_cleanup_max_age_hours
        cutoff = self._clock() - timedelta(hours=max_age_hours)
        cleaned = 0

        for session_id in set(self._pending_voice) | set(self._pending_photos):
            lock = self._locks.get(session_id)
            if lock is not None and lock.locked():
                continue

            session = self._sessions.get_session(session_id)
            if session is None or (
                session.last_activity < cutoff and session.state != SessionState.COMPLETED
            ):
                self._pending_voice.pop(session_id, None)
                self._pending_photos.pop(session_id, None)
                cleaned += 1

        if cleaned > 0:
            logger.info(
                f"Cleaned up abandoned session data: {cleaned} sessions",
                extra={"sessions_cleaned_up": cleaned, "max_age_hours": max_age_hours},
            )

        for session_id in list(self._locks):
            self._discard_idle_lock(session_id)
        pending = set(self._pending_voice) | set(self._pending_photos)
        self._sessions.purge_finished_sessions(max_age_hours, keep=pending)
        return cleaned

    # --- Private methods ---

    async def _handle_completion(self, session: LearningSession) -> None:
        await self.on_session_completed(session.session_id)

    async def _record(
        self,
        session_id: str,
        record: Any,
        pending: dict[str, list[Any]],
        forward: Any,
        kind: str,
    ) -> None:
        if self._sessions.get_session(session_id) is None:
            logger.warning(
                f"Session not found for {kind} recording: {session_id}",
                extra={"session_id": session_id},
            )
            return

        async with self._lock(session_id):
            session = self._sessions.get_session(session_id)
            if session is None:
                logger.warning(f"Session disappeared before {kind} recording: {session_id}")
                return

            if session.state != SessionState.COMPLETED:
                pending.setdefault(session_id, []).append(record)

            try:
                await forward(session_id, record)
            except Exception:
                logger.error(
                    f"Failed to forward {kind} for session {session_id}",
                    extra={"session_id": session_id},
                    exc_info=True,
                )

    def _discard_idle_lock(self, session_id: str) -> None:
        if session_id in self._pending_voice or session_id in self._pending_photos:
            return
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def _lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock
