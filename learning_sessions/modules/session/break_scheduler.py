"""Break Scheduler - per-session timers that drive break reminders.

Timers are one-shot APScheduler jobs keyed ``<session_id>-<purpose>``. A
firing timer does not touch the session itself; it posts
``(session_id, purpose)`` to the handler bound by the session service, which
serializes it with caller operations and re-checks the session state.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable
from uuid import uuid4

from learning_sessions.jobs.scheduler import JobScheduler, get_scheduler
from learning_sessions.modules.session.interface import LearningSession
from learning_sessions.shared.feature_flags import is_break_reminders_enabled

logger = logging.getLogger(__name__)


class TimerPurpose(str, Enum):
    """What a session timer is for. The value is the job id suffix."""

    WARNING = "warning"
    BREAK = "break"
    BREAK_END = "break-end"


TimerHandler = Callable[[str, TimerPurpose], Awaitable[None]]


class BreakScheduler:
    """Arms and cancels break timers for sessions.

    Holds only session ids, never session objects, so a session dropped from
    the store simply turns its outstanding timers into no-ops.
    """

    def __init__(self, job_scheduler: JobScheduler | None = None) -> None:
        self._jobs = job_scheduler or get_scheduler()
        self._handler: TimerHandler | None = None
        # timer key -> token of the job currently registered under that key
        self._timers: dict[str, str] = {}

    def bind(self, handler: TimerHandler) -> None:
        """Set the callback that receives timer firings."""
        self._handler = handler

    @staticmethod
    def timer_key(session_id: str, purpose: TimerPurpose) -> str:
        return f"{session_id}-{purpose.value}"

    def is_enabled_for(self, session: LearningSession) -> bool:
        return is_break_reminders_enabled() and session.settings.break_reminders_enabled

    def arm_active_timers(self, session: LearningSession, now: datetime) -> None:
        """Schedule the pre-break warning and the break reminder.

        Outstanding timers for the session are cancelled first.
        """
        self.cancel(session.session_id)
        if not self.is_enabled_for(session):
            return

        config = session.timing_config
        warning_after = max(0, config.break_interval - config.warning_before_break)
        self._schedule(
            session.session_id,
            TimerPurpose.WARNING,
            now + timedelta(minutes=warning_after),
        )
        self._schedule(
            session.session_id,
            TimerPurpose.BREAK,
            now + timedelta(minutes=config.break_interval),
        )

    def arm_break_end_timer(self, session: LearningSession, now: datetime) -> None:
        """Schedule the "break over" reminder. Outstanding timers are cancelled first."""
        self.cancel(session.session_id)
        if not self.is_enabled_for(session):
            return

        self._schedule(
            session.session_id,
            TimerPurpose.BREAK_END,
            now + timedelta(minutes=session.timing_config.break_duration),
        )

    def cancel(self, session_id: str) -> int:
        """Cancel every outstanding timer of one session.

        Returns:
            Number of timers that were still registered.
        """
        cancelled = 0
        for purpose in TimerPurpose:
            key = self.timer_key(session_id, purpose)
            if self._timers.pop(key, None) is not None:
                self._jobs.remove_job(key)
                cancelled += 1
        if cancelled:
            logger.debug(f"Cancelled {cancelled} timers for session {session_id}")
        return cancelled

    def pending_timers(self, session_id: str) -> list[TimerPurpose]:
        return [
            purpose for purpose in TimerPurpose
            if self.timer_key(session_id, purpose) in self._timers
        ]

    def _schedule(self, session_id: str, purpose: TimerPurpose, run_at: datetime) -> None:
        key = self.timer_key(session_id, purpose)
        token = uuid4().hex
        self._timers[key] = token
        self._jobs.add_job(
            self.fire,
            run_at=run_at,
            job_id=key,
            session_id=session_id,
            purpose=purpose,
            token=token,
        )
        logger.debug(
            f"Armed {purpose.value} timer for session {session_id}",
            extra={"session_id": session_id, "purpose": purpose.value, "run_at": run_at.isoformat()},
        )

    async def fire(self, session_id: str, purpose: TimerPurpose, token: str) -> None:
        """Job entry point. Never raises."""
        key = self.timer_key(session_id, purpose)
        if self._timers.get(key) != token:
            # Cancelled or re-armed after this job was already dispatched
            logger.debug(f"Superseded {purpose.value} timer ignored for session {session_id}")
            return
        del self._timers[key]

        if self._handler is None:
            logger.warning(f"No handler bound for {purpose.value} timer of session {session_id}")
            return

        try:
            await self._handler(session_id, purpose)
        except Exception:
            logger.exception(
                f"Break timer handler failed for session {session_id}",
                extra={"session_id": session_id, "purpose": purpose.value},
            )
