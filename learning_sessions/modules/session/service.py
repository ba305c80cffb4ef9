"""Learning Session Service - lifecycle, objective tracking and break pacing."""

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Iterable
from uuid import uuid4

from learning_sessions.modules.session.break_scheduler import BreakScheduler, TimerPurpose
from learning_sessions.modules.session.interface import (
    BreakReminder,
    CompletionListener,
    IAgeResolver,
    ISessionService,
    LearningObjective,
    LearningSession,
    ProgressMarker,
    ProgressMarkerMetadata,
    SessionSettings,
)
from learning_sessions.modules.session.lifecycle import SessionEvent, next_state
from learning_sessions.modules.session.schemas import (
    CreateSessionRequest,
    ObjectiveProgressUpdate,
    SessionSearchCriteria,
    SessionSettingsUpdate,
    UpdateSessionRequest,
)
from learning_sessions.modules.session.statistics import recompute_statistics
from learning_sessions.modules.session.store import SessionStore
from learning_sessions.modules.session.timing import (
    AGE_TIMING_CONFIGS,
    BREAK_END_MESSAGES,
    BREAK_REMINDER_MESSAGES,
    BREAK_WARNING_MESSAGES,
    StaticAgeResolver,
    get_timing_config,
)
from learning_sessions.shared.config import get_settings
from learning_sessions.shared.datetime_utils import Clock, elapsed_ms, ensure_utc, utc_now
from learning_sessions.shared.exceptions import (
    BreakReminderNotFoundError,
    InvalidTransitionError,
    ObjectiveNotFoundError,
    PolicyResolutionFailedError,
    SessionNotFoundError,
)
from learning_sessions.shared.models import AgeGroup, ReminderType, SessionState

logger = logging.getLogger(__name__)

# Success rate below which an objective update is flagged for review
NEEDS_REVIEW_THRESHOLD = 0.7


class LearningSessionService(ISessionService):
    """Service for managing learning session lifecycle.

    Handles:
    - Session creation with age-appropriate timing policy
    - State transitions (start, pause, resume, break, complete, abandon)
    - Break reminders driven by background timers
    - Objective progress and progress markers
    - Statistics and engagement scoring

    All mutations of one session are serialized through the store's
    per-session lock, including timer firings.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        age_resolver: IAgeResolver | None = None,
        break_scheduler: BreakScheduler | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store or SessionStore()
        self._age_resolver = age_resolver or StaticAgeResolver()
        self._breaks = break_scheduler or BreakScheduler()
        self._breaks.bind(self.on_timer_fired)
        self._clock = clock
        self._settings = get_settings()
        self._completion_listeners: list[CompletionListener] = []

        logger.info(
            "LearningSessionService initialized",
            extra={"age_timing_configs": len(AGE_TIMING_CONFIGS)},
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def break_scheduler(self) -> BreakScheduler:
        return self._breaks

    def add_completion_listener(self, listener: CompletionListener) -> None:
        """Register an async callback run after each session completes."""
        self._completion_listeners.append(listener)

    # --- Lifecycle ---

    async def create_session(self, request: CreateSessionRequest) -> LearningSession:
        """Create a new learning session in ``not_started`` state.

        The child's age bracket selects the timing policy, which is copied
        onto the session.

        Args:
            request: Creation parameters

        Returns:
            New LearningSession

        Raises:
            PolicyResolutionFailedError: If the age bracket lookup fails or
                the bracket has no timing policy.
        """
        try:
            age_group = AgeGroup(await self._age_resolver.get_age_group(request.child_id))
            timing_config = get_timing_config(age_group)
        except Exception as e:
            logger.error(
                f"Failed to resolve timing policy for child {request.child_id}: {e}",
                extra={"child_id": request.child_id, "session_type": request.session_type.value},
            )
            raise PolicyResolutionFailedError(request.child_id, str(e)) from e

        now = self._clock()
        session_id = str(uuid4())

        objectives = [
            LearningObjective(
                id=f"{session_id}-obj-{index}",
                subject=template.subject or request.subject,
                topic=template.topic or request.topic or "",
                description=template.description,
                target_level=template.target_level,
            )
            for index, template in enumerate(request.learning_objectives)
        ]

        session = LearningSession(
            session_id=session_id,
            child_id=request.child_id,
            age_group=age_group,
            session_type=request.session_type,
            title=request.title,
            subject=request.subject,
            timing_config=timing_config,
            description=request.description,
            topic=request.topic,
            created_at=now,
            last_activity=now,
            estimated_duration=request.estimated_duration,
            learning_objectives=objectives,
            settings=_merge_settings(SessionSettings(), request.settings),
            tags=list(request.tags),
        )
        self._store.add(session)

        logger.info(
            f"Learning session created: {session_id}",
            extra={
                "session_id": session_id,
                "child_id": request.child_id,
                "session_type": request.session_type.value,
                "subject": request.subject,
                "objective_count": len(objectives),
            },
        )
        return session

    async def start_session(self, session_id: str) -> LearningSession:
        """Start a session and arm its break timers."""
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.START)
            now = self._clock()

            self._breaks.arm_active_timers(session, now)
            session.state = target
            session.started_at = now
            session.last_activity = now

        logger.info(
            f"Learning session started: {session_id}",
            extra={"session_id": session_id, "child_id": session.child_id},
        )
        return session

    async def pause_session(self, session_id: str, reason: str | None = None) -> LearningSession:
        """Pause an active session."""
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.PAUSE)
            now = self._clock()

            self._breaks.cancel(session_id)
            session.state = target
            session.last_activity = now
            session.statistics = recompute_statistics(session, now)
            self.add_progress_marker(
                session,
                f"Session paused{': ' + reason if reason else ''}",
                metadata=ProgressMarkerMetadata(needs_review=False),
            )

        logger.info(
            f"Learning session paused: {session_id}",
            extra={
                "session_id": session_id,
                "reason": reason,
                "active_duration_ms": session.statistics.active_duration,
            },
        )
        return session

    async def resume_session(self, session_id: str) -> LearningSession:
        """Resume a paused session or end a break."""
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.RESUME)
            now = self._clock()
            was_on_break = session.state == SessionState.BREAK

            self._breaks.arm_active_timers(session, now)
            if was_on_break:
                self._close_break(session, now)
            session.state = target
            session.last_activity = now
            session.statistics = recompute_statistics(session, now)
            self.add_progress_marker(
                session,
                f"Session resumed{' from break' if was_on_break else ''}",
                metadata=ProgressMarkerMetadata(needs_review=False),
            )

        logger.info(
            f"Learning session resumed: {session_id}",
            extra={
                "session_id": session_id,
                "was_on_break": was_on_break,
                "total_break_time_ms": session.total_break_time,
            },
        )
        return session

    async def start_break(
        self,
        session_id: str,
        break_type: ReminderType = ReminderType.SUGGESTED,
    ) -> LearningSession:
        """Put an active session on break and arm the break-end reminder."""
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.START_BREAK)
            now = self._clock()

            self._breaks.arm_break_end_timer(session, now)
            session.state = target
            session.current_break_start = now
            session.last_activity = now
            self.add_progress_marker(
                session,
                f"Break started ({break_type.value})",
                metadata=ProgressMarkerMetadata(needs_review=False),
            )

        logger.info(
            f"Learning session break started: {session_id}",
            extra={"session_id": session_id, "break_type": break_type.value},
        )
        return session

    async def complete_session(
        self,
        session_id: str,
        completion_notes: str | None = None,
    ) -> LearningSession:
        """Complete a session, finalize its statistics and notify listeners.

        The session leaves the active set but stays readable through
        ``get_session``. Listener failures are logged and do not undo the
        completion.
        """
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.COMPLETE)
            now = self._clock()

            self._breaks.cancel(session_id)
            if session.state == SessionState.BREAK:
                self._close_break(session, now)
            session.state = target
            session.completed_at = now
            session.last_activity = now
            if completion_notes:
                session.notes = completion_notes
            session.statistics = recompute_statistics(session, now)
            self.add_progress_marker(
                session,
                "Session completed successfully",
                metadata=ProgressMarkerMetadata(
                    interaction_count=session.statistics.interaction_count,
                    skill_demonstrated="session_completion",
                    needs_review=False,
                ),
            )
            self._store.finish(session_id)

        stats = session.statistics
        logger.info(
            f"Learning session completed: {session_id}",
            extra={
                "session_id": session_id,
                "duration_ms": stats.total_duration,
                "objectives_completed": stats.objectives_completed,
                "completion_rate": stats.completion_rate,
                "engagement_score": stats.engagement_score,
            },
        )

        await self._notify_completed(session)
        return session

    async def abandon_session(self, session_id: str, reason: str | None = None) -> LearningSession:
        """Abandon a session without completing it."""
        async with self._locked(session_id) as session:
            target = next_state(session, SessionEvent.ABANDON)
            now = self._clock()

            self._breaks.cancel(session_id)
            if session.state == SessionState.BREAK:
                self._close_break(session, now)
            session.state = target
            session.abandon_reason = reason
            session.last_activity = now
            session.statistics = recompute_statistics(session, now)
            self.add_progress_marker(
                session,
                f"Session abandoned{': ' + reason if reason else ''}",
                metadata=ProgressMarkerMetadata(needs_review=False),
            )
            self._store.finish(session_id)

        logger.info(
            f"Learning session abandoned: {session_id}",
            extra={"session_id": session_id, "reason": reason},
        )
        return session

    async def update_session(
        self,
        session_id: str,
        request: UpdateSessionRequest,
    ) -> LearningSession:
        """Edit metadata and settings of an open session.

        Changing ``break_reminders_enabled`` re-arms or cancels the timers
        that belong to the current state.
        """
        async with self._locked(session_id) as session:
            self._ensure_open(session, "update")
            now = self._clock()

            if request.title is not None:
                session.title = request.title
            if request.description is not None:
                session.description = request.description
            if request.notes is not None:
                session.notes = request.notes
            if request.parent_notes is not None:
                session.parent_notes = request.parent_notes
            if request.tags is not None:
                session.tags = list(request.tags)

            if request.settings is not None:
                previous = session.settings.break_reminders_enabled
                session.settings = _merge_settings(session.settings, request.settings)
                if session.settings.break_reminders_enabled != previous:
                    if session.state == SessionState.ACTIVE:
                        self._breaks.arm_active_timers(session, now)
                    elif session.state == SessionState.BREAK:
                        self._breaks.arm_break_end_timer(session, now)

            session.last_activity = now

        logger.debug(f"Learning session updated: {session_id}")
        return session

    # --- Objectives and markers ---

    async def update_objective_progress(
        self,
        session_id: str,
        objective_id: str,
        update: ObjectiveProgressUpdate | dict[str, Any],
    ) -> LearningSession:
        """Update learning objective progress.

        Args:
            session_id: Session
            objective_id: Objective within the session
            update: Any of completed / attempts / success_rate

        Returns:
            Updated LearningSession

        Raises:
            SessionNotFoundError: Unknown session
            ObjectiveNotFoundError: Objective is not part of the session
            InvalidTransitionError: Session already completed or abandoned
        """
        if not isinstance(update, ObjectiveProgressUpdate):
            update = ObjectiveProgressUpdate.model_validate(update)

        async with self._locked(session_id) as session:
            self._ensure_open(session, "update_objective")
            objective = session.find_objective(objective_id)
            if objective is None:
                raise ObjectiveNotFoundError(objective_id)

            now = self._clock()
            if update.completed is not None:
                if update.completed and not objective.completed:
                    objective.completed_at = now
                elif not update.completed:
                    objective.completed_at = None
                objective.completed = update.completed

            if update.attempts is not None:
                objective.attempts = update.attempts

            if update.success_rate is not None:
                objective.success_rate = update.success_rate

            session.last_activity = now
            session.statistics = recompute_statistics(session, now)
            self.add_progress_marker(
                session,
                f"Objective updated: {objective.topic or objective.description}",
                objective_id=objective_id,
                metadata=ProgressMarkerMetadata(
                    skill_demonstrated=objective.topic if objective.completed else None,
                    needs_review=(
                        update.success_rate is not None
                        and update.success_rate < NEEDS_REVIEW_THRESHOLD
                    ),
                ),
            )

        logger.debug(
            "Learning objective progress updated",
            extra={
                "session_id": session_id,
                "objective_id": objective_id,
                "completed": objective.completed,
                "attempts": objective.attempts,
                "success_rate": objective.success_rate,
            },
        )
        return session

    def add_progress_marker(
        self,
        session: LearningSession,
        description: str,
        objective_id: str | None = None,
        metadata: ProgressMarkerMetadata | None = None,
    ) -> ProgressMarker:
        """Append a progress marker. Caller must hold the session lock."""
        now = self._clock()
        marker = ProgressMarker(
            id=f"{session.session_id}-marker-{len(session.progress_markers)}",
            timestamp=now,
            description=description,
            objective_id=objective_id,
            metadata=metadata,
        )
        session.progress_markers.append(marker)
        session.last_activity = now

        logger.debug(
            f"Progress marker added: {description}",
            extra={"session_id": session.session_id, "marker_id": marker.id},
        )
        return marker

    async def acknowledge_break_reminder(self, session_id: str, index: int) -> BreakReminder:
        """Mark a break reminder as acknowledged. Repeating is a no-op."""
        async with self._locked(session_id) as session:
            self._ensure_open(session, "acknowledge_reminder")
            if not 0 <= index < len(session.break_reminders):
                raise BreakReminderNotFoundError(session_id, index)

            reminder = session.break_reminders[index]
            if not reminder.acknowledged:
                now = self._clock()
                reminder.acknowledged = True
                reminder.acknowledged_at = now
                session.last_activity = now
        return reminder

    # --- Voice integration ---

    async def record_voice_interaction(
        self,
        session_id: str,
        response_time: float | None = None,
        confidence: float | None = None,
    ) -> None:
        """Count one voice interaction against an open session.

        Unknown or finished sessions are ignored; voice events may arrive
        after a session was closed.
        """
        if self._store.get_active(session_id) is None:
            logger.debug(f"Voice interaction ignored for unknown session {session_id}")
            return

        async with self._store.lock(session_id):
            session = self._store.get_active(session_id)
            if session is None:
                return

            stats = session.statistics
            count = stats.interaction_count + 1
            average = stats.average_response_time
            if response_time:
                average = (average * (count - 1) + response_time) / count
            session.statistics = replace(
                stats,
                interaction_count=count,
                average_response_time=average,
            )
            session.last_activity = self._clock()

        logger.debug(
            "Voice interaction recorded",
            extra={
                "session_id": session_id,
                "interaction_count": count,
                "response_time": response_time,
                "confidence": confidence,
            },
        )

    async def link_voice_session(
        self,
        session_id: str,
        voice_session_id: str,
        conversation_context: dict[str, Any],
    ) -> None:
        """Attach a voice conversation to a session."""
        async with self._locked(session_id) as session:
            self._ensure_open(session, "link_voice")
            session.voice_session_id = voice_session_id
            session.conversation_context = dict(conversation_context)
            session.last_activity = self._clock()

        logger.debug(
            "Voice session linked to learning session",
            extra={"session_id": session_id, "voice_session_id": voice_session_id},
        )

    # --- Queries ---

    def get_session(self, session_id: str) -> LearningSession | None:
        """Get a session by id, whether open or finished."""
        return self._store.get(session_id)

    def get_child_active_sessions(self, child_id: str) -> list[LearningSession]:
        """Get all open sessions for a child."""
        return [s for s in self._store.active_sessions() if s.child_id == child_id]

    def search_sessions(
        self,
        criteria: SessionSearchCriteria | None = None,
    ) -> list[LearningSession]:
        """Search sessions by criteria.

        Only open sessions are searched unless ``include_finished`` is set.
        Results are ordered by creation time, then paginated.
        """
        criteria = criteria or SessionSearchCriteria()
        results = self._store.active_sessions()
        if criteria.include_finished:
            results.extend(self._store.finished_sessions())

        if criteria.child_id:
            results = [s for s in results if s.child_id == criteria.child_id]
        if criteria.session_type:
            results = [s for s in results if s.session_type == criteria.session_type]
        if criteria.state:
            results = [s for s in results if s.state == criteria.state]
        if criteria.subject:
            results = [s for s in results if s.subject == criteria.subject]
        if criteria.topic:
            results = [s for s in results if s.topic == criteria.topic]
        if criteria.date_from:
            date_from = ensure_utc(criteria.date_from)
            results = [s for s in results if s.created_at >= date_from]
        if criteria.date_to:
            date_to = ensure_utc(criteria.date_to)
            results = [s for s in results if s.created_at <= date_to]
        if criteria.tags:
            wanted = set(criteria.tags)
            results = [s for s in results if wanted.intersection(s.tags)]

        results.sort(key=lambda s: s.created_at)

        limit = min(
            criteria.limit or self._settings.search_default_limit,
            self._settings.search_max_limit,
        )
        return results[criteria.offset:criteria.offset + limit]

    def purge_finished_sessions(
        self,
        max_age_hours: float | None = None,
        keep: Iterable[str] = (),
    ) -> int:
        """Drop finished sessions idle longer than ``max_age_hours`` from history.

        Ids in ``keep`` are retained, e.g. sessions with unflushed evidence.

        Returns:
            Number of sessions evicted.
        """
        if max_age_hours is None:
            max_age_hours = self._settings.buffer_cleanup_max_age_hours
        cutoff = self._clock() - timedelta(hours=max_age_hours)
        evicted = self._store.evict_finished(cutoff, keep)

        if evicted:
            logger.info(
                f"Evicted finished sessions: {len(evicted)}",
                extra={"sessions_evicted": len(evicted), "max_age_hours": max_age_hours},
            )
        return len(evicted)

    # --- Timers ---

    async def on_timer_fired(self, session_id: str, purpose: TimerPurpose) -> None:
        """Apply a break timer firing.

        The session state is re-checked under the lock; a timer that outlived
        the state it was armed for appends nothing.
        """
        if self._store.get_active(session_id) is None:
            logger.debug(f"{purpose.value} timer fired for closed session {session_id}")
            return

        async with self._store.lock(session_id):
            session = self._store.get_active(session_id)
            if session is None:
                return

            if purpose == TimerPurpose.BREAK_END:
                expected = SessionState.BREAK
            else:
                expected = SessionState.ACTIVE
            if session.state != expected:
                logger.debug(
                    f"Stale {purpose.value} timer ignored for session {session_id}",
                    extra={"session_id": session_id, "state": session.state.value},
                )
                return

            if purpose == TimerPurpose.WARNING:
                reminder_type = ReminderType.GENTLE
                message = BREAK_WARNING_MESSAGES[session.age_group]
            elif purpose == TimerPurpose.BREAK:
                reminder_type = ReminderType.SUGGESTED
                message = BREAK_REMINDER_MESSAGES[session.age_group]
            else:
                reminder_type = ReminderType.GENTLE
                message = BREAK_END_MESSAGES[session.age_group]

            session.break_reminders.append(
                BreakReminder(
                    trigger_time=self._clock(),
                    reminder_type=reminder_type,
                    message=message,
                )
            )

        logger.info(
            f"Break {purpose.value} reminder sent for session {session_id}",
            extra={"session_id": session_id, "age_group": session.age_group.value},
        )

    # --- Private methods ---

    @asynccontextmanager
    async def _locked(self, session_id: str) -> AsyncIterator[LearningSession]:
        """Hold the session's lock and yield the session."""
        if session_id not in self._store:
            raise SessionNotFoundError(session_id)
        async with self._store.lock(session_id):
            session = self._store.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            yield session

    @staticmethod
    def _ensure_open(session: LearningSession, operation: str) -> None:
        if session.state.is_terminal:
            raise InvalidTransitionError(session.session_id, session.state.value, operation)

    @staticmethod
    def _close_break(session: LearningSession, now: datetime) -> None:
        if session.current_break_start is not None:
            session.total_break_time += elapsed_ms(session.current_break_start, now)
            session.current_break_start = None

    async def _notify_completed(self, session: LearningSession) -> None:
        for listener in list(self._completion_listeners):
            try:
                await listener(session)
            except Exception:
                logger.exception(
                    f"Completion listener failed for session {session.session_id}",
                    extra={"session_id": session.session_id},
                )


def _merge_settings(
    settings: SessionSettings,
    update: SessionSettingsUpdate | None,
) -> SessionSettings:
    if update is None:
        return settings
    return replace(settings, **update.model_dump(exclude_none=True))
