"""Unit tests for break timers."""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from learning_sessions.jobs.scheduler import JobScheduler
from learning_sessions.modules.session.break_scheduler import BreakScheduler, TimerPurpose
from learning_sessions.modules.session.interface import LearningSession, SessionSettings
from learning_sessions.modules.session.timing import get_timing_config
from learning_sessions.shared.feature_flags import FeatureFlags, get_feature_flags
from learning_sessions.shared.models import AgeGroup, SessionState, SessionType


def pending_job(job_scheduler: JobScheduler, key: str):
    return job_scheduler.scheduler.get_job(key)


async def dispatch(job):
    """Run a job the way the executor would."""
    await job.func(*job.args, **job.kwargs)


class TestBreakScheduler:
    """Tests for BreakScheduler."""

    @pytest.fixture
    def job_scheduler(self) -> JobScheduler:
        return JobScheduler()

    @pytest.fixture
    def handler(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def breaks(self, job_scheduler, handler) -> BreakScheduler:
        scheduler = BreakScheduler(job_scheduler)
        scheduler.bind(handler)
        return scheduler

    @pytest.fixture
    def session(self) -> LearningSession:
        return LearningSession(
            session_id="sess-1",
            child_id="child-1",
            age_group=AgeGroup.AGES_6_TO_9,
            session_type=SessionType.LESSON,
            title="Phonics",
            subject="reading",
            timing_config=get_timing_config(AgeGroup.AGES_6_TO_9),
            state=SessionState.ACTIVE,
        )

    def test_timer_key(self):
        assert BreakScheduler.timer_key("abc", TimerPurpose.BREAK_END) == "abc-break-end"

    def test_arm_active_timers(self, breaks, job_scheduler, session, clock):
        breaks.arm_active_timers(session, clock.now)

        warning = pending_job(job_scheduler, "sess-1-warning")
        reminder = pending_job(job_scheduler, "sess-1-break")
        assert warning.trigger.run_date == clock.now + timedelta(minutes=13)
        assert reminder.trigger.run_date == clock.now + timedelta(minutes=15)
        assert breaks.pending_timers("sess-1") == [TimerPurpose.WARNING, TimerPurpose.BREAK]

    def test_warning_not_negative(self, breaks, job_scheduler, session, clock):
        session.timing_config = type(session.timing_config)(
            recommended_duration=5,
            max_duration=10,
            break_interval=1,
            break_duration=1,
            warning_before_break=3,
        )

        breaks.arm_active_timers(session, clock.now)

        assert pending_job(job_scheduler, "sess-1-warning").trigger.run_date == clock.now

    def test_arm_break_end_replaces_active_timers(self, breaks, job_scheduler, session, clock):
        breaks.arm_active_timers(session, clock.now)

        breaks.arm_break_end_timer(session, clock.now)

        assert breaks.pending_timers("sess-1") == [TimerPurpose.BREAK_END]
        assert not job_scheduler.has_job("sess-1-warning")
        end = pending_job(job_scheduler, "sess-1-break-end")
        assert end.trigger.run_date == clock.now + timedelta(minutes=5)

    def test_cancel(self, breaks, job_scheduler, session, clock):
        breaks.arm_active_timers(session, clock.now)

        assert breaks.cancel("sess-1") == 2
        assert breaks.cancel("sess-1") == 0
        assert job_scheduler.get_jobs() == []

    def test_disabled_by_feature_flag(self, breaks, job_scheduler, session, clock):
        get_feature_flags().disable(FeatureFlags.ENABLE_BREAK_REMINDERS)

        breaks.arm_active_timers(session, clock.now)

        assert breaks.pending_timers("sess-1") == []
        assert job_scheduler.get_jobs() == []

    def test_disabled_by_session_setting(self, breaks, session, clock):
        session.settings = SessionSettings(break_reminders_enabled=False)

        breaks.arm_break_end_timer(session, clock.now)

        assert breaks.pending_timers("sess-1") == []

    @pytest.mark.asyncio
    async def test_fire_posts_to_handler_once(self, breaks, job_scheduler, handler, session, clock):
        breaks.arm_active_timers(session, clock.now)
        job = pending_job(job_scheduler, "sess-1-warning")

        await dispatch(job)
        await dispatch(job)

        handler.assert_awaited_once_with("sess-1", TimerPurpose.WARNING)
        assert breaks.pending_timers("sess-1") == [TimerPurpose.BREAK]

    @pytest.mark.asyncio
    async def test_superseded_timer_ignored(self, breaks, job_scheduler, handler, session, clock):
        breaks.arm_active_timers(session, clock.now)
        old_job = pending_job(job_scheduler, "sess-1-break")

        breaks.arm_active_timers(session, clock.now + timedelta(minutes=4))
        await dispatch(old_job)

        handler.assert_not_awaited()
        assert breaks.pending_timers("sess-1") == [TimerPurpose.WARNING, TimerPurpose.BREAK]

    @pytest.mark.asyncio
    async def test_cancelled_timer_ignored(self, breaks, job_scheduler, handler, session, clock):
        breaks.arm_active_timers(session, clock.now)
        job = pending_job(job_scheduler, "sess-1-break")

        breaks.cancel("sess-1")
        await dispatch(job)

        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_errors_swallowed(self, breaks, job_scheduler, handler, session, clock):
        handler.side_effect = RuntimeError("boom")
        breaks.arm_active_timers(session, clock.now)

        await dispatch(pending_job(job_scheduler, "sess-1-break"))

        handler.assert_awaited_once()
