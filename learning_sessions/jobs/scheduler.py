"""Background job scheduler for the session engine.

This module provides a centralized scheduler for deferred and periodic work:
- One-shot break warning / break / break-end timers per session
- Periodic sweep of leaked progress buffers

The scheduler uses APScheduler with AsyncIO support so job callbacks run on
the same event loop as the session service.
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from learning_sessions.shared.config import get_settings
from learning_sessions.shared.feature_flags import FeatureFlags, get_feature_flags

logger = logging.getLogger(__name__)


class JobScheduler:
    """Centralized background job scheduler.

    Usage:
        scheduler = JobScheduler()
        scheduler.start()

        # One-shot job at a point in time
        scheduler.add_job(my_async_func, run_at=when, job_id="abc-warning")

        # Periodic job
        scheduler.schedule_buffer_cleanup()
    """

    def __init__(self):
        """Initialize the job scheduler."""
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._settings = get_settings()
        self._flags = get_feature_flags()

    @property
    def scheduler(self) -> AsyncIOScheduler:
        """Get or create the APScheduler instance."""
        if self._scheduler is None:
            jobstores = {
                'default': MemoryJobStore()
            }
            executors = {
                'default': AsyncIOExecutor()
            }
            job_defaults = {
                'coalesce': True,  # Combine missed executions
                'max_instances': 1,  # Prevent concurrent runs of same job
                'misfire_grace_time': self._settings.scheduler_misfire_grace_seconds,
            }

            self._scheduler = AsyncIOScheduler(
                jobstores=jobstores,
                executors=executors,
                job_defaults=job_defaults,
                timezone='UTC',
            )
        return self._scheduler

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self._is_running and self._scheduler is not None

    def start(self, force: bool = False) -> None:
        """Start the background scheduler.

        Only starts if the FF_ENABLE_BACKGROUND_JOBS feature flag is enabled,
        unless ``force`` is set by a caller whose own jobs need the loop.
        Jobs added before start are held and run once the scheduler starts.
        """
        if not force and not self._flags.is_enabled(FeatureFlags.ENABLE_BACKGROUND_JOBS):
            logger.info("Background jobs disabled by feature flag")
            return

        if self._is_running:
            logger.warning("Scheduler already running")
            return

        try:
            self.scheduler.start()
            self._is_running = True
            logger.info("Background job scheduler started")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete.
        """
        if not self._is_running or self._scheduler is None:
            return

        try:
            self._scheduler.shutdown(wait=wait)
            self._is_running = False
            logger.info("Background job scheduler stopped")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")
            raise

    def add_job(
        self,
        func: Callable,
        *,
        run_at: Optional[datetime] = None,
        hours: Optional[float] = None,
        minutes: Optional[float] = None,
        seconds: Optional[float] = None,
        job_id: Optional[str] = None,
        replace_existing: bool = True,
        **kwargs: Any,
    ) -> str:
        """Add a job to the scheduler.

        Args:
            func: The async function to execute.
            run_at: Run once at this moment.
            hours: Interval in hours.
            minutes: Interval in minutes.
            seconds: Interval in seconds.
            job_id: Unique identifier for the job.
            replace_existing: Replace if job_id already exists.
            **kwargs: Additional arguments passed to the job function.

        Returns:
            The job ID.

        Raises:
            ValueError: If no schedule is specified.
        """
        if run_at is not None:
            trigger = DateTrigger(run_date=run_at)
        elif hours or minutes or seconds:
            trigger = IntervalTrigger(
                hours=hours or 0,
                minutes=minutes or 0,
                seconds=seconds or 0,
            )
        else:
            raise ValueError("Must specify run_at, hours, minutes, or seconds")

        job_id = job_id or f"{func.__module__}.{func.__name__}"

        job = self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=replace_existing,
            kwargs=kwargs,
        )

        logger.debug(f"Scheduled job '{job_id}' with trigger: {trigger}")
        return job.id

    def remove_job(self, job_id: str) -> bool:
        """Remove a job from the scheduler.

        Args:
            job_id: The job ID to remove.

        Returns:
            True if job was removed, False if not found (already fired or
            never scheduled).
        """
        try:
            self.scheduler.remove_job(job_id)
            logger.debug(f"Removed job '{job_id}'")
            return True
        except JobLookupError:
            logger.debug(f"Job '{job_id}' not found")
            return False

    def has_job(self, job_id: str) -> bool:
        return self.scheduler.get_job(job_id) is not None

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get information about all scheduled jobs.

        Returns:
            List of job information dictionaries.
        """
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, 'next_run_time', None)
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run': next_run.isoformat() if next_run else None,
                'trigger': str(job.trigger),
            })
        return jobs

    def schedule_buffer_cleanup(
        self,
        interval_hours: Optional[float] = None,
        job_id: str = "progress-buffer-cleanup",
    ) -> Optional[str]:
        """Schedule the periodic sweep of leaked progress buffers.

        Skipped unless FF_ENABLE_BUFFER_CLEANUP is enabled.

        Args:
            interval_hours: Hours between sweeps (defaults to settings).
            job_id: Unique identifier for this job.

        Returns:
            The job ID, or None if the sweep is disabled.
        """
        if not self._flags.is_enabled(FeatureFlags.ENABLE_BUFFER_CLEANUP):
            logger.info("Progress buffer cleanup disabled by feature flag")
            return None

        from learning_sessions.jobs.tasks import run_buffer_cleanup

        return self.add_job(
            run_buffer_cleanup,
            hours=interval_hours or self._settings.buffer_cleanup_interval_hours,
            job_id=job_id,
        )


# Singleton instance
_scheduler_instance: Optional[JobScheduler] = None


@lru_cache(maxsize=1)
def get_scheduler() -> JobScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = JobScheduler()
    return _scheduler_instance


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler_instance
    if _scheduler_instance is not None:
        if _scheduler_instance.is_running:
            _scheduler_instance.shutdown(wait=False)
        _scheduler_instance = None
    get_scheduler.cache_clear()
