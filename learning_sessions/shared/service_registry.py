"""Unified service registry for dependency injection.

This module wires the session store, break scheduler, session service and
progress integration together so every caller shares one instance of each.

Usage:
    from learning_sessions.shared.service_registry import get_service_registry

    registry = get_service_registry()
    registry.configure_progress_tracker(tracker)
    await registry.startup()

    session_service = registry.get_session_service()
    integration = registry.get_progress_integration_service()
"""

from functools import lru_cache
from typing import TYPE_CHECKING
import logging

from learning_sessions.shared.exceptions import ServiceNotAvailableError
from learning_sessions.shared.feature_flags import is_break_reminders_enabled

if TYPE_CHECKING:
    from learning_sessions.jobs.scheduler import JobScheduler
    from learning_sessions.modules.progress.integration import SessionProgressIntegrationService
    from learning_sessions.modules.progress.interface import IProgressTracker
    from learning_sessions.modules.session.interface import IAgeResolver
    from learning_sessions.modules.session.service import LearningSessionService

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Service factory for the session engine.

    Features:
    - Lazy service instantiation
    - Pluggable external collaborators (age resolver, progress tracker)
    - Service instance caching
    """

    _instance: "ServiceRegistry | None" = None

    def __new__(cls) -> "ServiceRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._age_resolver: "IAgeResolver | None" = None
        self._progress_tracker: "IProgressTracker | None" = None
        self._session_service: "LearningSessionService | None" = None
        self._integration_service: "SessionProgressIntegrationService | None" = None
        self._initialized = True
        logger.info("ServiceRegistry initialized")

    def configure_age_resolver(self, resolver: "IAgeResolver") -> None:
        """Use ``resolver`` for sessions created from now on.

        Must be called before the session service is first requested.
        """
        if self._session_service is not None:
            raise RuntimeError("Session service already created; configure collaborators first")
        self._age_resolver = resolver

    def configure_progress_tracker(self, tracker: "IProgressTracker") -> None:
        """Register the progress-tracking collaborator."""
        if self._integration_service is not None:
            raise RuntimeError("Integration service already created; configure collaborators first")
        self._progress_tracker = tracker

    @property
    def progress_tracking_configured(self) -> bool:
        return self._progress_tracker is not None

    def get_scheduler(self) -> "JobScheduler":
        from learning_sessions.jobs.scheduler import get_scheduler

        return get_scheduler()

    def get_session_service(self) -> "LearningSessionService":
        """Get the session service instance."""
        if self._session_service is None:
            from learning_sessions.modules.session.break_scheduler import BreakScheduler
            from learning_sessions.modules.session.service import LearningSessionService

            self._session_service = LearningSessionService(
                age_resolver=self._age_resolver,
                break_scheduler=BreakScheduler(self.get_scheduler()),
            )
            logger.info("Created LearningSessionService")
        return self._session_service

    def get_progress_integration_service(self) -> "SessionProgressIntegrationService":
        """Get the progress integration service instance.

        Raises:
            ServiceNotAvailableError: If no progress tracker was configured.
        """
        if self._integration_service is None:
            if self._progress_tracker is None:
                raise ServiceNotAvailableError(
                    "progress_integration",
                    "no progress tracker configured",
                )
            from learning_sessions.modules.progress.integration import (
                SessionProgressIntegrationService,
            )

            self._integration_service = SessionProgressIntegrationService(
                self._progress_tracker,
                self.get_session_service(),
            )
            self._integration_service.setup_session_completion_hook()
            logger.info("Created SessionProgressIntegrationService")
        return self._integration_service

    async def startup(self) -> None:
        """Create services and start background jobs.

        Call from inside the running event loop.
        """
        self.get_session_service()
        if self._progress_tracker is not None:
            self.get_progress_integration_service()

        scheduler = self.get_scheduler()
        # Break timers live on the scheduler, so it runs whenever reminders are on
        scheduler.start(force=is_break_reminders_enabled())
        scheduler.schedule_buffer_cleanup()
        logger.info("Session engine started")

    async def shutdown(self) -> None:
        """Stop background jobs."""
        self.get_scheduler().shutdown(wait=False)
        logger.info("Session engine stopped")

    def reset(self) -> None:
        """Drop all cached services. For tests."""
        self._age_resolver = None
        self._progress_tracker = None
        self._session_service = None
        self._integration_service = None
        logger.info("ServiceRegistry reset")


@lru_cache
def get_service_registry() -> ServiceRegistry:
    """Get the singleton ServiceRegistry instance."""
    return ServiceRegistry()


def get_session_service() -> "LearningSessionService":
    """Get session service from the registry."""
    return get_service_registry().get_session_service()


def get_progress_integration_service() -> "SessionProgressIntegrationService":
    """Get progress integration service from the registry."""
    return get_service_registry().get_progress_integration_service()
