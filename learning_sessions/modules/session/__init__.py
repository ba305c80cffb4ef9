"""Session Module - Learning session lifecycle management.

Usage:
    # Recommended: use the service registry (shared store and scheduler)
    from learning_sessions.modules.session import get_session_service
    service = get_session_service()

    # Direct construction (tests, custom wiring)
    from learning_sessions.modules.session import LearningSessionService, SessionStore
    service = LearningSessionService(store=SessionStore())
"""

from learning_sessions.modules.session.break_scheduler import BreakScheduler, TimerPurpose
from learning_sessions.modules.session.interface import (
    BreakReminder,
    IAgeResolver,
    ISessionService,
    LearningObjective,
    LearningSession,
    ProgressMarker,
    ProgressMarkerMetadata,
    SessionSettings,
    SessionStatistics,
    SessionTimingConfig,
)
from learning_sessions.modules.session.lifecycle import SessionEvent
from learning_sessions.modules.session.schemas import (
    CreateSessionRequest,
    ObjectiveProgressUpdate,
    ObjectiveTemplate,
    SessionSearchCriteria,
    SessionSettingsUpdate,
    UpdateSessionRequest,
)
from learning_sessions.modules.session.service import LearningSessionService
from learning_sessions.modules.session.statistics import recompute_statistics
from learning_sessions.modules.session.store import SessionStore
from learning_sessions.modules.session.timing import AGE_TIMING_CONFIGS, StaticAgeResolver
from learning_sessions.shared.models import AgeGroup, ReminderType, SessionState, SessionType

# Registry-based service getter (recommended)
from learning_sessions.shared.service_registry import get_session_service

__all__ = [
    # Interface types
    "ISessionService",
    "IAgeResolver",
    "LearningSession",
    "LearningObjective",
    "ProgressMarker",
    "ProgressMarkerMetadata",
    "BreakReminder",
    "SessionSettings",
    "SessionStatistics",
    "SessionTimingConfig",
    # Enums (re-exported for convenience)
    "AgeGroup",
    "ReminderType",
    "SessionEvent",
    "SessionState",
    "SessionType",
    "TimerPurpose",
    # Requests
    "CreateSessionRequest",
    "ObjectiveProgressUpdate",
    "ObjectiveTemplate",
    "SessionSearchCriteria",
    "SessionSettingsUpdate",
    "UpdateSessionRequest",
    # Implementations
    "BreakScheduler",
    "LearningSessionService",
    "SessionStore",
    "StaticAgeResolver",
    "AGE_TIMING_CONFIGS",
    "recompute_statistics",
    # Factory function
    "get_session_service",
]
