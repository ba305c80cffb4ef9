"""Session Module - Learning session entities and service contracts."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol

from learning_sessions.shared.models import (
    AgeGroup,
    ReminderType,
    SessionState,
    SessionType,
)


@dataclass(frozen=True)
class SessionTimingConfig:
    """Age-appropriate pacing for a session. All values are minutes."""

    recommended_duration: int
    max_duration: int
    break_interval: int
    break_duration: int
    warning_before_break: int


@dataclass
class SessionSettings:
    """Per-session feature switches."""

    voice_enabled: bool = True
    tts_enabled: bool = True
    break_reminders_enabled: bool = True
    auto_save: bool = True
    auto_resume: bool = True


@dataclass
class LearningObjective:
    """A learning goal tracked within a session."""

    id: str
    subject: str
    topic: str
    description: str
    target_level: int = 5  # 1-10 skill level
    completed: bool = False
    completed_at: datetime | None = None
    attempts: int = 0
    success_rate: float = 0.0  # 0-1


@dataclass(frozen=True)
class ProgressMarkerMetadata:
    """Optional context attached to a progress marker."""

    interaction_count: int | None = None
    confidence_level: float | None = None
    skill_demonstrated: str | None = None
    needs_review: bool = False


@dataclass(frozen=True)
class ProgressMarker:
    """Immutable audit breadcrumb appended on every meaningful mutation."""

    id: str
    timestamp: datetime
    description: str
    objective_id: str | None = None
    metadata: ProgressMarkerMetadata | None = None


@dataclass
class BreakReminder:
    """A generated break message. Delivery is someone else's concern."""

    trigger_time: datetime
    reminder_type: ReminderType
    message: str
    acknowledged: bool = False
    acknowledged_at: datetime | None = None


@dataclass
class SessionStatistics:
    """Derived aggregates. Durations are milliseconds."""

    total_duration: int = 0
    active_duration: int = 0
    break_duration: int = 0
    interaction_count: int = 0
    objectives_completed: int = 0
    objectives_attempted: int = 0
    average_response_time: float = 0.0
    engagement_score: int = 0  # 0-100
    completion_rate: float = 0.0  # 0-1


@dataclass
class LearningSession:
    """A time-bounded learning session for one child (aggregate root)."""

    session_id: str
    child_id: str
    age_group: AgeGroup
    session_type: SessionType
    title: str
    subject: str
    timing_config: SessionTimingConfig
    state: SessionState = SessionState.NOT_STARTED
    description: str | None = None
    topic: str | None = None

    # Timing
    created_at: datetime | None = None
    started_at: datetime | None = None
    last_activity: datetime | None = None
    completed_at: datetime | None = None
    estimated_duration: int | None = None  # minutes
    current_break_start: datetime | None = None
    total_break_time: int = 0  # milliseconds

    # Content
    learning_objectives: list[LearningObjective] = field(default_factory=list)
    progress_markers: list[ProgressMarker] = field(default_factory=list)
    break_reminders: list[BreakReminder] = field(default_factory=list)
    voice_session_id: str | None = None
    conversation_context: dict[str, Any] | None = None

    statistics: SessionStatistics = field(default_factory=SessionStatistics)
    settings: SessionSettings = field(default_factory=SessionSettings)

    tags: list[str] = field(default_factory=list)
    notes: str | None = None
    parent_notes: str | None = None
    abandon_reason: str | None = None

    def find_objective(self, objective_id: str) -> LearningObjective | None:
        return next(
            (obj for obj in self.learning_objectives if obj.id == objective_id),
            None,
        )


# Listener invoked after a session reaches the completed state
CompletionListener = Callable[[LearningSession], Awaitable[None]]


class IAgeResolver(Protocol):
    """Resolves a child's age bracket. May suspend on a profile lookup."""

    async def get_age_group(self, child_id: str) -> AgeGroup:
        ...


class ISessionService(Protocol):
    """Interface for the learning session engine.

    Manages session lifecycle, objective tracking and break pacing.
    """

    async def create_session(self, request: Any) -> LearningSession:
        """Create a session in ``not_started`` using the child's timing policy."""
        ...

    async def start_session(self, session_id: str) -> LearningSession:
        """not_started -> active; arms break timers."""
        ...

    async def pause_session(self, session_id: str, reason: str | None = None) -> LearningSession:
        """active -> paused."""
        ...

    async def resume_session(self, session_id: str) -> LearningSession:
        """paused/break -> active."""
        ...

    async def start_break(
        self,
        session_id: str,
        break_type: ReminderType = ReminderType.SUGGESTED,
    ) -> LearningSession:
        """active -> break."""
        ...

    async def complete_session(
        self,
        session_id: str,
        completion_notes: str | None = None,
    ) -> LearningSession:
        """active/paused/break -> completed; finalizes statistics."""
        ...

    async def abandon_session(self, session_id: str, reason: str | None = None) -> LearningSession:
        """active/paused/break -> abandoned."""
        ...

    async def update_objective_progress(
        self,
        session_id: str,
        objective_id: str,
        update: Any,
    ) -> LearningSession:
        """Apply a completion/attempts/success-rate update to one objective."""
        ...

    def get_session(self, session_id: str) -> LearningSession | None:
        """Look up a session, open or finished."""
        ...

    def get_child_active_sessions(self, child_id: str) -> list[LearningSession]:
        """All open sessions for a child."""
        ...

    def search_sessions(self, criteria: Any) -> list[LearningSession]:
        """Filtered, paginated search."""
        ...
