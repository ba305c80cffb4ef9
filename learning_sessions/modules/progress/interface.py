"""Progress Module - evidence records and the progress-tracking contract."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from learning_sessions.modules.session.interface import LearningSession


@dataclass
class VoiceInteractionRecord:
    """Aggregated voice evidence produced during a session."""

    session_id: str
    interaction_count: int
    average_response_time: float
    confidence_level: float  # 0-1
    topics_discussed: list[str] = field(default_factory=list)
    skills_demonstrated: list[str] = field(default_factory=list)
    language_complexity: float = 0.0  # 0-10


@dataclass
class PhotoAssessmentRecord:
    """Result of assessing a photo of the child's work."""

    assessment_id: str
    subject: str
    topic: str
    correctness_score: float  # 0-1
    completion_level: float  # 0-1
    timestamp: datetime
    skills_assessed: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)


@dataclass
class ProgressSummary:
    """What the progress tracker reports back for a consolidated session push."""

    session_id: str
    overall_progress: float = 0.0
    skill_mastery_updates: list[dict[str, Any]] = field(default_factory=list)


class IProgressTracker(Protocol):
    """Progress-tracking collaborator.

    Calls may suspend on network or database I/O and may raise.
    """

    async def track_session_progress(
        self,
        session: LearningSession,
        voice_interactions: list[VoiceInteractionRecord],
        photo_assessments: list[PhotoAssessmentRecord],
    ) -> ProgressSummary:
        """Consolidated push of a session and its evidence."""
        ...

    async def add_voice_interaction_data(
        self,
        session_id: str,
        record: VoiceInteractionRecord,
    ) -> None:
        """Live forward of one voice record."""
        ...

    async def add_photo_assessment_result(
        self,
        session_id: str,
        record: PhotoAssessmentRecord,
    ) -> None:
        """Live forward of one photo assessment."""
        ...

    def get_session_progress(self, session_id: str) -> Any:
        """Tracker-side view of a session's progress, if any."""
        ...

    async def generate_progress_analytics(
        self,
        child_id: str,
        start: datetime,
        end: datetime,
    ) -> Any:
        """Cross-session analytics for a child over a time range."""
        ...
