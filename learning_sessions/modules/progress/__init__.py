"""Progress Module - buffering and forwarding of session evidence."""

from learning_sessions.modules.progress.integration import SessionProgressIntegrationService
from learning_sessions.modules.progress.interface import (
    IProgressTracker,
    PhotoAssessmentRecord,
    ProgressSummary,
    VoiceInteractionRecord,
)
from learning_sessions.shared.service_registry import get_progress_integration_service

__all__ = [
    "IProgressTracker",
    "PhotoAssessmentRecord",
    "ProgressSummary",
    "VoiceInteractionRecord",
    "SessionProgressIntegrationService",
    "get_progress_integration_service",
]
