"""Test configuration and fixtures."""

import sys
from pathlib import Path

# Load environment variables before any imports that need them
from dotenv import load_dotenv
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

# Ensure the package is importable without installation
sys.path.insert(0, str(project_root))

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from learning_sessions.modules.progress.interface import ProgressSummary


class FakeClock:
    """Manually advanced clock injected into services."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset scheduler, flag overrides and registry around every test."""
    from learning_sessions.jobs.scheduler import reset_scheduler
    from learning_sessions.shared.feature_flags import get_feature_flags
    from learning_sessions.shared.service_registry import get_service_registry

    reset_scheduler()
    get_feature_flags().clear_all_overrides()
    get_service_registry().reset()
    yield
    reset_scheduler()
    get_feature_flags().clear_all_overrides()
    get_service_registry().reset()


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock starting at a fixed UTC instant."""
    return FakeClock()


@pytest.fixture
def mock_progress_tracker() -> MagicMock:
    """Mock progress-tracking collaborator."""
    tracker = MagicMock()
    tracker.track_session_progress = AsyncMock(
        side_effect=lambda session, voice, photos: ProgressSummary(
            session_id=session.session_id,
            overall_progress=0.5,
        )
    )
    tracker.add_voice_interaction_data = AsyncMock(return_value=None)
    tracker.add_photo_assessment_result = AsyncMock(return_value=None)
    tracker.get_session_progress = MagicMock(return_value={"overall_progress": 0.5})
    tracker.generate_progress_analytics = AsyncMock(return_value={"sessions": 3})
    return tracker
