"""Shared utilities and common code."""

from learning_sessions.shared.config import Settings, get_settings
from learning_sessions.shared.models import (
    AgeGroup,
    BaseSchema,
    ReminderType,
    SessionState,
    SessionType,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Models
    "BaseSchema",
    # Enums
    "AgeGroup",
    "ReminderType",
    "SessionState",
    "SessionType",
]
