"""Pydantic schemas for Session module requests."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, model_validator

from learning_sessions.shared.models import BaseSchema, SessionState, SessionType


class ObjectiveTemplate(BaseSchema):
    """Partial learning objective supplied at session creation."""

    subject: Optional[str] = None
    topic: Optional[str] = None
    description: str = ""
    target_level: int = Field(default=5, ge=1, le=10)


class SessionSettingsUpdate(BaseSchema):
    """Partial override of per-session settings."""

    voice_enabled: Optional[bool] = None
    tts_enabled: Optional[bool] = None
    break_reminders_enabled: Optional[bool] = None
    auto_save: Optional[bool] = None
    auto_resume: Optional[bool] = None


class CreateSessionRequest(BaseSchema):
    """Request schema for creating a session."""

    child_id: str = Field(min_length=1)
    session_type: SessionType
    title: str
    subject: str
    description: Optional[str] = None
    topic: Optional[str] = None
    learning_objectives: list[ObjectiveTemplate] = Field(default_factory=list)
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    settings: Optional[SessionSettingsUpdate] = None
    tags: list[str] = Field(default_factory=list)


class UpdateSessionRequest(BaseSchema):
    """Request schema for editing an open session."""

    title: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[SessionSettingsUpdate] = None
    notes: Optional[str] = None
    parent_notes: Optional[str] = None
    tags: Optional[list[str]] = None


class ObjectiveProgressUpdate(BaseSchema):
    """Progress reported for one learning objective."""

    model_config = ConfigDict(extra="forbid")

    completed: Optional[bool] = None
    attempts: Optional[int] = Field(default=None, ge=0)
    success_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class SessionSearchCriteria(BaseSchema):
    """Filters for session search. Unset fields do not filter."""

    child_id: Optional[str] = None
    session_type: Optional[SessionType] = None
    state: Optional[SessionState] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    tags: Optional[list[str]] = None
    include_finished: bool = False
    limit: Optional[int] = Field(default=None, gt=0)
    offset: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_date_range(self) -> "SessionSearchCriteria":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self
