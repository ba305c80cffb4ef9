"""Base models and common types used across modules."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


# Common enums and types


class AgeGroup(str, Enum):
    """Child age brackets used to select timing policy."""

    AGES_6_TO_9 = "ages6to9"
    AGES_10_TO_13 = "ages10to13"
    AGES_14_TO_16 = "ages14to16"


class SessionType(str, Enum):
    """Type of learning session."""

    ASSESSMENT = "assessment"
    LESSON = "lesson"
    PRACTICE = "practice"
    REVIEW = "review"


class SessionState(str, Enum):
    """Learning session lifecycle state."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    PAUSED = "paused"
    BREAK = "break"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ABANDONED)


class ReminderType(str, Enum):
    """How strongly a break reminder asks for a pause."""

    GENTLE = "gentle"
    SUGGESTED = "suggested"
    REQUIRED = "required"
