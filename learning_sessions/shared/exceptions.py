"""Shared exceptions for the learning session engine.

This module defines a consistent exception hierarchy used across all modules
to standardize error handling and provide clear error semantics.
"""

from typing import Any


class LearnerException(Exception):
    """Base exception for all application errors.

    All domain-specific exceptions should inherit from this class
    to enable consistent error handling at the API layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ===================
# Resource Errors
# ===================

class ResourceNotFoundError(LearnerException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class SessionNotFoundError(ResourceNotFoundError):
    """Raised when a session is not found."""

    def __init__(self, session_id: str) -> None:
        super().__init__("Session", session_id)


class ObjectiveNotFoundError(ResourceNotFoundError):
    """Raised when a learning objective is not part of the session."""

    def __init__(self, objective_id: str) -> None:
        super().__init__("LearningObjective", objective_id)


class BreakReminderNotFoundError(ResourceNotFoundError):
    """Raised when a break reminder index is out of range."""

    def __init__(self, session_id: str, index: int) -> None:
        super().__init__("BreakReminder", f"{session_id}#{index}")


# ===================
# State Errors
# ===================

class InvalidStateError(LearnerException):
    """Raised when an operation is invalid for the current state."""
    pass


class InvalidTransitionError(InvalidStateError):
    """Raised when a lifecycle event is not legal from the session's state."""

    def __init__(self, session_id: str, current_state: str, event: str) -> None:
        super().__init__(
            f"Cannot {event} session in state: {current_state}",
            {"session_id": session_id, "state": current_state, "event": event}
        )
        self.current_state = current_state
        self.event = event


# ===================
# Integration Errors
# ===================

class ExternalServiceError(LearnerException):
    """Raised when an external service call fails."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(
            f"External service error ({service}): {message}",
            {"service": service}
        )


class ProgressTrackingError(ExternalServiceError):
    """Raised when the progress-tracking collaborator fails."""

    def __init__(self, message: str) -> None:
        super().__init__("ProgressTracking", message)


# ===================
# Configuration Errors
# ===================

class ConfigurationError(LearnerException):
    """Raised when there's a configuration problem."""
    pass


class PolicyResolutionFailedError(ConfigurationError):
    """Raised when a child's age bracket cannot be resolved to a timing policy."""

    def __init__(self, child_id: str, reason: str) -> None:
        super().__init__(
            f"Could not resolve timing policy for child {child_id}: {reason}",
            {"child_id": child_id, "reason": reason}
        )


class ServiceNotAvailableError(LearnerException):
    """Raised when a service is not available."""

    def __init__(self, service: str, reason: str | None = None) -> None:
        message = f"Service '{service}' is not available"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"service": service, "reason": reason})
