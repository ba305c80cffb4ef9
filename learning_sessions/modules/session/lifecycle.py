"""Session state machine: which events are legal from which states."""

from enum import Enum

from learning_sessions.modules.session.interface import LearningSession
from learning_sessions.shared.exceptions import InvalidTransitionError
from learning_sessions.shared.models import SessionState


class SessionEvent(str, Enum):
    """Lifecycle events a caller can issue."""

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    START_BREAK = "start_break"
    COMPLETE = "complete"
    ABANDON = "abandon"


_OPEN_STATES = frozenset({SessionState.ACTIVE, SessionState.PAUSED, SessionState.BREAK})

# event -> (legal source states, target state)
TRANSITIONS: dict[SessionEvent, tuple[frozenset[SessionState], SessionState]] = {
    SessionEvent.START: (frozenset({SessionState.NOT_STARTED}), SessionState.ACTIVE),
    SessionEvent.PAUSE: (frozenset({SessionState.ACTIVE}), SessionState.PAUSED),
    SessionEvent.RESUME: (
        frozenset({SessionState.PAUSED, SessionState.BREAK}),
        SessionState.ACTIVE,
    ),
    SessionEvent.START_BREAK: (frozenset({SessionState.ACTIVE}), SessionState.BREAK),
    SessionEvent.COMPLETE: (_OPEN_STATES, SessionState.COMPLETED),
    SessionEvent.ABANDON: (_OPEN_STATES, SessionState.ABANDONED),
}


def can_transition(state: SessionState, event: SessionEvent) -> bool:
    sources, _ = TRANSITIONS[event]
    return state in sources


def next_state(session: LearningSession, event: SessionEvent) -> SessionState:
    """Target state for ``event``, validating it against the current state.

    Raises:
        InvalidTransitionError: If the event is not legal from the current
            state. The session is not touched.
    """
    if not can_transition(session.state, event):
        raise InvalidTransitionError(
            session.session_id,
            session.state.value,
            event.value,
        )
    return TRANSITIONS[event][1]
