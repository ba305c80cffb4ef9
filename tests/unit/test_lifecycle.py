"""Tests for the session state machine."""

import pytest

from learning_sessions.modules.session.interface import LearningSession
from learning_sessions.modules.session.lifecycle import (
    SessionEvent,
    can_transition,
    next_state,
)
from learning_sessions.modules.session.timing import get_timing_config
from learning_sessions.shared.exceptions import InvalidStateError, InvalidTransitionError
from learning_sessions.shared.models import AgeGroup, SessionState, SessionType


def make_session(state: SessionState) -> LearningSession:
    return LearningSession(
        session_id="sess-1",
        child_id="child-1",
        age_group=AgeGroup.AGES_10_TO_13,
        session_type=SessionType.LESSON,
        title="Fractions",
        subject="math",
        timing_config=get_timing_config(AgeGroup.AGES_10_TO_13),
        state=state,
    )


LEGAL = [
    (SessionState.NOT_STARTED, SessionEvent.START, SessionState.ACTIVE),
    (SessionState.ACTIVE, SessionEvent.PAUSE, SessionState.PAUSED),
    (SessionState.PAUSED, SessionEvent.RESUME, SessionState.ACTIVE),
    (SessionState.BREAK, SessionEvent.RESUME, SessionState.ACTIVE),
    (SessionState.ACTIVE, SessionEvent.START_BREAK, SessionState.BREAK),
    (SessionState.ACTIVE, SessionEvent.COMPLETE, SessionState.COMPLETED),
    (SessionState.PAUSED, SessionEvent.COMPLETE, SessionState.COMPLETED),
    (SessionState.BREAK, SessionEvent.COMPLETE, SessionState.COMPLETED),
    (SessionState.ACTIVE, SessionEvent.ABANDON, SessionState.ABANDONED),
    (SessionState.PAUSED, SessionEvent.ABANDON, SessionState.ABANDONED),
    (SessionState.BREAK, SessionEvent.ABANDON, SessionState.ABANDONED),
]

ILLEGAL = [
    (SessionState.ACTIVE, SessionEvent.START),
    (SessionState.PAUSED, SessionEvent.START),
    (SessionState.NOT_STARTED, SessionEvent.PAUSE),
    (SessionState.PAUSED, SessionEvent.PAUSE),
    (SessionState.BREAK, SessionEvent.PAUSE),
    (SessionState.NOT_STARTED, SessionEvent.RESUME),
    (SessionState.ACTIVE, SessionEvent.RESUME),
    (SessionState.PAUSED, SessionEvent.START_BREAK),
    (SessionState.BREAK, SessionEvent.START_BREAK),
    (SessionState.NOT_STARTED, SessionEvent.COMPLETE),
    (SessionState.NOT_STARTED, SessionEvent.ABANDON),
    (SessionState.COMPLETED, SessionEvent.COMPLETE),
    (SessionState.COMPLETED, SessionEvent.ABANDON),
    (SessionState.COMPLETED, SessionEvent.RESUME),
    (SessionState.ABANDONED, SessionEvent.START),
    (SessionState.ABANDONED, SessionEvent.COMPLETE),
]


class TestTransitions:
    """Tests for the transition table."""

    @pytest.mark.parametrize("state,event,target", LEGAL)
    def test_legal_transition(self, state, event, target):
        assert can_transition(state, event) is True
        assert next_state(make_session(state), event) == target

    @pytest.mark.parametrize("state,event", ILLEGAL)
    def test_illegal_transition(self, state, event):
        session = make_session(state)

        assert can_transition(state, event) is False
        with pytest.raises(InvalidTransitionError) as exc_info:
            next_state(session, event)

        assert exc_info.value.current_state == state.value
        assert exc_info.value.event == event.value
        assert session.state == state

    def test_error_message_and_details(self):
        """Test the error names the state and the rejected event."""
        with pytest.raises(InvalidStateError) as exc_info:
            next_state(make_session(SessionState.COMPLETED), SessionEvent.PAUSE)

        error = exc_info.value
        assert error.message == "Cannot pause session in state: completed"
        assert error.to_dict() == {
            "error": "InvalidTransitionError",
            "message": "Cannot pause session in state: completed",
            "details": {"session_id": "sess-1", "state": "completed", "event": "pause"},
        }

    def test_terminal_states(self):
        assert SessionState.COMPLETED.is_terminal
        assert SessionState.ABANDONED.is_terminal
        assert not SessionState.BREAK.is_terminal
        assert not SessionState.NOT_STARTED.is_terminal
