"""Session statistics and engagement scoring.

Statistics are always rebuilt from the session's raw data rather than
patched in place, so every caller sees the same numbers for the same
session snapshot.
"""

import math
from dataclasses import replace
from datetime import datetime

from learning_sessions.modules.session.interface import LearningSession, SessionStatistics
from learning_sessions.shared.datetime_utils import elapsed_ms
from learning_sessions.shared.models import SessionState

# Engagement score weights (sum to 100)
COMPLETION_WEIGHT = 40
INTERACTION_WEIGHT = 30
BREAK_COMPLIANCE_WEIGHT = 20
COMPLETION_BONUS = 10

# Expected interactions per active minute
TARGET_INTERACTIONS_PER_MINUTE = 2

MS_PER_MINUTE = 60 * 1000


def calculate_completion_rate(session: LearningSession) -> float:
    """Share of objectives completed; a session without objectives is complete."""
    total = len(session.learning_objectives)
    if total == 0:
        return 1.0
    completed = sum(1 for obj in session.learning_objectives if obj.completed)
    return completed / total


def calculate_engagement_score(
    session: LearningSession,
    active_duration_ms: int,
    interaction_count: int,
) -> int:
    """Bounded 0-100 engagement heuristic.

    40 points for objective completion, 30 for interaction density against a
    target of two interactions per active minute, 20 for acknowledged break
    reminders and 10 for reaching the completed state. Rounded half-up.
    """
    score = calculate_completion_rate(session) * COMPLETION_WEIGHT

    target_interactions = active_duration_ms / MS_PER_MINUTE * TARGET_INTERACTIONS_PER_MINUTE
    score += min(interaction_count / max(target_interactions, 1), 1) * INTERACTION_WEIGHT

    reminders = session.break_reminders
    acknowledged = sum(1 for reminder in reminders if reminder.acknowledged)
    score += acknowledged / max(len(reminders), 1) * BREAK_COMPLIANCE_WEIGHT

    if session.state == SessionState.COMPLETED:
        score += COMPLETION_BONUS

    return max(0, min(100, math.floor(score + 0.5)))


def recompute_statistics(session: LearningSession, now: datetime) -> SessionStatistics:
    """Build fresh statistics for ``session`` as of ``now``.

    Interaction count and average response time are counters fed by the voice
    pipeline; they are carried over. Everything else is derived.
    """
    current = session.statistics

    total_duration = 0
    if session.started_at is not None:
        end = session.completed_at or now
        total_duration = elapsed_ms(session.started_at, end)
    active_duration = max(0, total_duration - session.total_break_time)

    objectives = session.learning_objectives
    return replace(
        current,
        total_duration=total_duration,
        active_duration=active_duration,
        break_duration=session.total_break_time,
        objectives_completed=sum(1 for obj in objectives if obj.completed),
        objectives_attempted=sum(1 for obj in objectives if obj.attempts > 0),
        completion_rate=calculate_completion_rate(session),
        engagement_score=calculate_engagement_score(
            session,
            active_duration,
            current.interaction_count,
        ),
    )
