"""Age-tiered timing policy and break reminder copy."""

import logging

from learning_sessions.modules.session.interface import SessionTimingConfig
from learning_sessions.shared.config import get_settings
from learning_sessions.shared.models import AgeGroup

logger = logging.getLogger(__name__)


AGE_TIMING_CONFIGS: dict[AgeGroup, SessionTimingConfig] = {
    AgeGroup.AGES_6_TO_9: SessionTimingConfig(
        recommended_duration=20,
        max_duration=30,
        break_interval=15,
        break_duration=5,
        warning_before_break=2,
    ),
    AgeGroup.AGES_10_TO_13: SessionTimingConfig(
        recommended_duration=30,
        max_duration=45,
        break_interval=20,
        break_duration=5,
        warning_before_break=3,
    ),
    AgeGroup.AGES_14_TO_16: SessionTimingConfig(
        recommended_duration=40,
        max_duration=60,
        break_interval=25,
        break_duration=10,
        warning_before_break=5,
    ),
}


BREAK_WARNING_MESSAGES: dict[AgeGroup, str] = {
    AgeGroup.AGES_6_TO_9: (
        "We've been learning for a while! In a few minutes, it might be time for a little break."
    ),
    AgeGroup.AGES_10_TO_13: (
        "You've been working hard! A break is coming up soon to help you stay focused."
    ),
    AgeGroup.AGES_14_TO_16: (
        "Great progress! Consider taking a break in a few minutes to keep your mind fresh."
    ),
}

BREAK_REMINDER_MESSAGES: dict[AgeGroup, str] = {
    AgeGroup.AGES_6_TO_9: (
        "Time for a fun break! Let's pause our learning and do something active for a few minutes."
    ),
    AgeGroup.AGES_10_TO_13: (
        "Break time! Step away from your studies for a bit and give your brain a rest."
    ),
    AgeGroup.AGES_14_TO_16: (
        "It's time for a break. Taking regular breaks helps improve focus and retention."
    ),
}

BREAK_END_MESSAGES: dict[AgeGroup, str] = {
    AgeGroup.AGES_6_TO_9: "Break time is over! Ready to continue our fun learning adventure?",
    AgeGroup.AGES_10_TO_13: "Hope you enjoyed your break! Ready to get back to learning?",
    AgeGroup.AGES_14_TO_16: "Break's over! Time to get back to your studies with renewed focus.",
}


def get_timing_config(age_group: AgeGroup) -> SessionTimingConfig:
    """Timing policy for an age bracket.

    ``SessionTimingConfig`` is frozen, so the instance handed to a session
    cannot be changed underneath it.

    Raises:
        KeyError: If the bracket has no policy.
    """
    return AGE_TIMING_CONFIGS[age_group]


class StaticAgeResolver:
    """In-memory age resolver.

    Children are registered explicitly; unknown children fall back to the
    configured default bracket.
    """

    def __init__(self, default_age_group: AgeGroup | str | None = None) -> None:
        default = default_age_group or get_settings().default_age_group
        self._default = AgeGroup(default)
        self._age_groups: dict[str, AgeGroup] = {}

    def register(self, child_id: str, age_group: AgeGroup | str) -> None:
        self._age_groups[child_id] = AgeGroup(age_group)

    async def get_age_group(self, child_id: str) -> AgeGroup:
        age_group = self._age_groups.get(child_id)
        if age_group is None:
            logger.debug(
                f"No age bracket registered for child {child_id}, using default",
                extra={"child_id": child_id, "age_group": self._default.value},
            )
            return self._default
        return age_group
