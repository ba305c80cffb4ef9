"""Feature flag management for session engine toggles.

Flags can be flipped without code changes, which lets operators switch off
background timers or the buffer sweep quickly.

Usage:
    from learning_sessions.shared.feature_flags import get_feature_flags, FeatureFlags

    flags = get_feature_flags()
    if flags.is_enabled(FeatureFlags.ENABLE_BREAK_REMINDERS):
        # Arm break timers
    else:
        # Sessions run without autonomous reminders

Environment Variables:
    FF_ENABLE_BACKGROUND_JOBS: Start the background job scheduler (default: false)
    FF_ENABLE_BREAK_REMINDERS: Arm break warning/break/break-end timers (default: true)
    FF_ENABLE_BUFFER_CLEANUP: Run the periodic pending-buffer sweep (default: false)
"""

from enum import Enum
from functools import lru_cache
import logging
import os

logger = logging.getLogger(__name__)


class FeatureFlags(str, Enum):
    """Available feature flags.

    Each flag corresponds to an environment variable with FF_ prefix.
    """

    ENABLE_BACKGROUND_JOBS = "enable_background_jobs"
    ENABLE_BREAK_REMINDERS = "enable_break_reminders"
    ENABLE_BUFFER_CLEANUP = "enable_buffer_cleanup"

    @property
    def env_key(self) -> str:
        """Get the environment variable name for this flag."""
        return f"FF_{self.value.upper()}"

    @property
    def default(self) -> bool:
        """Value used when neither an override nor the env var is set."""
        return self in _ENABLED_BY_DEFAULT


_ENABLED_BY_DEFAULT = frozenset({FeatureFlags.ENABLE_BREAK_REMINDERS})


class FeatureFlagManager:
    """Manages feature flags with environment variable and runtime overrides.

    Singleton that supports:
    - Environment variable configuration
    - Runtime overrides for testing
    - Logging of flag state changes
    """

    _instance: "FeatureFlagManager | None" = None

    def __new__(cls) -> "FeatureFlagManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._overrides: dict[str, bool] = {}
        self._initialized = True
        logger.info("FeatureFlagManager initialized")

    def is_enabled(self, flag: FeatureFlags) -> bool:
        """Check if a feature flag is enabled.

        Priority:
        1. Runtime overrides (set via enable/disable methods)
        2. Environment variables (FF_<FLAG_NAME>=true/false)
        3. The flag's default

        Args:
            flag: The feature flag to check

        Returns:
            True if the flag is enabled, False otherwise
        """
        if flag.value in self._overrides:
            return self._overrides[flag.value]

        env_value = os.getenv(flag.env_key)
        if env_value is None:
            return flag.default
        return env_value.lower() in ("true", "1", "yes", "on")

    def enable(self, flag: FeatureFlags) -> None:
        """Enable a feature flag at runtime."""
        self._overrides[flag.value] = True
        logger.info(f"Feature flag enabled: {flag.value}")

    def disable(self, flag: FeatureFlags) -> None:
        """Disable a feature flag at runtime."""
        self._overrides[flag.value] = False
        logger.info(f"Feature flag disabled: {flag.value}")

    def clear_override(self, flag: FeatureFlags) -> None:
        """Clear runtime override for a flag, reverting to environment variable."""
        if flag.value in self._overrides:
            del self._overrides[flag.value]
            logger.info(f"Feature flag override cleared: {flag.value}")

    def clear_all_overrides(self) -> None:
        """Clear all runtime overrides, reverting to environment variables."""
        self._overrides.clear()
        logger.info("All feature flag overrides cleared")

    def get_all_states(self) -> dict[str, bool]:
        """Get the current state of all feature flags.

        Returns:
            Dictionary of flag names to their enabled states
        """
        return {flag.value: self.is_enabled(flag) for flag in FeatureFlags}

    def __repr__(self) -> str:
        states = self.get_all_states()
        enabled = [k for k, v in states.items() if v]
        return f"FeatureFlagManager(enabled={enabled})"


@lru_cache
def get_feature_flags() -> FeatureFlagManager:
    """Get the singleton FeatureFlagManager instance."""
    return FeatureFlagManager()


def is_break_reminders_enabled() -> bool:
    """Check if break reminder timers are enabled."""
    return get_feature_flags().is_enabled(FeatureFlags.ENABLE_BREAK_REMINDERS)
