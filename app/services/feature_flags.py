"""
Feature flag service implementation.
Controls rollout of the inference tier and its kill switch.
"""
import hashlib

from app.config import get_settings
from app.models.interfaces import FeatureFlagService


class ConfigBasedFeatureFlagService(FeatureFlagService):
    """
    Feature flag service backed by application settings.
    Supports percentage-based rollout using consistent hashing.
    """

    def __init__(self, rollout_percentage: float = 100.0) -> None:
        """
        Initialize feature flag service.

        Args:
            rollout_percentage: Percentage of users to route to inference (0-100)
        """
        self._rollout_percentage = max(0.0, min(100.0, rollout_percentage))

    @property
    def rollout_percentage(self) -> float:
        return self._rollout_percentage

    def is_inference_enabled(self, user_id: int) -> bool:
        """
        Check if the inference tier may run for this user.

        Uses consistent hashing so the same user always lands in the same
        bucket.
        """
        settings = get_settings()

        # Global kill switch takes precedence
        if self.is_kill_switch_active():
            return False

        if not settings.INFERENCE_ENABLED:
            return False

        if self._rollout_percentage < 100.0:
            return self._is_user_in_rollout(user_id)

        return True

    def is_kill_switch_active(self) -> bool:
        """Check if the global inference kill switch is activated."""
        settings = get_settings()
        return settings.INFERENCE_KILL_SWITCH

    def _is_user_in_rollout(self, user_id: int) -> bool:
        """
        Determine if user is in the rollout percentage.
        Uses MD5 hash mod 100 for consistent assignment.
        """
        hash_bytes = hashlib.md5(str(user_id).encode()).digest()
        hash_value = int.from_bytes(hash_bytes[:4], byteorder="big")
        bucket = hash_value % 100
        return bucket < self._rollout_percentage

    def set_rollout_percentage(self, percentage: float) -> None:
        """Update rollout percentage (for dynamic configuration)."""
        self._rollout_percentage = max(0.0, min(100.0, percentage))
