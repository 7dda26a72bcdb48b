import hashlib
from unittest.mock import MagicMock, patch

from app.services.feature_flags import ConfigBasedFeatureFlagService


def _bucket(user_id):
    digest = hashlib.md5(str(user_id).encode()).digest()
    return int.from_bytes(digest[:4], byteorder="big") % 100


class TestFeatureFlagService:
    @patch("app.services.feature_flags.get_settings")
    def test_inference_disabled_global(self, mock_get_settings):
        mock_settings = MagicMock()
        mock_settings.INFERENCE_KILL_SWITCH = False
        mock_settings.INFERENCE_ENABLED = False
        mock_get_settings.return_value = mock_settings

        service = ConfigBasedFeatureFlagService()
        assert service.is_inference_enabled(1) is False

    @patch("app.services.feature_flags.get_settings")
    def test_internal_rollout_logic(self, mock_get_settings):
        mock_settings = MagicMock()
        mock_settings.INFERENCE_KILL_SWITCH = False
        mock_settings.INFERENCE_ENABLED = True
        mock_get_settings.return_value = mock_settings

        service = ConfigBasedFeatureFlagService(rollout_percentage=0.0)
        assert service.is_inference_enabled(1) is False

        service.set_rollout_percentage(100.0)
        assert service.is_inference_enabled(1) is True

    @patch("app.services.feature_flags.get_settings")
    def test_partial_rollout_is_consistent(self, mock_get_settings):
        mock_settings = MagicMock()
        mock_settings.INFERENCE_KILL_SWITCH = False
        mock_settings.INFERENCE_ENABLED = True
        mock_get_settings.return_value = mock_settings

        user_in = next(u for u in range(1, 1000) if _bucket(u) < 50)
        user_out = next(u for u in range(1, 1000) if _bucket(u) >= 50)

        service = ConfigBasedFeatureFlagService(rollout_percentage=50.0)
        assert service.is_inference_enabled(user_in) is True
        assert service.is_inference_enabled(user_out) is False
        # Same answer on every call
        assert service.is_inference_enabled(user_in) is True

    @patch("app.services.feature_flags.get_settings")
    def test_kill_switch_active(self, mock_get_settings):
        mock_settings = MagicMock()
        mock_settings.INFERENCE_KILL_SWITCH = True
        mock_get_settings.return_value = mock_settings

        service = ConfigBasedFeatureFlagService()
        assert service.is_kill_switch_active() is True
        assert service.is_inference_enabled(1) is False

    def test_rollout_percentage_bounds(self):
        service = ConfigBasedFeatureFlagService(rollout_percentage=150.0)
        assert service.rollout_percentage == 100.0

        service.set_rollout_percentage(-5)
        assert service.rollout_percentage == 0.0
