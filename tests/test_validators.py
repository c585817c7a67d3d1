"""
Tests for Configuration Validation

Tests cover required backend settings, session completeness, numeric
bounds, the moderation band ordering, and the startup summary.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.validators import get_config_summary, validate_settings
from utils.exceptions import ConfigurationError


class TestValidateSettings:
    """Tests for validate_settings."""

    def test_valid_configuration(self, mock_settings):
        """A complete configuration validates."""
        assert validate_settings() is True

    def test_missing_backend_url(self, mock_settings):
        """The backend URL is required."""
        mock_settings.SUPABASE_URL = ""

        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            validate_settings()

    def test_missing_anon_key(self, mock_settings):
        """The anon key is required."""
        mock_settings.SUPABASE_ANON_KEY = ""

        with pytest.raises(ConfigurationError, match="SUPABASE_ANON_KEY"):
            validate_settings()

    def test_non_http_url(self, mock_settings):
        """The backend URL must be http(s)."""
        mock_settings.SUPABASE_URL = "ftp://test.supabase.co"

        with pytest.raises(ConfigurationError, match="http"):
            validate_settings()

    def test_anonymous_configuration_valid(self, mock_settings):
        """No session at all is fine."""
        mock_settings.CHIRP_ACCESS_TOKEN = None
        mock_settings.CHIRP_USER_ID = None

        assert validate_settings() is True

    def test_half_session_rejected(self, mock_settings):
        """A token without a user id is a configuration error."""
        mock_settings.CHIRP_USER_ID = None

        with pytest.raises(ConfigurationError, match="set together"):
            validate_settings()

    def test_page_size_bounds(self, mock_settings):
        """The page size must be positive."""
        mock_settings.FEED_PAGE_SIZE = 0

        with pytest.raises(ConfigurationError, match="FEED_PAGE_SIZE"):
            validate_settings()

    def test_flag_band_above_reject_band(self, mock_settings):
        """A flag threshold above its reject threshold is rejected."""
        mock_settings.THREAT_FLAG_THRESHOLD = 0.8

        with pytest.raises(ConfigurationError, match="THREAT_FLAG_THRESHOLD"):
            validate_settings()

    def test_all_errors_reported_together(self, mock_settings):
        """Every problem is listed in one error."""
        mock_settings.SUPABASE_URL = ""
        mock_settings.MODERATION_TIMEOUT = 0

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings()

        message = str(exc_info.value)
        assert "SUPABASE_URL" in message
        assert "MODERATION_TIMEOUT" in message


class TestConfigSummary:
    """Tests for get_config_summary."""

    def test_summary_hides_secrets(self, mock_settings):
        """The summary reports presence, never values."""
        summary = get_config_summary()

        assert summary["backend"]["anon_key_configured"] is True
        assert summary["session"]["signed_in"] is True
        assert summary["moderation"]["classifier_configured"] is True
        assert "test-anon-key" not in str(summary)
        assert "test-access-token" not in str(summary)

    def test_long_url_truncated(self, mock_settings):
        """Long backend URLs are shortened."""
        mock_settings.SUPABASE_URL = "https://" + "x" * 50 + ".supabase.co"

        assert get_config_summary()["backend"]["url"].endswith("...")
