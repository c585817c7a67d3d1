"""
Configuration Settings for the Chirp Client

This module centralizes all configuration settings for the Chirp client core,
including environment variables, backend credentials, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# Backend (hosted backend-as-a-service)
# =============================================================================

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

# Session issued by the external auth provider
CHIRP_ACCESS_TOKEN = os.getenv("CHIRP_ACCESS_TOKEN")
CHIRP_USER_ID = os.getenv("CHIRP_USER_ID")

# Moderation classifier (Perspective API). Absent key means fail-open.
PERSPECTIVE_API_KEY = os.getenv("PERSPECTIVE_API_KEY")
PERSPECTIVE_API_URL = "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"

# =============================================================================
# Remote Procedures and Storage
# =============================================================================

CURATED_FEED_RPC = "get_curated_feed"
RECORD_VIEW_RPC = "record_post_view"
INCREMENT_TREND_RPC = "increment_trend_count"

AVATAR_BUCKET = "avatars"
AVATAR_CONTENT_TYPE = "image/jpeg"

# =============================================================================
# Feed Settings
# =============================================================================

FEED_PAGE_SIZE = 20                  # Posts per page; a short page means end of data
POST_SELECT = "*, profiles(*)"       # Post rows joined with their author profile

# =============================================================================
# Content Settings
# =============================================================================

POST_CHARACTER_LIMIT = 280           # Client-side cap on post length
UNKNOWN_AUTHOR_NAME = "Unknown"
DEFAULT_AVATAR_URL = "https://static.chirp.app/default-avatar.png"

# Moderation thresholds: reject above the first band, flag above the second
TOXICITY_REJECT_THRESHOLD = 0.9
IDENTITY_ATTACK_REJECT_THRESHOLD = 0.8
THREAT_REJECT_THRESHOLD = 0.7
TOXICITY_FLAG_THRESHOLD = 0.7
IDENTITY_ATTACK_FLAG_THRESHOLD = 0.6
THREAT_FLAG_THRESHOLD = 0.5
MODERATION_LANGUAGES = ["en"]
MODERATION_TIMEOUT = 10              # Seconds to wait for the classifier

# =============================================================================
# Query Limits
# =============================================================================

NOTIFICATIONS_FETCH_LIMIT = 50
TRENDS_FETCH_LIMIT = 20
TRENDS_CATEGORY_LIMIT = 10
NEWS_ARTICLES_FETCH_LIMIT = 20
ALL_NEWS_ARTICLES_FETCH_LIMIT = 50
PROFILE_SEARCH_LIMIT = 20


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Delegates to config.validators; kept here so callers can use
    ``settings.validate_settings()``.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    from config.validators import validate_settings as _validate
    return _validate()
