"""
Shared Test Fixtures for the Chirp Client

This module provides common fixtures used across all test modules.
Fixtures include a mocked data gateway, mocked feed sources, sessions,
and data factories for backend rows and model objects.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.gateway import SupabaseGateway
from data.models import FeedSlice, ModerationStatus, Post, Profile, Session
from services.feed_ranking import FeedRankingClient


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches config.settings with safe test values, preventing
    tests from reaching a real backend or the moderation API.

    Usage:
        def test_something(mock_settings):
            mock_settings.SUPABASE_URL = ""
            # ... test code

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    with patch('config.settings') as mock_settings_module:
        # Backend
        mock_settings_module.SUPABASE_URL = "https://test.supabase.co"
        mock_settings_module.SUPABASE_ANON_KEY = "test-anon-key"
        mock_settings_module.CHIRP_ACCESS_TOKEN = "test-access-token"
        mock_settings_module.CHIRP_USER_ID = "user-1"

        # Moderation
        mock_settings_module.PERSPECTIVE_API_KEY = "test-perspective-key"
        mock_settings_module.PERSPECTIVE_API_URL = "https://moderation.test/analyze"
        mock_settings_module.MODERATION_TIMEOUT = 10
        mock_settings_module.TOXICITY_REJECT_THRESHOLD = 0.9
        mock_settings_module.IDENTITY_ATTACK_REJECT_THRESHOLD = 0.8
        mock_settings_module.THREAT_REJECT_THRESHOLD = 0.7
        mock_settings_module.TOXICITY_FLAG_THRESHOLD = 0.7
        mock_settings_module.IDENTITY_ATTACK_FLAG_THRESHOLD = 0.6
        mock_settings_module.THREAT_FLAG_THRESHOLD = 0.5

        # Feed and query limits
        mock_settings_module.FEED_PAGE_SIZE = 20
        mock_settings_module.POST_CHARACTER_LIMIT = 280
        mock_settings_module.NOTIFICATIONS_FETCH_LIMIT = 50
        mock_settings_module.TRENDS_FETCH_LIMIT = 20
        mock_settings_module.NEWS_ARTICLES_FETCH_LIMIT = 20
        mock_settings_module.PROFILE_SEARCH_LIMIT = 20

        yield mock_settings_module


# =============================================================================
# Gateway Fixtures
# =============================================================================

@pytest.fixture
def mock_gateway():
    """
    Create a mocked data gateway.

    Every async gateway method is an AsyncMock (via the class spec) that
    resolves to an empty result unless a test configures it.

    Returns:
        MagicMock: A mock with the SupabaseGateway interface.
    """
    gateway = MagicMock(spec=SupabaseGateway)
    gateway.query.return_value = []
    gateway.call.return_value = None
    gateway.insert.return_value = []
    gateway.upsert.return_value = []
    gateway.update.return_value = []
    gateway.delete.return_value = None
    gateway.upload_object.return_value = "https://test.supabase.co/storage/v1/object/public/avatars/x"
    return gateway


@pytest.fixture
def mock_ranking():
    """Create a mocked feed source whose fetches return empty slices."""
    ranking = MagicMock(spec=FeedRankingClient)
    ranking.fetch_curated.return_value = FeedSlice.empty()
    ranking.fetch_fallback.return_value = FeedSlice.empty()
    ranking.fetch_following.return_value = FeedSlice.empty()
    return ranking


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def signed_in_session():
    """A valid session for user-1."""
    return Session(user_id="user-1", access_token="test-access-token", is_valid=True)


@pytest.fixture
def anonymous_session():
    """A session with no signed-in user."""
    return Session()


# =============================================================================
# Data Factories
# =============================================================================

def make_profile_row(profile_id: str = "author-1", username: Optional[str] = None,
                     **overrides) -> Dict[str, Any]:
    """
    Build a profiles row as the backend returns it.

    Args:
        profile_id: The profile id.
        username: Username; derived from the id when omitted.
        **overrides: Column values to replace.

    Returns:
        Dict[str, Any]: The row.
    """
    row = {
        "id": profile_id,
        "username": username or profile_id.replace("-", "_"),
        "full_name": f"Name of {profile_id}",
        "bio": None,
        "avatar_url": None,
        "banner_url": None,
        "is_verified": False,
        "is_curated_voice": False,
        "voice_category": None,
        "follower_count": 0,
        "following_count": 0,
        "created_at": "2025-12-01T09:00:00Z",
        "updated_at": "2025-12-01T09:00:00Z",
    }
    row.update(overrides)
    return row


def make_post_row(post_id: str = "post-1", author_id: str = "author-1",
                  with_author: bool = True, **overrides) -> Dict[str, Any]:
    """
    Build a posts row joined with its author profile.

    Args:
        post_id: The post id.
        author_id: The author's profile id.
        with_author: Include the joined ``profiles`` record.
        **overrides: Column values to replace.

    Returns:
        Dict[str, Any]: The row.
    """
    row = {
        "id": post_id,
        "author_id": author_id,
        "content": f"Content of {post_id}",
        "image_url": None,
        "like_count": 0,
        "comment_count": 0,
        "repost_count": 0,
        "view_count": 0,
        "moderation_status": ModerationStatus.APPROVED.value,
        "is_curated": False,
        "created_at": "2025-12-05T10:00:00Z",
        "updated_at": "2025-12-05T10:00:00Z",
    }
    if with_author:
        row["profiles"] = make_profile_row(author_id)
    row.update(overrides)
    return row


def make_posts(count: int, start: int = 0, prefix: str = "post") -> List[Post]:
    """Build ``count`` Post objects with sequential ids."""
    return [Post.from_row(make_post_row(f"{prefix}-{i}")) for i in range(start, start + count)]


def make_slice(count: int, start: int = 0, prefix: str = "post") -> FeedSlice:
    """Build a FeedSlice of ``count`` sequential posts."""
    return FeedSlice(posts=make_posts(count, start, prefix), fetched_count=count)


@pytest.fixture
def post_row():
    """Factory fixture for posts rows."""
    return make_post_row


@pytest.fixture
def profile_row():
    """Factory fixture for profiles rows."""
    return make_profile_row


@pytest.fixture
def sample_post():
    """A post by author-1 with a few engagements."""
    return Post.from_row(make_post_row("post-1", "author-1", like_count=3, repost_count=1))


@pytest.fixture
def sample_profile():
    """The profile of author-1."""
    return Profile.from_row(make_profile_row("author-1", follower_count=10))
