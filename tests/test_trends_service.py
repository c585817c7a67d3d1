"""
Tests for TrendsService

Tests cover trend and news article queries, search, hashtag upserts,
the increment procedure, and expiry cleanup.
"""

import asyncio
import pytest
from datetime import datetime, timezone
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.trends_service import TrendsService, normalize_hashtag
from utils.exceptions import ValidationError


def trend_row(trend_id="t1", **overrides):
    row = {
        "id": trend_id,
        "hashtag": "#LaborRights",
        "title": None,
        "category": "Trending",
        "post_count": 45200,
        "is_trending": True,
        "created_at": "2025-12-05T10:00:00Z",
        "expires_at": "2025-12-06T10:00:00Z",
    }
    row.update(overrides)
    return row


def last_params(mock_gateway):
    return dict(mock_gateway.query.await_args.args[0].to_params())


class TestTrendQueries:
    """Tests for trend reads."""

    def test_fetch_trends(self, mock_gateway):
        """Trending topics, most posts first."""
        mock_gateway.query.return_value = [trend_row()]
        service = TrendsService(mock_gateway)

        trends = asyncio.run(service.fetch_trends())

        assert trends[0].display_title == "#LaborRights"
        params = last_params(mock_gateway)
        assert params["is_trending"] == "eq.true"
        assert params["order"] == "post_count.desc"
        assert params["limit"] == "20"

    def test_fetch_by_category(self, mock_gateway):
        """Trends filtered by category."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.fetch_by_category("Politics"))

        params = last_params(mock_gateway)
        assert params["category"] == "eq.Politics"
        assert params["limit"] == "10"

    def test_trending_hashtags(self, mock_gateway):
        """Only trends that have a hashtag."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.trending_hashtags())

        assert last_params(mock_gateway)["hashtag"] == "not.is.null"

    def test_news_trends(self, mock_gateway):
        """News trends have a source URL and are newest first."""
        mock_gateway.query.return_value = [trend_row(hashtag=None, title="Workers Strike", source_url="https://x")]
        service = TrendsService(mock_gateway)

        trends = asyncio.run(service.news_trends())

        assert trends[0].display_title == "Workers Strike"
        params = last_params(mock_gateway)
        assert params["source_url"] == "not.is.null"
        assert params["order"] == "created_at.desc"

    def test_search_trends(self, mock_gateway):
        """Search matches hashtag or title."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.search_trends("climate"))

        assert last_params(mock_gateway)["or"] == "(hashtag.ilike.*climate*,title.ilike.*climate*)"

    def test_blank_search(self, mock_gateway):
        """A blank search returns nothing without querying."""
        assert asyncio.run(TrendsService(mock_gateway).search_trends(" , ")) == []
        mock_gateway.query.assert_not_awaited()


class TestNewsArticles:
    """Tests for cached news articles."""

    def test_fetch_news_articles_by_category(self, mock_gateway):
        """Articles in one category, latest published first."""
        mock_gateway.query.return_value = [{
            "id": "a1", "title": "Headline", "source_url": "https://news.test/a1",
            "published_at": "2025-12-05T08:00:00Z", "category": "News",
        }]
        service = TrendsService(mock_gateway)

        articles = asyncio.run(service.fetch_news_articles())

        assert articles[0].title == "Headline"
        assert articles[0].published_at == datetime(2025, 12, 5, 8, 0, tzinfo=timezone.utc)
        params = last_params(mock_gateway)
        assert params["category"] == "eq.News"
        assert params["order"] == "published_at.desc"

    def test_fetch_all_news_articles(self, mock_gateway):
        """All articles, unfiltered."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.fetch_all_news_articles())

        params = last_params(mock_gateway)
        assert "category" not in params
        assert params["limit"] == "50"


class TestTrendWrites:
    """Tests for trend maintenance."""

    def test_normalize_hashtag(self):
        """Hashtags get exactly one leading #."""
        assert normalize_hashtag("##Climate") == "#Climate"
        assert normalize_hashtag("Climate") == "#Climate"

    def test_invalid_hashtag(self):
        """Blank or spaced hashtags are rejected."""
        with pytest.raises(ValidationError):
            normalize_hashtag("#")
        with pytest.raises(ValidationError):
            normalize_hashtag("two words")

    def test_upsert_hashtag_trend(self, mock_gateway):
        """Hashtag trends merge on the hashtag column."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.upsert_hashtag_trend("Climate", category="Trending"))

        mock_gateway.upsert.assert_awaited_once_with("trends", {
            "hashtag": "#Climate",
            "category": "Trending",
            "post_count": 1,
            "is_trending": True,
        }, on_conflict="hashtag")

    def test_increment_trend_count(self, mock_gateway):
        """The count is incremented server-side."""
        service = TrendsService(mock_gateway)

        asyncio.run(service.increment_trend_count("t1"))

        mock_gateway.call.assert_awaited_once_with("increment_trend_count", {"trend_id": "t1"})

    def test_delete_expired_trends(self, mock_gateway):
        """Trends expiring before now are deleted."""
        service = TrendsService(mock_gateway)
        now = datetime(2025, 12, 6, 12, 0, tzinfo=timezone.utc)

        asyncio.run(service.delete_expired_trends(now))

        table, filters = mock_gateway.delete.await_args.args
        assert table == "trends"
        assert [f.to_param() for f in filters] == [("expires_at", "lt.2025-12-06T12:00:00+00:00")]
