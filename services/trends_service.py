"""
Trends Service Module

This module reads trending topics and cached news articles for the explore
screen, and maintains hashtag trends as posts are published.
"""

from datetime import datetime, timezone
from typing import List, Optional

from config import settings
from data.models import NewsArticle, Trend
from data.protocols import DataGateway
from data.requests import Filter, Ordering, TableQuery
from utils.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

MOST_POSTS_FIRST = Ordering("post_count", ascending=False)
NEWEST_FIRST = Ordering("created_at", ascending=False)
LATEST_PUBLISHED_FIRST = Ordering("published_at", ascending=False)


def normalize_hashtag(hashtag: str) -> str:
    """Return ``hashtag`` with exactly one leading '#'."""
    tag = hashtag.strip().lstrip("#")
    if not tag or any(char.isspace() for char in tag):
        raise ValidationError(f"Invalid hashtag: {hashtag!r}")
    return f"#{tag}"


class TrendsService:
    """Service for trends and the cached news feed."""

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def _trends(self, filters: List[Filter], order: Ordering, limit: int) -> List[Trend]:
        rows = await self.gateway.query(TableQuery(table="trends", filters=filters, order=order, limit=limit))
        return [Trend.from_row(row) for row in rows]

    async def fetch_trends(self, limit: Optional[int] = None) -> List[Trend]:
        """Trending topics, most posts first."""
        return await self._trends(
            [Filter.eq("is_trending", True)], MOST_POSTS_FIRST, limit or settings.TRENDS_FETCH_LIMIT,
        )

    async def fetch_by_category(self, category: str, limit: Optional[int] = None) -> List[Trend]:
        return await self._trends(
            [Filter.eq("category", category)], MOST_POSTS_FIRST, limit or settings.TRENDS_CATEGORY_LIMIT,
        )

    async def trending_hashtags(self, limit: Optional[int] = None) -> List[Trend]:
        return await self._trends(
            [Filter.eq("is_trending", True), Filter("hashtag", "not.is", None)],
            MOST_POSTS_FIRST, limit or settings.TRENDS_CATEGORY_LIMIT,
        )

    async def news_trends(self, limit: Optional[int] = None) -> List[Trend]:
        """Trends that point at a news source, newest first."""
        return await self._trends(
            [Filter("source_url", "not.is", None)], NEWEST_FIRST, limit or settings.TRENDS_CATEGORY_LIMIT,
        )

    async def search_trends(self, query: str, limit: Optional[int] = None) -> List[Trend]:
        """
        Search trends whose hashtag or title contains ``query``.

        Args:
            query: Free text; characters that would break the filter expression are dropped.
            limit: Maximum results. Defaults to settings.TRENDS_FETCH_LIMIT.

        Returns:
            List[Trend]: Matches, most posts first. Empty for a blank query.
        """
        term = query
        for char in ",()%*":
            term = term.replace(char, " ")
        term = term.strip()
        if not term:
            return []
        return await self._trends(
            [Filter.any_of(f"hashtag.ilike.*{term}*,title.ilike.*{term}*")],
            MOST_POSTS_FIRST, limit or settings.TRENDS_FETCH_LIMIT,
        )

    async def fetch_news_articles(self, category: str = "News", limit: Optional[int] = None) -> List[NewsArticle]:
        rows = await self.gateway.query(TableQuery(
            table="news_articles",
            filters=[Filter.eq("category", category)],
            order=LATEST_PUBLISHED_FIRST,
            limit=limit or settings.NEWS_ARTICLES_FETCH_LIMIT,
        ))
        return [NewsArticle.from_row(row) for row in rows]

    async def fetch_all_news_articles(self, limit: Optional[int] = None) -> List[NewsArticle]:
        rows = await self.gateway.query(TableQuery(
            table="news_articles",
            order=LATEST_PUBLISHED_FIRST,
            limit=limit or settings.ALL_NEWS_ARTICLES_FETCH_LIMIT,
        ))
        return [NewsArticle.from_row(row) for row in rows]

    async def upsert_hashtag_trend(self, hashtag: str, category: Optional[str] = None) -> None:
        """
        Create a hashtag trend, or merge into the existing row for the same hashtag.

        Args:
            hashtag: The hashtag, with or without its leading '#'.
            category: Optional explore category.
        """
        tag = normalize_hashtag(hashtag)
        await self.gateway.upsert("trends", {
            "hashtag": tag,
            "category": category,
            "post_count": 1,
            "is_trending": True,
        }, on_conflict="hashtag")
        logger.debug(f"Upserted trend {tag}")

    async def increment_trend_count(self, trend_id: str) -> None:
        if not trend_id:
            raise ValidationError("trend_id is required")
        await self.gateway.call(settings.INCREMENT_TREND_RPC, {"trend_id": trend_id})

    async def delete_expired_trends(self, now: Optional[datetime] = None) -> None:
        """Delete trends whose ``expires_at`` is before ``now`` (default: current UTC time)."""
        cutoff = (now or datetime.now(timezone.utc)).isoformat()
        await self.gateway.delete("trends", [Filter("expires_at", "lt", cutoff)])
        logger.info(f"Deleted trends expired before {cutoff}")
