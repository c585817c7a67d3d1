"""
Feed Ranking Client

This module produces feed slices from the backend. The curated feed comes
from the ranking procedure, whose ordering is opaque and must be preserved
exactly; the fallback and following feeds are reverse-chronological
queries over approved posts.
"""

from typing import Any, Dict, List, Optional

from config import settings
from data.models import FeedSlice, ModerationStatus, Post
from data.protocols import DataGateway
from data.requests import CuratedFeedRequest, Filter, Ordering, TableQuery
from utils.logger import get_logger

logger = get_logger(__name__)

NEWEST_FIRST = Ordering("created_at", ascending=False)


def _ranked_id(row: Any) -> Optional[str]:
    if isinstance(row, dict):
        value = row.get("post_id") or row.get("id")
    else:
        value = row
    return str(value) if value else None


class FeedRankingClient:
    """Fetches curated, fallback and following feed slices through the gateway."""

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def fetch_curated(self, limit: int, offset: int) -> FeedSlice:
        """
        Fetch one slice of the curated feed.

        Calls the ranking procedure for an ordered list of post IDs, then
        batch-fetches the full records and puts them back into ranking order.
        An empty ID list yields an empty slice; the caller decides whether
        to fall back.

        Args:
            limit: Maximum number of posts in the slice.
            offset: Position of the slice in the ranked order.

        Returns:
            FeedSlice: Posts in ranking order plus the number of ranked IDs returned.
        """
        rows = await self.gateway.call(
            settings.CURATED_FEED_RPC, CuratedFeedRequest(limit=limit, offset=offset).to_params()
        ) or []

        ranked_ids: List[str] = []
        scores: Dict[str, Optional[float]] = {}
        for row in rows:
            post_id = _ranked_id(row)
            if post_id is None:
                logger.warning(f"Ranking row without a post id skipped: {row!r}")
                continue
            ranked_ids.append(post_id)
            if isinstance(row, dict):
                scores.setdefault(post_id, row.get("score"))

        if not ranked_ids:
            logger.info(f"Curated feed empty at offset {offset}")
            return FeedSlice(posts=[], fetched_count=len(rows))

        records = await self.gateway.query(TableQuery(
            table="posts",
            select=settings.POST_SELECT,
            filters=[Filter.in_("id", list(dict.fromkeys(ranked_ids)))],
        ))
        by_id = {str(record["id"]): record for record in records}

        posts = []
        for post_id in ranked_ids:
            record = by_id.get(post_id)
            if record is None:
                logger.debug(f"Ranked post {post_id} no longer resolves to a record")
                continue
            posts.append(Post.from_row(record, score=scores.get(post_id)))

        logger.info(f"Curated feed offset {offset}: {len(rows)} ranked, {len(posts)} resolved")
        return FeedSlice(posts=posts, fetched_count=len(rows))

    async def fetch_fallback(self, limit: int, offset: int) -> FeedSlice:
        """
        Fetch one slice of the general reverse-chronological feed of approved posts.

        Args:
            limit: Maximum number of posts in the slice.
            offset: Number of posts to skip.

        Returns:
            FeedSlice: The posts, newest first.
        """
        rows = await self.gateway.query(TableQuery.page(
            "posts", offset, limit,
            select=settings.POST_SELECT,
            filters=[Filter.eq("moderation_status", ModerationStatus.APPROVED)],
            order=NEWEST_FIRST,
        ))
        logger.info(f"Fallback feed offset {offset}: {len(rows)} posts")
        return FeedSlice(posts=[Post.from_row(row) for row in rows], fetched_count=len(rows))

    async def fetch_following(self, user_id: str, limit: int, offset: int) -> FeedSlice:
        """
        Fetch one slice of posts by the authors ``user_id`` follows.

        The followed-ID set is fetched in full each time. When it is empty no
        posts query is issued.

        Args:
            user_id: The follower.
            limit: Maximum number of posts in the slice.
            offset: Number of posts to skip.

        Returns:
            FeedSlice: The posts, newest first.
        """
        follows = await self.gateway.query(TableQuery(
            table="follows",
            select="following_id",
            filters=[Filter.eq("follower_id", user_id)],
        ))
        following_ids = [str(row["following_id"]) for row in follows if row.get("following_id")]

        if not following_ids:
            logger.info(f"User {user_id} follows nobody; following feed is empty")
            return FeedSlice.empty()

        rows = await self.gateway.query(TableQuery.page(
            "posts", offset, limit,
            select=settings.POST_SELECT,
            filters=[
                Filter.eq("moderation_status", ModerationStatus.APPROVED),
                Filter.in_("author_id", following_ids),
            ],
            order=NEWEST_FIRST,
        ))
        logger.info(f"Following feed offset {offset}: {len(rows)} posts from {len(following_ids)} authors")
        return FeedSlice(posts=[Post.from_row(row) for row in rows], fetched_count=len(rows))
