"""
Post Service Module

This module handles the compose flow and single-post operations:
validating content before dispatch, running the moderation classifier,
creating and deleting posts, and reading individual posts or an author's
timeline.
"""

import asyncio
from typing import Optional

from config import settings
from data.models import FeedSlice, ModerationStatus, Post, Session
from data.protocols import DataGateway
from data.requests import Filter, Ordering, TableQuery
from services.protocols import ContentClassifier
from utils.exceptions import AuthExpiredError, ContentRejectedError, ServerError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


def validate_content(text: Optional[str]) -> str:
    """
    Normalize and check post content.

    Args:
        text: Raw composer text.

    Returns:
        str: The content with surrounding whitespace removed.

    Raises:
        ValidationError: If the content is empty or over the character limit.
    """
    content = (text or "").strip()
    if not content:
        raise ValidationError("Post content cannot be empty")
    if len(content) > settings.POST_CHARACTER_LIMIT:
        raise ValidationError(
            f"Post is {len(content)} characters; the limit is {settings.POST_CHARACTER_LIMIT}"
        )
    return content


class PostService:
    """Service for composing, deleting and reading posts."""

    def __init__(self, gateway: DataGateway, moderation: ContentClassifier):
        self.gateway = gateway
        self.moderation = moderation

    async def create_post(self, session: Session, text: str, image_url: Optional[str] = None) -> Post:
        """
        Publish a new post for the signed-in user.

        Content is validated first and never sent anywhere when invalid.
        The classifier then scores it; a reject stops the post, a flag is
        logged and the post goes ahead.

        Args:
            session: The author's session.
            text: Post content.
            image_url: Public URL of an already uploaded image, if any.

        Returns:
            Post: The stored post, with its author joined.

        Raises:
            ValidationError: For empty or over-length content.
            ContentRejectedError: If moderation rejects the content.
            AuthExpiredError: If there is no valid session.
        """
        content = validate_content(text)
        if not session.is_signed_in:
            raise AuthExpiredError("You must be signed in to post")

        verdict = await asyncio.to_thread(self.moderation.classify, content)
        if not verdict["approved"]:
            raise ContentRejectedError(verdict["reason"] or "Content violates community guidelines")

        payload = {
            "author_id": session.user_id,
            "content": content,
            "image_url": image_url,
            "moderation_status": ModerationStatus.APPROVED.value,
        }
        rows = await self.gateway.insert("posts", payload, returning=True, select=settings.POST_SELECT)
        if not rows:
            raise ServerError("Backend did not return the created post")

        post = Post.from_row(rows[0])
        logger.info(f"Created post {post.id} for {session.user_id}")
        return post

    async def delete_post(self, session: Session, post_id: str) -> None:
        """Hard-delete one of the signed-in user's posts."""
        if not session.is_signed_in:
            raise AuthExpiredError("You must be signed in to delete a post")
        await self.gateway.delete("posts", [Filter.eq("id", post_id), Filter.eq("author_id", session.user_id)])
        logger.info(f"Deleted post {post_id}")

    async def fetch_post(self, post_id: str) -> Optional[Post]:
        rows = await self.gateway.query(TableQuery(
            table="posts",
            select=settings.POST_SELECT,
            filters=[Filter.eq("id", post_id)],
            limit=1,
        ))
        return Post.from_row(rows[0]) if rows else None

    async def fetch_user_posts(self, author_id: str, limit: Optional[int] = None, offset: int = 0) -> FeedSlice:
        """Fetch one page of an author's approved posts, newest first."""
        limit = limit or settings.FEED_PAGE_SIZE
        rows = await self.gateway.query(TableQuery.page(
            "posts", offset, limit,
            select=settings.POST_SELECT,
            filters=[
                Filter.eq("author_id", author_id),
                Filter.eq("moderation_status", ModerationStatus.APPROVED),
            ],
            order=Ordering("created_at", ascending=False),
        ))
        return FeedSlice(posts=[Post.from_row(row) for row in rows], fetched_count=len(rows))
