"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the collaborators the
feed pager and the compose flow depend on. These protocols enable loose
coupling, dependency injection, and easier testing.

Protocols defined:
- FeedSource: Interface for producing feed slices (curated, fallback, following)
- ContentClassifier: Interface for the moderation verdict on outgoing content
"""

from typing import Any, Dict, Protocol

from data.models import FeedSlice


class FeedSource(Protocol):
    """Protocol defining the interface for feed slice producers.

    Implementations return a FeedSlice whose ``fetched_count`` is the raw
    number of rows the backend returned for the requested range, so that
    callers can do cursor arithmetic and the has-more check.
    """

    async def fetch_curated(self, limit: int, offset: int) -> FeedSlice:
        """Fetch one slice of the ranked feed, in ranking order.

        Args:
            limit: Maximum number of posts.
            offset: Position in the ranked order.

        Returns:
            The slice; empty when the ranking has nothing at this offset.
        """
        ...

    async def fetch_fallback(self, limit: int, offset: int) -> FeedSlice:
        """Fetch one slice of approved posts, newest first."""
        ...

    async def fetch_following(self, user_id: str, limit: int, offset: int) -> FeedSlice:
        """Fetch one slice of posts by the authors ``user_id`` follows, newest first."""
        ...


class ContentClassifier(Protocol):
    """Protocol defining the interface for content moderation.

    ``classify`` never raises for classifier outages; it fails open.
    """

    def classify(self, text: str) -> Dict[str, Any]:
        """Classify text before it is published.

        Args:
            text: The content to check.

        Returns:
            Dictionary with keys ``approved`` (bool), ``flagged`` (bool) and
            ``reason`` (Optional[str]).
        """
        ...
