"""
Feed Pager

This module keeps the in-memory page list, cursor and load state for each
feed variant and turns refresh / load-more intents into fetches.

Each variant moves through Idle -> Loading -> Loaded | Exhausted | Error.
Only one fetch per variant is in flight at a time: a second call while the
variant is Loading is ignored. Fetch failures end in the Error state and are
never raised to the caller. A cancelled fetch puts the variant back in the
state it was in before the fetch started.
"""

import asyncio
from typing import Callable, Dict, List, Optional

from config import settings
from data.models import FeedPage, FeedSlice, FeedState, FeedVariant, Post, Session
from services.protocols import FeedSource
from utils.exceptions import AuthExpiredError, ChirpError
from utils.logger import get_logger

logger = get_logger(__name__)

PageListener = Callable[[FeedPage], None]


class FeedPager:
    """Paginates the curated, following and general feeds."""

    def __init__(self, ranking: FeedSource, session: Session,
                 page_size: Optional[int] = None):
        """
        Initialize the pager.

        Args:
            ranking: Client used for every fetch.
            session: Current auth state; the following feed needs a signed-in user.
            page_size: Posts per fetch. Defaults to settings.FEED_PAGE_SIZE.
        """
        self.ranking = ranking
        self.session = session
        self.page_size = page_size or settings.FEED_PAGE_SIZE
        self.pages: Dict[FeedVariant, FeedPage] = {
            variant: FeedPage(variant=variant) for variant in FeedVariant
        }
        self._listeners: List[PageListener] = []

    def page(self, variant: FeedVariant) -> FeedPage:
        return self.pages[variant]

    def subscribe(self, listener: PageListener) -> Callable[[], None]:
        """Register a listener called after every state transition; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    # -------------------------------------------------------------------------
    # Intents
    # -------------------------------------------------------------------------

    async def refresh(self, variant: FeedVariant) -> FeedPage:
        """
        Reload a feed from the top, replacing its page list.

        For the curated feed, an empty first slice switches the page to the
        general feed with exactly one fallback fetch. Later load-more calls stay
        on whichever source the refresh settled on.

        Args:
            variant: The feed to refresh.

        Returns:
            FeedPage: The page after the refresh settled (or unchanged if ignored).
        """
        page = self.pages[variant]
        if page.state == FeedState.LOADING:
            logger.debug(f"Refresh of {variant.value} ignored; a fetch is already in flight")
            return page

        prior = (page.state, page.error)
        self._begin(page)
        source = variant
        try:
            result = await self._fetch(source, 0)
            if variant == FeedVariant.CURATED and result.fetched_count == 0:
                logger.info("Curated feed returned nothing; falling back to the general feed")
                source = FeedVariant.GENERAL_FALLBACK
                result = await self._fetch(source, 0)
        except ChirpError as e:
            return self._fail(page, e)
        except Exception as e:
            logger.error(f"Unexpected error refreshing {variant.value} feed: {e}", exc_info=True)
            return self._fail(page, e)
        except asyncio.CancelledError:
            self._abandon(page, *prior)
            raise

        page.source = source
        page.posts = list(result.posts)
        page.cursor = result.fetched_count
        return self._settle(page, result)

    async def load_more(self, variant: FeedVariant) -> FeedPage:
        """
        Fetch the next slice at the current cursor and append it.

        No-op while the variant is Loading or once it is Exhausted.

        Args:
            variant: The feed to extend.

        Returns:
            FeedPage: The page after the fetch settled (or unchanged if ignored).
        """
        page = self.pages[variant]
        if page.state in (FeedState.LOADING, FeedState.EXHAUSTED) or not page.has_more:
            logger.debug(f"Load more of {variant.value} ignored in state {page.state.value}")
            return page

        prior = (page.state, page.error)
        self._begin(page)
        try:
            result = await self._fetch(page.source, page.cursor)
        except ChirpError as e:
            return self._fail(page, e)
        except Exception as e:
            logger.error(f"Unexpected error loading more {variant.value} posts: {e}", exc_info=True)
            return self._fail(page, e)
        except asyncio.CancelledError:
            self._abandon(page, *prior)
            raise

        self._merge(page, result.posts)
        page.cursor += result.fetched_count
        return self._settle(page, result)

    def insert_post(self, post: Post) -> None:
        """Show a freshly composed post at the top of the loaded home feeds."""
        for variant in (FeedVariant.CURATED, FeedVariant.FOLLOWING):
            page = self.pages[variant]
            if page.state == FeedState.IDLE or any(p.id == post.id for p in page.posts):
                continue
            page.posts.insert(0, post)
            self._notify(page)

    def remove_post(self, post_id: str) -> None:
        """Drop a deleted post from every page that holds it."""
        for page in self.pages.values():
            remaining = [p for p in page.posts if p.id != post_id]
            if len(remaining) != len(page.posts):
                page.posts = remaining
                self._notify(page)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def _fetch(self, source: FeedVariant, offset: int) -> FeedSlice:
        if source == FeedVariant.CURATED:
            return await self.ranking.fetch_curated(self.page_size, offset)
        if source == FeedVariant.GENERAL_FALLBACK:
            return await self.ranking.fetch_fallback(self.page_size, offset)
        if not self.session.is_signed_in:
            raise AuthExpiredError("The following feed requires a signed-in session")
        return await self.ranking.fetch_following(self.session.user_id, self.page_size, offset)

    def _begin(self, page: FeedPage) -> None:
        page.state = FeedState.LOADING
        page.error = None
        self._notify(page)

    def _settle(self, page: FeedPage, result: FeedSlice) -> FeedPage:
        # A full page means there may be more; an exactly-full last page costs one empty fetch
        page.has_more = result.fetched_count == self.page_size
        page.state = FeedState.LOADED if page.has_more else FeedState.EXHAUSTED
        logger.info(f"{page.variant.value} feed: {len(page.posts)} posts, cursor {page.cursor}, "
                    f"has_more={page.has_more}")
        self._notify(page)
        return page

    def _fail(self, page: FeedPage, error: Exception) -> FeedPage:
        page.state = FeedState.ERROR
        page.error = error
        logger.error(f"Failed to fetch {page.variant.value} feed at offset {page.cursor}: {error}")
        self._notify(page)
        return page

    def _abandon(self, page: FeedPage, state: FeedState, error: Optional[Exception]) -> None:
        # Cancelled fetch: the page list and cursor were not touched yet
        page.state = state
        page.error = error
        logger.warning(f"Fetch of {page.variant.value} feed cancelled; back to {state.value}")
        self._notify(page)

    @staticmethod
    def _merge(page: FeedPage, posts: List[Post]) -> None:
        seen = {p.id for p in page.posts}
        for post in posts:
            if post.id in seen:
                logger.debug(f"Skipping duplicate post {post.id} in {page.variant.value} feed")
                continue
            seen.add(post.id)
            page.posts.append(post)

    def _notify(self, page: FeedPage) -> None:
        for listener in list(self._listeners):
            try:
                listener(page)
            except Exception as e:
                logger.error(f"Listener failed on {page.variant.value} feed update: {e}", exc_info=True)
