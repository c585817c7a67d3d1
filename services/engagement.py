"""
Engagement Coordinator

This module applies like, repost and follow toggles optimistically: the
cached interaction state and the displayed counter change before the
backend write is issued and are restored exactly if the write fails. It
also records post views at most once per (post, user) for the lifetime of
the client session.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Set, Tuple, Union

from config import settings
from data.models import NotificationType, Post, Profile, Relation
from data.protocols import DataGateway
from data.requests import Filter, RecordViewRequest, TableQuery
from services.interaction_cache import InteractionStateCache
from services.notification_service import NotificationService
from utils.exceptions import ChirpError, ConflictError, ValidationError
from utils.helpers import best_effort
from utils.logger import get_logger

logger = get_logger(__name__)

Target = Union[Post, Profile]


@dataclass(frozen=True)
class EdgeTable:
    """Where an edge lives and which counter and notification go with it."""
    table: str
    actor_column: str
    target_column: str
    counter: str
    notification: NotificationType


EDGES = {
    Relation.LIKE: EdgeTable("likes", "user_id", "post_id", "like_count", NotificationType.LIKE),
    Relation.REPOST: EdgeTable("reposts", "user_id", "post_id", "repost_count", NotificationType.REPOST),
    Relation.FOLLOW: EdgeTable("follows", "follower_id", "following_id", "follower_count", NotificationType.FOLLOW),
}


class EngagementCoordinator:
    """Coordinates optimistic interaction writes with the backend."""

    def __init__(self, gateway: DataGateway, cache: InteractionStateCache,
                 notifications: NotificationService):
        self.gateway = gateway
        self.cache = cache
        self.notifications = notifications
        self._in_flight: Set[Tuple[str, Relation]] = set()
        self._viewed: Set[Tuple[str, str]] = set()

    # -------------------------------------------------------------------------
    # Toggles
    # -------------------------------------------------------------------------

    async def toggle_like(self, post: Post, actor_id: str) -> bool:
        return await self.toggle(post, actor_id, Relation.LIKE)

    async def toggle_repost(self, post: Post, actor_id: str) -> bool:
        return await self.toggle(post, actor_id, Relation.REPOST)

    async def toggle_follow(self, profile: Profile, actor_id: str) -> bool:
        return await self.toggle(profile, actor_id, Relation.FOLLOW)

    async def toggle(self, target: Target, actor_id: str, relation: Relation) -> bool:
        """
        Flip an interaction edge between ``actor_id`` and ``target``.

        The cache and the target's counter are updated before the write.
        If the write fails, both go back to their previous values and the
        error is raised. While a toggle for the same (target, relation) is in
        flight, further toggles are ignored.

        Args:
            target: The post (like/repost) or profile (follow).
            actor_id: The signed-in user.
            relation: Which edge to flip.

        Returns:
            bool: The edge state after the call.

        Raises:
            ValidationError: If the target does not fit the relation, or on self-follow.
            GatewayError: If the backend write failed (state already reverted).
        """
        edge = EDGES[relation]
        self._check_target(target, actor_id, relation)

        key = (target.id, relation)
        if key in self._in_flight:
            logger.debug(f"Ignoring {relation.value} toggle on {target.id}; previous toggle still in flight")
            return self.cache.is_active(actor_id, target.id, relation)

        self._in_flight.add(key)
        try:
            previous = self.cache.is_active(actor_id, target.id, relation)
            active = not previous

            self.cache.set(actor_id, target.id, relation, active)
            delta = self._adjust_counter(target, edge.counter, active)

            try:
                applied = await self._write_edge(edge, actor_id, target.id, active)
            except Exception as e:
                self._revert(target, actor_id, relation, previous, delta)
                logger.error(f"Failed to {'add' if active else 'remove'} {relation.value} on {target.id}; "
                             f"reverted: {e}")
                raise
            except asyncio.CancelledError:
                self._revert(target, actor_id, relation, previous, delta)
                logger.warning(f"{relation.value} toggle on {target.id} cancelled; reverted")
                raise

            if applied:
                await self._sync_notification(target, actor_id, edge, active)
            else:
                # The server counter already includes the existing edge
                setattr(target, edge.counter, getattr(target, edge.counter) - delta)
            return active
        finally:
            self._in_flight.discard(key)

    def is_in_flight(self, target_id: str, relation: Relation) -> bool:
        return (target_id, relation) in self._in_flight

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def record_view(self, post_id: str, user_id: str) -> bool:
        """
        Record that ``user_id`` viewed ``post_id``, at most once per session.

        The guard is set before the call is dispatched, so an overlapping
        second trigger never reaches the network. Failures are logged and
        swallowed; the displayed view count is never changed locally.

        Returns:
            bool: True if a call was dispatched, False if the view was already recorded.
        """
        key = (post_id, user_id)
        if key in self._viewed:
            return False
        self._viewed.add(key)

        try:
            await self.gateway.call(settings.RECORD_VIEW_RPC,
                                    RecordViewRequest(post_id=post_id, user_id=user_id).to_params())
            logger.debug(f"Recorded view of {post_id}")
        except ChirpError as e:
            logger.warning(f"Failed to record view of {post_id}: {e}")
        return True

    # -------------------------------------------------------------------------
    # Existence checks
    # -------------------------------------------------------------------------

    async def has_interacted(self, target_id: str, actor_id: str, relation: Relation) -> bool:
        """
        Check whether the edge exists on the backend.

        Failures are logged and reported as False.
        """
        try:
            return await self._edge_exists(EDGES[relation], actor_id, target_id)
        except ChirpError as e:
            logger.warning(f"Could not check {relation.value} state for {target_id}: {e}")
            return False

    async def ensure_state(self, target_id: str, actor_id: str, relation: Relation) -> bool:
        """
        Seed the cache for a newly visible item.

        A value already present (including one written by a toggle while
        the check was in flight) is kept. A failed check shows False and
        leaves the key unseeded so the next render checks again.

        Returns:
            bool: The state to display.
        """
        cached = self.cache.get(actor_id, target_id, relation)
        if cached is not None:
            return cached
        try:
            exists = await self._edge_exists(EDGES[relation], actor_id, target_id)
        except ChirpError as e:
            logger.warning(f"Could not check {relation.value} state for {target_id}: {e}")
            return False
        return self.cache.seed(actor_id, target_id, relation, exists)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_target(target: Target, actor_id: str, relation: Relation) -> None:
        if not actor_id:
            raise ValidationError("An actor id is required to interact")
        if relation == Relation.FOLLOW:
            if not isinstance(target, Profile):
                raise ValidationError("Follow targets must be profiles")
            if target.id == actor_id:
                raise ValidationError("Users cannot follow themselves")
        elif not isinstance(target, Post):
            raise ValidationError(f"{relation.value} targets must be posts")

    def _revert(self, target: Target, actor_id: str, relation: Relation, previous: bool, delta: int) -> None:
        counter = EDGES[relation].counter
        self.cache.set(actor_id, target.id, relation, previous)
        setattr(target, counter, getattr(target, counter) - delta)

    @staticmethod
    def _adjust_counter(target: Target, counter: str, active: bool) -> int:
        current = getattr(target, counter)
        if active:
            delta = 1
        else:
            delta = -1 if current > 0 else 0
        setattr(target, counter, current + delta)
        return delta

    async def _write_edge(self, edge: EdgeTable, actor_id: str, target_id: str, active: bool) -> bool:
        """Create or delete the edge. Returns False when a create found the edge already present."""
        if active:
            try:
                await self.gateway.insert(edge.table, {edge.actor_column: actor_id,
                                                       edge.target_column: target_id})
            except ConflictError:
                logger.info(f"{edge.table} edge {actor_id}->{target_id} already present; treating as applied")
                return False
        else:
            await self.gateway.delete(edge.table, [Filter.eq(edge.actor_column, actor_id),
                                                   Filter.eq(edge.target_column, target_id)])
        return True

    async def _edge_exists(self, edge: EdgeTable, actor_id: str, target_id: str) -> bool:
        rows = await self.gateway.query(TableQuery(
            table=edge.table,
            select=edge.actor_column,
            filters=[Filter.eq(edge.actor_column, actor_id), Filter.eq(edge.target_column, target_id)],
            limit=1,
        ))
        return bool(rows)

    async def _sync_notification(self, target: Target, actor_id: str, edge: EdgeTable, active: bool) -> None:
        if isinstance(target, Post):
            recipient_id: Optional[str] = target.author_id
            post_id: Optional[str] = target.id
        else:
            recipient_id = target.id
            post_id = None
        if not recipient_id:
            return

        if active:
            await best_effort(
                self.notifications.create_notification(recipient_id, actor_id, edge.notification, post_id),
                f"{edge.notification.value} notification",
            )
        else:
            await best_effort(
                self.notifications.delete_notification(recipient_id, actor_id, edge.notification, post_id),
                f"{edge.notification.value} notification removal",
            )
