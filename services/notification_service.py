"""
Notification Service Module

This module reads and writes the notifications table: listing a user's
notifications, unread counts, read flags, and the create/delete side
effects of interaction edges.
"""

from typing import List, Optional

from config import settings
from data.models import Notification, NotificationType
from data.protocols import DataGateway
from data.requests import Filter, Ordering, TableQuery
from utils.logger import get_logger

logger = get_logger(__name__)

NOTIFICATION_SELECT = "*, actor:profiles!notifications_actor_id_fkey(*), posts(*)"


class NotificationService:
    """Service for notification reads and writes."""

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def fetch_notifications(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        """
        Fetch a user's notifications, newest first, with actor and post joined.

        Args:
            user_id: The recipient.
            limit: Maximum number of notifications. Defaults to settings.NOTIFICATIONS_FETCH_LIMIT.

        Returns:
            List[Notification]: The notifications.
        """
        rows = await self.gateway.query(TableQuery(
            table="notifications",
            select=NOTIFICATION_SELECT,
            filters=[Filter.eq("user_id", user_id)],
            order=Ordering("created_at", ascending=False),
            limit=limit or settings.NOTIFICATIONS_FETCH_LIMIT,
        ))
        logger.info(f"Retrieved {len(rows)} notifications for {user_id}")
        return [Notification.from_row(row) for row in rows]

    async def fetch_by_type(self, user_id: str, notification_type: NotificationType,
                            limit: Optional[int] = None) -> List[Notification]:
        rows = await self.gateway.query(TableQuery(
            table="notifications",
            select=NOTIFICATION_SELECT,
            filters=[Filter.eq("user_id", user_id), Filter.eq("type", notification_type)],
            order=Ordering("created_at", ascending=False),
            limit=limit or settings.NOTIFICATIONS_FETCH_LIMIT,
        ))
        return [Notification.from_row(row) for row in rows]

    async def fetch_mentions(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
        return await self.fetch_by_type(user_id, NotificationType.MENTION, limit)

    async def unread_count(self, user_id: str) -> int:
        rows = await self.gateway.query(TableQuery(
            table="notifications",
            select="id",
            filters=[Filter.eq("user_id", user_id), Filter.eq("is_read", False)],
        ))
        return len(rows)

    async def mark_as_read(self, notification_id: str) -> None:
        await self.gateway.update("notifications", {"is_read": True},
                                  [Filter.eq("id", notification_id)])

    async def mark_all_as_read(self, user_id: str) -> None:
        await self.gateway.update("notifications", {"is_read": True},
                                  [Filter.eq("user_id", user_id), Filter.eq("is_read", False)])
        logger.info(f"Marked all notifications read for {user_id}")

    async def create_notification(self, recipient_id: str, actor_id: Optional[str],
                                  notification_type: NotificationType,
                                  post_id: Optional[str] = None) -> bool:
        """
        Create a notification for ``recipient_id``.

        Nothing is written when the actor is the recipient.

        Args:
            recipient_id: The user being notified.
            actor_id: The user who acted, if any.
            notification_type: What happened.
            post_id: The related post, if any.

        Returns:
            bool: True if a notification was written, False if it was skipped.
        """
        if actor_id is not None and actor_id == recipient_id:
            logger.debug(f"Skipping self-notification ({notification_type.value}) for {recipient_id}")
            return False

        payload = {
            "user_id": recipient_id,
            "actor_id": actor_id,
            "type": notification_type.value,
            "post_id": post_id,
        }
        await self.gateway.insert("notifications", payload)
        logger.debug(f"Created {notification_type.value} notification for {recipient_id}")
        return True

    async def delete_notification(self, recipient_id: str, actor_id: str,
                                  notification_type: NotificationType,
                                  post_id: Optional[str] = None) -> None:
        """Delete the notification produced by an edge that has since been removed."""
        filters = [
            Filter.eq("user_id", recipient_id),
            Filter.eq("actor_id", actor_id),
            Filter.eq("type", notification_type),
        ]
        if post_id is not None:
            filters.append(Filter.eq("post_id", post_id))
        await self.gateway.delete("notifications", filters)
