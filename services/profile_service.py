"""
Profile Service Module

This module reads and writes profiles: lookups by id or username, search,
lazy creation on first sign-in, field updates, and avatar upload to
object storage.
"""

from typing import List, Optional

from config import settings
from data.models import Profile, ProfileUpdate
from data.protocols import DataGateway
from data.requests import Filter, TableQuery
from utils.exceptions import ConflictError, ServerError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


def avatar_path(user_id: str) -> str:
    """Storage path of a user's avatar; each upload overwrites the previous one."""
    return f"{user_id.lower()}/avatar.jpg"


def _escape_pattern(text: str) -> str:
    # Characters with meaning inside a PostgREST or(...) expression or a LIKE pattern
    for char in ",()%*":
        text = text.replace(char, " ")
    return text.strip()


def _literal_pattern(text: str) -> str:
    # ilike with no wildcards: escape LIKE metacharacters so only the exact text matches
    text = _escape_pattern(text)
    for char in "\\_":
        text = text.replace(char, "\\" + char)
    return text


class ProfileService:
    """Service for profile reads, updates and avatar uploads."""

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def fetch_profile(self, user_id: str) -> Optional[Profile]:
        rows = await self.gateway.query(TableQuery(
            table="profiles", filters=[Filter.eq("id", user_id)], limit=1,
        ))
        return Profile.from_row(rows[0]) if rows else None

    async def fetch_by_username(self, username: str) -> Optional[Profile]:
        """Look a profile up by username, ignoring case."""
        cleaned = username.lstrip("@").strip()
        if not cleaned:
            return None
        rows = await self.gateway.query(TableQuery(
            table="profiles", filters=[Filter.ilike("username", _literal_pattern(cleaned))], limit=1,
        ))
        return Profile.from_row(rows[0]) if rows else None

    async def search_profiles(self, query: str, limit: Optional[int] = None) -> List[Profile]:
        """
        Search profiles whose username or full name contains ``query``.

        Args:
            query: Free text typed by the user.
            limit: Maximum results. Defaults to settings.PROFILE_SEARCH_LIMIT.

        Returns:
            List[Profile]: Matching profiles; empty for a blank query.
        """
        term = _escape_pattern(query)
        if not term:
            return []
        rows = await self.gateway.query(TableQuery(
            table="profiles",
            filters=[Filter.any_of(f"username.ilike.*{term}*,full_name.ilike.*{term}*")],
            limit=limit or settings.PROFILE_SEARCH_LIMIT,
        ))
        return [Profile.from_row(row) for row in rows]

    async def ensure_profile(self, user_id: str, username: str, full_name: str = "") -> Profile:
        """
        Return the user's profile, creating it on first sign-in.

        A concurrent creation that wins the race is treated as success.

        Args:
            user_id: The authenticated user's id (also the profile id).
            username: Username to claim if the profile is new.
            full_name: Display name for a new profile; "User" when blank.

        Returns:
            Profile: The existing or newly created profile.
        """
        existing = await self.fetch_profile(user_id)
        if existing:
            return existing

        if not username.strip():
            raise ValidationError("A username is required to create a profile")

        try:
            await self.gateway.insert("profiles", {
                "id": user_id,
                "username": username.strip(),
                "full_name": full_name.strip() or "User",
            })
            logger.info(f"Created profile for {user_id}")
        except ConflictError:
            logger.info(f"Profile for {user_id} already created elsewhere")

        profile = await self.fetch_profile(user_id)
        if profile is None:
            raise ServerError(f"Profile for {user_id} missing after creation")
        return profile

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> Profile:
        payload = update.to_payload()
        if not payload:
            raise ValidationError("Nothing to update")
        rows = await self.gateway.update("profiles", payload, [Filter.eq("id", user_id)], returning=True)
        if not rows:
            raise ServerError(f"Profile {user_id} was not updated")
        logger.info(f"Updated profile {user_id}: {', '.join(sorted(payload))}")
        return Profile.from_row(rows[0])

    async def upload_avatar(self, user_id: str, image: bytes) -> str:
        """
        Upload a JPEG avatar and store its public URL on the profile.

        Args:
            user_id: Owner of the avatar.
            image: Encoded JPEG bytes (cropping happens before this call).

        Returns:
            str: The avatar's public URL.
        """
        if not image:
            raise ValidationError("Avatar image is empty")
        url = await self.gateway.upload_object(
            settings.AVATAR_BUCKET, avatar_path(user_id), image,
            content_type=settings.AVATAR_CONTENT_TYPE, upsert=True,
        )
        await self.update_profile(user_id, ProfileUpdate(avatar_url=url))
        return url
