"""
Data Models for the Chirp Client

This module contains the data classes and enums shared by the gateway,
feed and engagement layers. Row-backed models provide a ``from_row``
constructor that maps the backend's snake_case columns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from config import settings
from utils.helpers import parse_timestamp


# =============================================================================
# Enums
# =============================================================================

class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    REPOST = "repost"
    MENTION = "mention"
    MODERATION = "moderation"


class ReportReason(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    VIOLENCE = "violence"
    MISINFORMATION = "misinformation"
    OTHER = "other"


class Relation(str, Enum):
    """Kinds of interaction edge between an actor and a target."""
    LIKE = "like"
    REPOST = "repost"
    FOLLOW = "follow"


class FeedVariant(str, Enum):
    CURATED = "curated"
    FOLLOWING = "following"
    GENERAL_FALLBACK = "general-fallback"


class FeedState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EXHAUSTED = "exhausted"
    ERROR = "error"


# =============================================================================
# Entities
# =============================================================================

@dataclass
class Profile:
    """A user profile. ``id`` equals the authenticating user's ID."""
    id: str
    username: str
    full_name: str = ""
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    is_verified: bool = False
    is_curated_voice: bool = False
    voice_category: Optional[str] = None
    follower_count: int = 0
    following_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        return cls(
            id=str(row["id"]),
            username=row.get("username") or "",
            full_name=row.get("full_name") or "",
            bio=row.get("bio"),
            avatar_url=row.get("avatar_url"),
            banner_url=row.get("banner_url"),
            is_verified=bool(row.get("is_verified", False)),
            is_curated_voice=bool(row.get("is_curated_voice", False)),
            voice_category=row.get("voice_category"),
            follower_count=int(row.get("follower_count") or 0),
            following_count=int(row.get("following_count") or 0),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or settings.UNKNOWN_AUTHOR_NAME

    @property
    def display_avatar_url(self) -> str:
        return self.avatar_url or settings.DEFAULT_AVATAR_URL


@dataclass
class Post:
    """
    A post with its engagement counters.

    Counters are authoritative on the server; the values held here are a
    local cache that may diverge while an optimistic update is in flight.
    ``author`` is the joined profile, absent when the join returned nothing.
    """
    id: str
    author_id: str
    content: str
    image_url: Optional[str] = None
    like_count: int = 0
    comment_count: int = 0
    repost_count: int = 0
    view_count: int = 0
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    is_curated: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: Optional[Profile] = None
    score: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], score: Optional[float] = None) -> "Post":
        author_row = row.get("profiles")
        try:
            status = ModerationStatus(row.get("moderation_status") or ModerationStatus.PENDING.value)
        except ValueError:
            status = ModerationStatus.PENDING
        return cls(
            id=str(row["id"]),
            author_id=str(row.get("author_id") or ""),
            content=row.get("content") or "",
            image_url=row.get("image_url"),
            like_count=int(row.get("like_count") or 0),
            comment_count=int(row.get("comment_count") or 0),
            repost_count=int(row.get("repost_count") or 0),
            view_count=int(row.get("view_count") or 0),
            moderation_status=status,
            is_curated=bool(row.get("is_curated", False)),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            author=Profile.from_row(author_row) if isinstance(author_row, dict) else None,
            score=score if score is not None else row.get("score"),
        )

    @property
    def author_display_name(self) -> str:
        return self.author.display_name if self.author else settings.UNKNOWN_AUTHOR_NAME

    @property
    def author_username(self) -> str:
        return self.author.username if self.author else settings.UNKNOWN_AUTHOR_NAME

    @property
    def author_avatar_url(self) -> str:
        return self.author.display_avatar_url if self.author else settings.DEFAULT_AVATAR_URL


@dataclass
class Notification:
    """A notification delivered to ``recipient_id``; actor and post are optional joins."""
    id: str
    recipient_id: str
    type: NotificationType
    is_read: bool = False
    actor_id: Optional[str] = None
    post_id: Optional[str] = None
    created_at: Optional[datetime] = None
    actor: Optional[Profile] = None
    post: Optional[Post] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Notification":
        actor_row = row.get("actor")
        post_row = row.get("posts")
        return cls(
            id=str(row["id"]),
            recipient_id=str(row.get("user_id") or ""),
            type=NotificationType(row["type"]),
            is_read=bool(row.get("is_read", False)),
            actor_id=str(row["actor_id"]) if row.get("actor_id") else None,
            post_id=str(row["post_id"]) if row.get("post_id") else None,
            created_at=parse_timestamp(row.get("created_at")),
            actor=Profile.from_row(actor_row) if isinstance(actor_row, dict) else None,
            post=Post.from_row(post_row) if isinstance(post_row, dict) else None,
        )

    @property
    def actor_display_name(self) -> str:
        return self.actor.display_name if self.actor else settings.UNKNOWN_AUTHOR_NAME

    @property
    def actor_avatar_url(self) -> str:
        return self.actor.display_avatar_url if self.actor else settings.DEFAULT_AVATAR_URL

    @property
    def post_preview(self) -> str:
        return self.post.content if self.post else ""


@dataclass
class Trend:
    id: str
    post_count: int = 0
    is_trending: bool = False
    hashtag: Optional[str] = None
    title: Optional[str] = None
    category: Optional[str] = None
    source_name: Optional[str] = None
    source_url: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Trend":
        return cls(
            id=str(row["id"]),
            post_count=int(row.get("post_count") or 0),
            is_trending=bool(row.get("is_trending", False)),
            hashtag=row.get("hashtag"),
            title=row.get("title"),
            category=row.get("category"),
            source_name=row.get("source_name"),
            source_url=row.get("source_url"),
            image_url=row.get("image_url"),
            description=row.get("description"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            expires_at=parse_timestamp(row.get("expires_at")),
        )

    @property
    def display_title(self) -> str:
        return self.title or self.hashtag or settings.UNKNOWN_AUTHOR_NAME


@dataclass
class NewsArticle:
    """A news article cached in the backend by the ingestion job."""
    id: str
    title: str
    source_url: str
    description: Optional[str] = None
    source_name: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    published_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "NewsArticle":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            source_url=row.get("source_url") or "",
            description=row.get("description"),
            source_name=row.get("source_name"),
            image_url=row.get("image_url"),
            category=row.get("category"),
            published_at=parse_timestamp(row.get("published_at")),
        )


# =============================================================================
# Runtime Views
# =============================================================================

@dataclass
class Session:
    """The slice of auth state the core needs from the external auth provider."""
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    is_valid: bool = False

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id) and self.is_valid


@dataclass
class FeedSlice:
    """
    One fetched slice of a feed.

    ``fetched_count`` is the number of rows the backend returned for the
    requested range, which drives cursor arithmetic and the has-more check.
    It can exceed ``len(posts)`` when ranked IDs no longer resolve to a record.
    """
    posts: List[Post] = field(default_factory=list)
    fetched_count: int = 0

    @classmethod
    def empty(cls) -> "FeedSlice":
        return cls(posts=[], fetched_count=0)


@dataclass
class FeedPage:
    """In-memory page list and cursor for one feed variant."""
    variant: FeedVariant
    posts: List[Post] = field(default_factory=list)
    cursor: int = 0
    has_more: bool = True
    state: FeedState = FeedState.IDLE
    error: Optional[Exception] = None
    source: Optional[FeedVariant] = None

    def __post_init__(self):
        if self.source is None:
            self.source = self.variant

    @property
    def is_using_fallback(self) -> bool:
        return self.source == FeedVariant.GENERAL_FALLBACK and self.variant != FeedVariant.GENERAL_FALLBACK


@dataclass
class ModerationResult:
    """Scores from the moderation classifier and the policy verdict derived from them."""
    toxicity: float = 0.0
    identity_attack: float = 0.0
    threat: float = 0.0
    insult: float = 0.0

    @property
    def should_reject(self) -> bool:
        return (self.toxicity > settings.TOXICITY_REJECT_THRESHOLD
                or self.identity_attack > settings.IDENTITY_ATTACK_REJECT_THRESHOLD
                or self.threat > settings.THREAT_REJECT_THRESHOLD)

    @property
    def should_flag(self) -> bool:
        return (self.toxicity > settings.TOXICITY_FLAG_THRESHOLD
                or self.identity_attack > settings.IDENTITY_ATTACK_FLAG_THRESHOLD
                or self.threat > settings.THREAT_FLAG_THRESHOLD)

    @property
    def approved(self) -> bool:
        return not self.should_reject

    @property
    def reason(self) -> Optional[str]:
        if not (self.should_reject or self.should_flag):
            return None
        reasons = []
        if self.toxicity > settings.TOXICITY_FLAG_THRESHOLD:
            reasons.append("toxic content")
        if self.identity_attack > settings.IDENTITY_ATTACK_FLAG_THRESHOLD:
            reasons.append("identity-based attack")
        if self.threat > settings.THREAT_FLAG_THRESHOLD:
            reasons.append("threatening content")
        return ", ".join(reasons)

    def to_verdict(self) -> Dict[str, Any]:
        """The ``{approved, flagged, reason}`` shape consumed by the compose flow."""
        return {"approved": self.approved, "flagged": self.should_flag, "reason": self.reason}


@dataclass
class ProfileUpdate:
    """Editable profile fields; None means leave unchanged."""
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {key: value for key, value in (
            ("full_name", self.full_name),
            ("bio", self.bio),
            ("avatar_url", self.avatar_url),
            ("banner_url", self.banner_url),
        ) if value is not None}
