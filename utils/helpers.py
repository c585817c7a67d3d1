"""
Helper Utility Module

This module provides small helper functions used throughout the Chirp client.
"""

from typing import Any, Awaitable, Dict, Optional
from datetime import datetime, timezone

from utils.exceptions import ChirpError
from utils.logger import get_logger

logger = get_logger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as returned by the backend.

    Args:
        value: A string such as ``2025-12-05T10:00:00Z``, a datetime, or None.

    Returns:
        Optional[datetime]: A timezone-aware datetime, or None if the value is absent or malformed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Unparseable timestamp from backend: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_count(count: int, noun: str = "posts") -> str:
    """
    Format a large count for display, e.g. ``78.0K posts``.

    Args:
        count: The raw count.
        noun: The trailing noun.

    Returns:
        str: The formatted count.
    """
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M {noun}"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K {noun}"
    return f"{count} {noun}"


def relative_timestamp(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Describe how long ago ``moment`` was, e.g. ``23 hours ago``.

    Args:
        moment: The point in time to describe.
        now: Reference time; defaults to the current UTC time.

    Returns:
        str: A short human-readable description.
    """
    if moment is None:
        return ""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} min ago"
    return "Just now"


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data if data is not None else default


async def best_effort(operation: Awaitable[Any], description: str) -> bool:
    """
    Await a non-critical side effect, logging instead of raising on failure.

    The primary action that triggered ``operation`` is never reverted or
    blocked by its outcome.

    Args:
        operation: The awaitable to run (e.g. a notification insert).
        description: Short label used in the log line.

    Returns:
        bool: True if the operation completed, False if it failed.
    """
    try:
        await operation
        return True
    except ChirpError as e:
        logger.warning(f"Non-critical {description} failed: {e}")
        return False
    except Exception as e:
        logger.warning(f"Unexpected error in non-critical {description}: {e}", exc_info=True)
        return False
