"""
Chirp Client Core

This is the command-line entry point for the Chirp client core. It wires
the gateway, feed, engagement, compose and explore services together and
exposes a few commands for exercising them against a live backend:
reading a feed, listing notifications, listing trends, and posting.
"""

import sys
import asyncio
import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional

from config import settings
from config.validators import get_config_summary
from data.gateway import SupabaseGateway
from data.models import FeedState, FeedVariant, Post, Session
from services.engagement import EngagementCoordinator
from services.feed_pager import FeedPager
from services.feed_ranking import FeedRankingClient
from services.interaction_cache import InteractionStateCache
from services.moderation_service import ModerationService
from services.notification_service import NotificationService
from services.post_service import PostService
from services.profile_service import ProfileService
from services.report_service import ReportService
from services.trends_service import TrendsService
from utils.exceptions import ChirpError, ContentRejectedError, ValidationError
from utils.helpers import format_count, relative_timestamp
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)


@dataclass
class ChirpApp:
    """Every component of the client, wired to one gateway and one session."""
    session: Session
    gateway: SupabaseGateway
    ranking: FeedRankingClient
    pager: FeedPager
    cache: InteractionStateCache
    notifications: NotificationService
    engagement: EngagementCoordinator
    moderation: ModerationService
    posts: PostService
    profiles: ProfileService
    reports: ReportService
    trends: TrendsService

    async def close(self) -> None:
        await self.gateway.close()


def create_app(session: Optional[Session] = None, gateway: Optional[SupabaseGateway] = None) -> ChirpApp:
    """
    Build the application from settings.

    Args:
        session: Auth state to use. Defaults to the token and user id from settings.
        gateway: Gateway to use. Defaults to one built from settings.

    Returns:
        ChirpApp: The wired components.
    """
    if session is None:
        session = Session(
            user_id=settings.CHIRP_USER_ID,
            access_token=settings.CHIRP_ACCESS_TOKEN,
            is_valid=bool(settings.CHIRP_USER_ID and settings.CHIRP_ACCESS_TOKEN),
        )
    if gateway is None:
        gateway = SupabaseGateway.from_settings(access_token=session.access_token)

    ranking = FeedRankingClient(gateway)
    cache = InteractionStateCache()
    notifications = NotificationService(gateway)
    moderation = ModerationService()

    return ChirpApp(
        session=session,
        gateway=gateway,
        ranking=ranking,
        pager=FeedPager(ranking, session),
        cache=cache,
        notifications=notifications,
        engagement=EngagementCoordinator(gateway, cache, notifications),
        moderation=moderation,
        posts=PostService(gateway, moderation),
        profiles=ProfileService(gateway),
        reports=ReportService(gateway),
        trends=TrendsService(gateway),
    )


def format_post(post: Post) -> str:
    """Render a post as a single console line."""
    age = relative_timestamp(post.created_at) if post.created_at else ""
    return (f"@{post.author_username} ({post.author_display_name}) {age}: {post.content} "
            f"[{post.like_count} likes, {post.repost_count} reposts, {post.view_count} views]")


# =============================================================================
# Commands
# =============================================================================

async def show_feed(app: ChirpApp, variant: FeedVariant, pages: int) -> bool:
    page = await app.pager.refresh(variant)
    for _ in range(pages - 1):
        if page.state != FeedState.LOADED:
            break
        page = await app.pager.load_more(variant)

    if page.state == FeedState.ERROR:
        logger.error(f"Could not load the {variant.value} feed: {page.error}")
        return False

    if page.is_using_fallback:
        print("(curated feed is empty; showing the latest posts)")
    for post in page.posts:
        print(format_post(post))
    logger.info(f"Showed {len(page.posts)} posts from the {page.source.value} feed")
    return True


async def show_notifications(app: ChirpApp) -> bool:
    if not app.session.is_signed_in:
        logger.error("Notifications require CHIRP_USER_ID and CHIRP_ACCESS_TOKEN")
        return False

    items = await app.notifications.fetch_notifications(app.session.user_id)
    unread = await app.notifications.unread_count(app.session.user_id)
    print(f"{unread} unread")
    for item in items:
        marker = " " if item.is_read else "*"
        preview = f": {item.post_preview}" if item.post_preview else ""
        print(f"{marker} {item.actor_display_name} {item.type.value}{preview}")
    return True


async def show_trends(app: ChirpApp, category: Optional[str]) -> bool:
    if category:
        trends = await app.trends.fetch_by_category(category)
    else:
        trends = await app.trends.fetch_trends()
    for trend in trends:
        print(f"{trend.display_title} - {format_count(trend.post_count)}")
    return True


async def publish(app: ChirpApp, text: str) -> bool:
    try:
        post = await app.posts.create_post(app.session, text)
    except ContentRejectedError as e:
        logger.warning(f"Post not published: {e.reason}")
        return False
    except ValidationError as e:
        logger.warning(f"Post not published: {e}")
        return False

    app.pager.insert_post(post)
    print(format_post(post))
    return True


async def run_command(app: ChirpApp, args: argparse.Namespace) -> bool:
    """Dispatch a parsed command; the gateway is closed afterwards."""
    try:
        if args.command == "feed":
            return await show_feed(app, FeedVariant(args.variant), args.pages)
        if args.command == "notifications":
            return await show_notifications(app)
        if args.command == "trends":
            return await show_trends(app, args.category)
        if args.command == "post":
            return await publish(app, " ".join(args.text))
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await app.close()


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Chirp client core')
    parser.add_argument('--log-file', type=str, default='chirp.log', help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')

    commands = parser.add_subparsers(dest='command', required=True)

    feed = commands.add_parser('feed', help='Print a feed')
    feed.add_argument('--variant', choices=[v.value for v in FeedVariant], default=FeedVariant.CURATED.value,
                      help='Which feed to read')
    feed.add_argument('--pages', type=int, default=1, help='Number of pages to load')

    commands.add_parser('notifications', help="Print the signed-in user's notifications")

    trends = commands.add_parser('trends', help='Print trending topics')
    trends.add_argument('--category', type=str, default=None, help='Only trends in this category')

    post = commands.add_parser('post', help='Publish a post as the signed-in user')
    post.add_argument('text', nargs='+', help='Post content')

    args = parser.parse_args(argv)
    if args.command == 'feed' and args.pages < 1:
        parser.error('--pages must be at least 1')
    return args


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Starting Chirp client: {args.command}")

    try:
        settings.validate_settings()
        logger.debug(f"Configuration: {get_config_summary()}")

        app = create_app()
        success = asyncio.run(run_command(app, args))

        if success:
            logger.info(f"Command {args.command} completed successfully")
            exit_code = 0
        else:
            logger.warning(f"Command {args.command} completed with warnings or errors")
            exit_code = 1

    except ChirpError as e:
        logger.error(f"{type(e).__name__}: {e}")
        exit_code = 1
    except Exception as e:
        logger.error(f"Unhandled exception in Chirp client: {e}", exc_info=True)
        exit_code = 2

    logger.info(f"Chirp client finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
