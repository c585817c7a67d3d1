"""
Tests for FeedRankingClient

Tests cover ranking-order preservation, the empty and unresolvable-ID
cases of the curated feed, and the query shapes of the fallback and
following feeds.
"""

import asyncio
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import make_post_row
from services.feed_ranking import FeedRankingClient
from utils.exceptions import ServerError


def params_of(query):
    return dict(query.to_params())


class TestFetchCurated:
    """Tests for the curated feed."""

    def test_preserves_ranking_order(self, mock_gateway):
        """Posts come back in ranking order even when the batch read returns them otherwise."""
        mock_gateway.call.return_value = [
            {"post_id": "p3", "score": 0.9},
            {"post_id": "p1", "score": 0.8},
            {"post_id": "p2", "score": 0.7},
        ]
        mock_gateway.query.return_value = [make_post_row("p1"), make_post_row("p2"), make_post_row("p3")]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(20, 0))

        assert [p.id for p in result.posts] == ["p3", "p1", "p2"]
        assert [p.score for p in result.posts] == [0.9, 0.8, 0.7]
        assert result.fetched_count == 3

    def test_calls_ranking_procedure_with_window(self, mock_gateway):
        """The procedure receives the requested limit and offset."""
        mock_gateway.call.return_value = []
        client = FeedRankingClient(mock_gateway)

        asyncio.run(client.fetch_curated(20, 40))

        mock_gateway.call.assert_awaited_once_with("get_curated_feed", {"limit": 20, "offset": 40})

    def test_batch_reads_ranked_ids_once(self, mock_gateway):
        """Full records are fetched with a single id-in query."""
        mock_gateway.call.return_value = [{"post_id": "p1"}, {"post_id": "p2"}]
        mock_gateway.query.return_value = [make_post_row("p1"), make_post_row("p2")]
        client = FeedRankingClient(mock_gateway)

        asyncio.run(client.fetch_curated(20, 0))

        mock_gateway.query.assert_awaited_once()
        query = mock_gateway.query.await_args.args[0]
        assert query.table == "posts"
        assert params_of(query)["id"] == "in.(p1,p2)"
        assert query.select == "*, profiles(*)"

    def test_empty_ranking_skips_record_fetch(self, mock_gateway):
        """No ranked ids means no batch read and an empty slice."""
        mock_gateway.call.return_value = []
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(20, 0))

        assert result.posts == []
        assert result.fetched_count == 0
        mock_gateway.query.assert_not_awaited()

    def test_null_ranking_result_is_empty(self, mock_gateway):
        """A procedure returning nothing is an empty slice."""
        mock_gateway.call.return_value = None
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(20, 0))

        assert result.fetched_count == 0

    def test_unresolved_ids_dropped_but_counted(self, mock_gateway):
        """Ranked ids with no record are skipped; the raw count still drives pagination."""
        mock_gateway.call.return_value = [{"post_id": "p1"}, {"post_id": "gone"}, {"post_id": "p2"}]
        mock_gateway.query.return_value = [make_post_row("p1"), make_post_row("p2")]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(20, 0))

        assert [p.id for p in result.posts] == ["p1", "p2"]
        assert result.fetched_count == 3

    def test_rows_without_id_still_counted(self, mock_gateway):
        """A malformed ranking row is skipped but still counts toward the page size."""
        mock_gateway.call.return_value = [{"post_id": "p1"}, {"score": 0.5}, {"post_id": "p2"}]
        mock_gateway.query.return_value = [make_post_row("p1"), make_post_row("p2")]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(3, 0))

        assert [p.id for p in result.posts] == ["p1", "p2"]
        assert result.fetched_count == 3

    def test_only_malformed_rows_is_not_empty(self, mock_gateway):
        """A window of unusable rows advances the cursor without fetching records."""
        mock_gateway.call.return_value = [{"score": 0.5}, {"score": 0.4}]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(2, 0))

        assert result.posts == []
        assert result.fetched_count == 2
        mock_gateway.query.assert_not_awaited()

    def test_accepts_plain_id_rows(self, mock_gateway):
        """Ranking rows may carry the post id under ``id``."""
        mock_gateway.call.return_value = [{"id": "p1"}]
        mock_gateway.query.return_value = [make_post_row("p1")]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_curated(20, 0))

        assert [p.id for p in result.posts] == ["p1"]

    def test_post_without_author_keeps_placeholder(self, mock_gateway):
        """A post whose author join is missing still renders with placeholders."""
        mock_gateway.call.return_value = [{"post_id": "p1"}]
        mock_gateway.query.return_value = [make_post_row("p1", with_author=False)]
        client = FeedRankingClient(mock_gateway)

        post = asyncio.run(client.fetch_curated(20, 0)).posts[0]

        assert post.author is None
        assert post.author_display_name == "Unknown"

    def test_gateway_errors_propagate(self, mock_gateway):
        """Backend failures are raised to the caller."""
        mock_gateway.call.side_effect = ServerError("boom", status_code=500)
        client = FeedRankingClient(mock_gateway)

        with pytest.raises(ServerError):
            asyncio.run(client.fetch_curated(20, 0))


class TestFetchFallback:
    """Tests for the general reverse-chronological feed."""

    def test_query_shape(self, mock_gateway):
        """Approved posts, newest first, in the requested window."""
        mock_gateway.query.return_value = [make_post_row("p1"), make_post_row("p2")]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_fallback(20, 20))

        params = params_of(mock_gateway.query.await_args.args[0])
        assert params["moderation_status"] == "eq.approved"
        assert params["order"] == "created_at.desc"
        assert params["offset"] == "20"
        assert params["limit"] == "20"
        assert result.fetched_count == 2


class TestFetchFollowing:
    """Tests for the following feed."""

    def test_no_follows_issues_no_posts_query(self, mock_gateway):
        """Following nobody returns an empty slice after only the follows read."""
        mock_gateway.query.return_value = []
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_following("user-1", 20, 0))

        assert result.posts == []
        assert result.fetched_count == 0
        assert mock_gateway.query.await_count == 1
        assert mock_gateway.query.await_args.args[0].table == "follows"

    def test_posts_by_followed_authors(self, mock_gateway):
        """Posts are filtered to the followed authors."""
        mock_gateway.query.side_effect = [
            [{"following_id": "a1"}, {"following_id": "a2"}],
            [make_post_row("p1", "a1"), make_post_row("p2", "a2")],
        ]
        client = FeedRankingClient(mock_gateway)

        result = asyncio.run(client.fetch_following("user-1", 20, 0))

        follows_query, posts_query = [call.args[0] for call in mock_gateway.query.await_args_list]
        assert params_of(follows_query)["follower_id"] == "eq.user-1"
        params = params_of(posts_query)
        assert params["author_id"] == "in.(a1,a2)"
        assert params["moderation_status"] == "eq.approved"
        assert params["order"] == "created_at.desc"
        assert [p.id for p in result.posts] == ["p1", "p2"]
