"""
Tests for ReportService

Tests cover filing reports about posts, users and comments.
"""

import asyncio
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import ReportReason
from services.report_service import ReportService
from utils.exceptions import ValidationError


class TestReports:
    """Tests for report filing."""

    def test_report_post(self, mock_gateway):
        """A post report names the post, reporter and reason."""
        service = ReportService(mock_gateway)

        asyncio.run(service.report_post("post-1", "user-1", ReportReason.SPAM, "  buy now  "))

        mock_gateway.insert.assert_awaited_once_with("content_reports", {
            "post_id": "post-1",
            "reporter_id": "user-1",
            "reason": "spam",
            "description": "buy now",
        })

    def test_report_user(self, mock_gateway):
        """A user report uses the reported_user_id column."""
        service = ReportService(mock_gateway)

        asyncio.run(service.report_user("user-2", "user-1", ReportReason.HARASSMENT))

        _, payload = mock_gateway.insert.await_args.args
        assert payload["reported_user_id"] == "user-2"
        assert payload["description"] is None

    def test_report_comment(self, mock_gateway):
        """A comment report uses the comment_id column."""
        service = ReportService(mock_gateway)

        asyncio.run(service.report_comment("c1", "user-1", ReportReason.OTHER))

        _, payload = mock_gateway.insert.await_args.args
        assert payload["comment_id"] == "c1"

    def test_self_report_rejected(self, mock_gateway):
        """Users cannot report themselves."""
        with pytest.raises(ValidationError):
            asyncio.run(ReportService(mock_gateway).report_user("user-1", "user-1", ReportReason.SPAM))

        mock_gateway.insert.assert_not_awaited()

    def test_long_description_rejected(self, mock_gateway):
        """Descriptions are capped at 500 characters."""
        with pytest.raises(ValidationError):
            asyncio.run(ReportService(mock_gateway).report_post("post-1", "user-1", ReportReason.OTHER, "x" * 501))

    def test_reason_accepts_plain_string(self, mock_gateway):
        """Reasons may be passed as their stored value."""
        asyncio.run(ReportService(mock_gateway).report_post("post-1", "user-1", "hate_speech"))

        _, payload = mock_gateway.insert.await_args.args
        assert payload["reason"] == "hate_speech"
