"""
Report Service Module

This module files user reports about posts, profiles and comments into
the content_reports table for review.
"""

from typing import Optional

from data.models import ReportReason
from data.protocols import DataGateway
from utils.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

REPORT_DESCRIPTION_LIMIT = 500


class ReportService:
    """Service for filing content reports."""

    def __init__(self, gateway: DataGateway):
        self.gateway = gateway

    async def report_post(self, post_id: str, reporter_id: str, reason: ReportReason,
                          description: Optional[str] = None) -> None:
        await self._file("post_id", post_id, reporter_id, reason, description)

    async def report_user(self, user_id: str, reporter_id: str, reason: ReportReason,
                          description: Optional[str] = None) -> None:
        if user_id == reporter_id:
            raise ValidationError("Users cannot report themselves")
        await self._file("reported_user_id", user_id, reporter_id, reason, description)

    async def report_comment(self, comment_id: str, reporter_id: str, reason: ReportReason,
                             description: Optional[str] = None) -> None:
        await self._file("comment_id", comment_id, reporter_id, reason, description)

    async def _file(self, subject_column: str, subject_id: str, reporter_id: str,
                    reason: ReportReason, description: Optional[str]) -> None:
        if not subject_id or not reporter_id:
            raise ValidationError("A report needs both a subject and a reporter")
        details = (description or "").strip() or None
        if details and len(details) > REPORT_DESCRIPTION_LIMIT:
            raise ValidationError(f"Report description is limited to {REPORT_DESCRIPTION_LIMIT} characters")

        await self.gateway.insert("content_reports", {
            subject_column: subject_id,
            "reporter_id": reporter_id,
            "reason": ReportReason(reason).value,
            "description": details,
        })
        logger.info(f"Filed {ReportReason(reason).value} report on {subject_column}={subject_id}")
