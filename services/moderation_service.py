"""
Moderation Service Module

This module scores text with Google's Perspective API (toxicity, identity
attack, threat, insult) and turns the scores into an approve / flag /
reject verdict. Moderation is best-effort: a missing API key or any
classifier failure lets the content through.
"""

from typing import Any, Dict, Optional

import requests

from config import settings
from data.models import ModerationResult
from utils.exceptions import ModerationError
from utils.helpers import safe_get
from utils.logger import get_logger

logger = get_logger(__name__)

ATTRIBUTES = ("TOXICITY", "IDENTITY_ATTACK", "THREAT", "INSULT")


class ModerationService:
    """Client for the Perspective comment analyzer."""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.PERSPECTIVE_API_KEY
        self.api_url = api_url or settings.PERSPECTIVE_API_URL
        self.timeout = timeout or settings.MODERATION_TIMEOUT

        if not self.api_key:
            logger.warning("Perspective API key not configured; moderation will approve all content")

    def analyze(self, text: str) -> ModerationResult:
        """
        Score ``text`` with the classifier.

        Args:
            text: The content to score.

        Returns:
            ModerationResult: The attribute scores; all zero when no API key is configured.

        Raises:
            ModerationError: If the API call fails or returns an error payload.
        """
        if not self.api_key:
            return ModerationResult()

        body = {
            "comment": {"text": text},
            "languages": settings.MODERATION_LANGUAGES,
            "requestedAttributes": {attribute: {} for attribute in ATTRIBUTES},
        }

        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ModerationError(f"Moderation request failed: {e}") from e

        if response.status_code != 200:
            raise ModerationError(f"Moderation API error: {response.status_code}")

        try:
            payload: Dict[str, Any] = response.json()
        except ValueError as e:
            raise ModerationError(f"Malformed moderation response: {e}") from e

        if payload.get("error"):
            raise ModerationError(f"Moderation error: {safe_get(payload, 'error', 'message', default='unknown')}")

        scores = payload.get("attributeScores") or {}

        def score(attribute: str) -> float:
            return float(safe_get(scores, attribute, "summaryScore", "value", default=0.0))

        return ModerationResult(
            toxicity=score("TOXICITY"),
            identity_attack=score("IDENTITY_ATTACK"),
            threat=score("THREAT"),
            insult=score("INSULT"),
        )

    def classify(self, text: str) -> Dict[str, Any]:
        """
        Return the ``{approved, flagged, reason}`` verdict for ``text``.

        Classifier failures are logged and fail open (approved, unflagged).
        """
        try:
            result = self.analyze(text)
        except ModerationError as e:
            logger.warning(f"Moderation unavailable, allowing content: {e}")
            return ModerationResult().to_verdict()

        verdict = result.to_verdict()
        if not verdict["approved"]:
            logger.info(f"Content rejected by moderation: {verdict['reason']}")
        elif verdict["flagged"]:
            logger.warning(f"Content flagged but approved: {verdict['reason']}")
        return verdict
