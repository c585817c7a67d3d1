"""
Custom Exception Classes for the Chirp Client Core

This module defines custom exceptions for better error handling and
categorization of failures across the feed, engagement and compose layers.
"""

from typing import Optional


class ChirpError(Exception):
    """Base exception for all Chirp client errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(ChirpError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Gateway Errors
# =============================================================================

class GatewayError(ChirpError):
    """Base exception for failures talking to the hosted backend."""
    pass


class TransientNetworkError(GatewayError):
    """Raised on lost connectivity or transport timeout. Safe for the caller to retry."""
    pass


class AuthExpiredError(GatewayError):
    """Raised when the session is no longer valid. The caller must re-authenticate."""
    pass


class ConflictError(GatewayError):
    """Raised when an insert collides with an existing unique row (duplicate edge)."""
    pass


class ServerError(GatewayError):
    """Raised for an unexpected 4xx/5xx response from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Content Errors
# =============================================================================

class ValidationError(ChirpError):
    """Raised when input is rejected before anything is sent to the network."""
    pass


class ContentRejectedError(ValidationError):
    """Raised when the moderation classifier rejects post content."""

    def __init__(self, reason: str):
        super().__init__(f"Content rejected: {reason}")
        self.reason = reason


class ModerationError(ChirpError):
    """Raised when the moderation classifier cannot produce a verdict."""
    pass
