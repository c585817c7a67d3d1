"""
Configuration Validation for the Chirp Client

This module contains configuration validation logic and the startup
configuration summary.
"""

from utils.exceptions import ConfigurationError


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Required environment variables
    required_vars = [
        ("SUPABASE_URL", settings.SUPABASE_URL),
        ("SUPABASE_ANON_KEY", settings.SUPABASE_ANON_KEY),
    ]

    for var_name, var_value in required_vars:
        if not var_value:
            errors.append(f"Missing required environment variable: {var_name}")

    if settings.SUPABASE_URL and not settings.SUPABASE_URL.startswith(("http://", "https://")):
        errors.append(f"SUPABASE_URL must be an http(s) URL, got {settings.SUPABASE_URL}")

    # A session is optional (read-only commands work anonymously) but must be complete
    if bool(settings.CHIRP_ACCESS_TOKEN) != bool(settings.CHIRP_USER_ID):
        errors.append("CHIRP_ACCESS_TOKEN and CHIRP_USER_ID must be set together.")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("FEED_PAGE_SIZE", settings.FEED_PAGE_SIZE, 1, 100),
        ("POST_CHARACTER_LIMIT", settings.POST_CHARACTER_LIMIT, 1, 10000),
        ("NOTIFICATIONS_FETCH_LIMIT", settings.NOTIFICATIONS_FETCH_LIMIT, 1, 500),
        ("TRENDS_FETCH_LIMIT", settings.TRENDS_FETCH_LIMIT, 1, 500),
        ("NEWS_ARTICLES_FETCH_LIMIT", settings.NEWS_ARTICLES_FETCH_LIMIT, 1, 500),
        ("PROFILE_SEARCH_LIMIT", settings.PROFILE_SEARCH_LIMIT, 1, 500),
        ("TOXICITY_REJECT_THRESHOLD", settings.TOXICITY_REJECT_THRESHOLD, 0.0, 1.0),
        ("IDENTITY_ATTACK_REJECT_THRESHOLD", settings.IDENTITY_ATTACK_REJECT_THRESHOLD, 0.0, 1.0),
        ("THREAT_REJECT_THRESHOLD", settings.THREAT_REJECT_THRESHOLD, 0.0, 1.0),
        ("TOXICITY_FLAG_THRESHOLD", settings.TOXICITY_FLAG_THRESHOLD, 0.0, 1.0),
        ("IDENTITY_ATTACK_FLAG_THRESHOLD", settings.IDENTITY_ATTACK_FLAG_THRESHOLD, 0.0, 1.0),
        ("THREAT_FLAG_THRESHOLD", settings.THREAT_FLAG_THRESHOLD, 0.0, 1.0),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # The flag band must sit below the reject band
    band_pairs = [
        ("TOXICITY", settings.TOXICITY_FLAG_THRESHOLD, settings.TOXICITY_REJECT_THRESHOLD),
        ("IDENTITY_ATTACK", settings.IDENTITY_ATTACK_FLAG_THRESHOLD, settings.IDENTITY_ATTACK_REJECT_THRESHOLD),
        ("THREAT", settings.THREAT_FLAG_THRESHOLD, settings.THREAT_REJECT_THRESHOLD),
    ]

    for name, flag, reject in band_pairs:
        if flag > reject:
            errors.append(f"{name}_FLAG_THRESHOLD ({flag}) must not exceed {name}_REJECT_THRESHOLD ({reject})")

    if settings.MODERATION_TIMEOUT <= 0:
        errors.append(f"MODERATION_TIMEOUT must be positive, got {settings.MODERATION_TIMEOUT}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    url = settings.SUPABASE_URL
    return {
        "backend": {
            "url": url[:30] + "..." if url and len(url) > 30 else url,
            "anon_key_configured": bool(settings.SUPABASE_ANON_KEY),
        },
        "session": {
            "signed_in": bool(settings.CHIRP_ACCESS_TOKEN and settings.CHIRP_USER_ID),
        },
        "moderation": {
            "classifier_configured": bool(settings.PERSPECTIVE_API_KEY),
            "fail_open": True,
        },
        "feed_settings": {
            "page_size": settings.FEED_PAGE_SIZE,
            "post_char_limit": settings.POST_CHARACTER_LIMIT,
        },
    }
