"""
Configuration Validation for Kemono Client

This module contains configuration validation logic.
Extracted from settings.py for better separation of concerns.
"""

import logging

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []
    logger = logging.getLogger(__name__)

    # Remote endpoints must be absolute URLs
    url_settings = [
        ("KEMONO_BASE_URL", settings.KEMONO_BASE_URL),
        ("KEMONO_API_BASE_URL", settings.KEMONO_API_BASE_URL),
    ]

    for name, value in url_settings:
        if not is_valid_url(value):
            errors.append(f"{name} must be an absolute URL, got {value!r}")

    if not settings.SESSION_COOKIE_NAME:
        errors.append("KEMONO_SESSION_COOKIE_NAME must not be empty")

    if settings.SERVER_STYLE_SERVICE not in settings.SERVICES:
        errors.append(f"SERVER_STYLE_SERVICE {settings.SERVER_STYLE_SERVICE!r} is not a known service")

    if settings.SESSION_STORAGE_KEY == settings.FAVORITES_STORAGE_KEY:
        errors.append("Session and favorites storage keys must differ")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("FEED_PAGE_SIZE", settings.FEED_PAGE_SIZE, 1, 1000),
        ("FEED_MAX_WORKERS", settings.FEED_MAX_WORKERS, 1, 64),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    if settings.KEMONO_BASE_URL and not settings.KEMONO_API_BASE_URL.startswith(settings.KEMONO_BASE_URL):
        logger.warning("KEMONO_API_BASE_URL does not live under KEMONO_BASE_URL; "
                       "media links and API calls will point at different hosts.")

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

    return {
        "api": {
            "base_url": settings.KEMONO_API_BASE_URL,
            "site_url": settings.KEMONO_BASE_URL,
            "session_cookie": settings.SESSION_COOKIE_NAME,
        },
        "storage": {
            "state_dir": str(settings.STATE_DIR),
            "slots": [settings.SESSION_STORAGE_KEY, settings.FAVORITES_STORAGE_KEY],
        },
        "feed_settings": {
            "page_size": settings.FEED_PAGE_SIZE,
            "max_workers": settings.FEED_MAX_WORKERS,
        },
        "services": list(settings.SERVICES),
    }
