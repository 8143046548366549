"""
Helper Utility Module

This module provides various helper functions used throughout the Kemono client.
"""

import os
import re
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse an API timestamp string into an aware datetime.

    Accepts ISO-8601 with or without a trailing 'Z', and RFC 1123 dates such as
    'Mon, 11 Mar 2024 01:23:45 GMT'. Naive values are taken as UTC. Missing or
    unparseable values map to the unix epoch so they sort last.

    Args:
        value: The timestamp string

    Returns:
        datetime: The parsed, timezone-aware datetime
    """
    if not value or not isinstance(value, str):
        return EPOCH
    value = value.strip()
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def strip_html_tags(text: str) -> str:
    """
    Remove HTML tags from text.

    Args:
        text: The text to clean

    Returns:
        str: Text with HTML tags removed
    """
    clean = re.compile('<.*?>')
    return re.sub(clean, '', text)


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


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
    return data


def ensure_dir_exists(directory) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: The directory path to check/create
    """
    if not os.path.exists(directory):
        os.makedirs(directory)
