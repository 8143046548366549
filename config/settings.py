"""
Configuration Settings for Kemono Client

This module centralizes all configuration settings for the Kemono client,
including environment variables, API endpoints, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# Remote API Settings
# =============================================================================

KEMONO_BASE_URL = os.getenv("KEMONO_BASE_URL", "https://kemono.su")
KEMONO_API_BASE_URL = os.getenv("KEMONO_API_BASE_URL", f"{KEMONO_BASE_URL}/api/v1")

# Standard browser User-Agent to avoid simple bot detection
USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36'
REQUEST_HEADERS = {
    'Accept': 'application/json',
    'User-Agent': USER_AGENT,
}

# Name of the cookie set by /authentication/login. If the API renames it,
# this is the only value that has to change.
SESSION_COOKIE_NAME = os.getenv("KEMONO_SESSION_COOKIE_NAME", "session")

# =============================================================================
# Local Persistence Settings
# =============================================================================

STATE_DIR = Path(os.getenv("KEMONO_STATE_DIR", APP_ROOT / ".kemono"))
SESSION_STORAGE_KEY = "kemonoUser"
FAVORITES_STORAGE_KEY = "kemonoFavorites"

# Default 'updated' value for favorites that never had one
EPOCH_TIMESTAMP = "1970-01-01T00:00:00.000Z"

# =============================================================================
# Service Settings
# =============================================================================

SERVICES = {
    "patreon": "Patreon",
    "fanbox": "Fanbox",
    "fantia": "Fantia",
    "subscribestar": "SubscribeStar",
    "dlsite": "DLsite",
    "gumroad": "Gumroad",
    "discord": "Discord (Server)",
    "onlyfans": "OnlyFans",
}

# Discord creators are servers and live under /discord/server/{id}
SERVER_STYLE_SERVICE = "discord"
FAVORITABLE_SERVICES = [s for s in SERVICES if s != SERVER_STYLE_SERVICE]

DISCORD_LOOKUP_TYPES = ["channel", "server", "member"]
ACCOUNT_FAVORITE_TYPES = ["artist", "sticker"]

# =============================================================================
# Feed Settings
# =============================================================================

FEED_PAGE_SIZE = 50                  # Posts shown per "load more" step
FEED_MAX_WORKERS = int(os.getenv("KEMONO_FEED_MAX_WORKERS", "8"))  # Parallel creator fetches

# =============================================================================
# Logging Settings
# =============================================================================

LOG_FILE = os.getenv("KEMONO_LOG_FILE", "kemono_client.log")
LOG_LEVEL = os.getenv("KEMONO_LOG_LEVEL", "INFO")
