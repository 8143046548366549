"""
Client State Module for Kemono Client

This module owns the process-wide state of the client: the active session and
the favorites collection. State is loaded once at startup and saved as a whole
on every change. Components receive the ClientState instance they work on.
"""

import json
from typing import Iterable, List, Optional

from config import settings
from data.models import Favorite, Session
from data.protocols import KeyValueStorage
from utils.exceptions import StorageError
from utils.helpers import parse_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)


def sort_favorites(favorites: Iterable[Favorite]) -> List[Favorite]:
    """Return favorites ordered by 'updated', most recent first."""
    return sorted(favorites, key=lambda fav: parse_timestamp(fav.updated), reverse=True)


class ClientState:
    """Session and favorites state with load-at-init / save-on-change lifecycle."""

    def __init__(self, storage: KeyValueStorage):
        """
        Initialize an empty state bound to a storage backend.

        Args:
            storage: Where the session and favorites slots live.
        """
        self.storage = storage
        self.session: Optional[Session] = None
        self.favorites: List[Favorite] = []

    @classmethod
    def load(cls, storage: KeyValueStorage) -> "ClientState":
        """
        Create a state object populated from storage.

        Unreadable or malformed slots are logged and treated as empty.
        """
        state = cls(storage)
        state.session = state._load_session()
        state.favorites = state._load_favorites()
        return state

    def _read_json(self, key: str):
        try:
            raw = self.storage.get_item(key)
        except StorageError as e:
            logger.warning(f"Error reading local storage slot {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed local storage slot {key}: {e}")
            return None

    def _load_session(self) -> Optional[Session]:
        data = self._read_json(settings.SESSION_STORAGE_KEY)
        if not data:
            return None
        try:
            return Session.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring invalid persisted session: {e}")
            return None

    def _load_favorites(self) -> List[Favorite]:
        data = self._read_json(settings.FAVORITES_STORAGE_KEY)
        if not isinstance(data, list):
            return []

        favorites = []
        seen = set()
        for item in data:
            # Favorites saved before 'updated' existed get the epoch default.
            # Storage is not rewritten here; the next save persists it.
            try:
                favorite = Favorite.from_dict(item, default_updated=settings.EPOCH_TIMESTAMP)
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping malformed persisted favorite: {item!r}")
                continue
            if favorite.key in seen:
                continue
            seen.add(favorite.key)
            favorites.append(favorite)

        logger.debug(f"Loaded {len(favorites)} favorites from local storage")
        return favorites

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    def set_session(self, session: Optional[Session]) -> None:
        """Replace the session (None logs out) and persist it. Reverts if the write fails."""
        previous = self.session
        self.session = session
        try:
            self.save_session()
        except StorageError:
            self.session = previous
            raise

    def set_favorites(self, favorites: Iterable[Favorite]) -> None:
        """Replace the favorites collection and persist it. Reverts if the write fails."""
        previous = self.favorites
        self.favorites = list(favorites)
        try:
            self.save_favorites()
        except StorageError:
            self.favorites = previous
            raise

    def save_session(self) -> None:
        if self.session is None:
            self.storage.remove_item(settings.SESSION_STORAGE_KEY)
        else:
            self.storage.set_item(settings.SESSION_STORAGE_KEY, json.dumps(self.session.to_dict()))

    def save_favorites(self) -> None:
        payload = [favorite.to_dict() for favorite in self.favorites]
        self.storage.set_item(settings.FAVORITES_STORAGE_KEY, json.dumps(payload, ensure_ascii=False))

    def sorted_favorites(self) -> List[Favorite]:
        return sort_favorites(self.favorites)
