"""
Favorites Service Module

This module maintains the locally persisted list of favorite creators. Every
operation computes a new collection from the current one and then writes the
whole collection back through the injected ClientState. A favorite is only
ever created from data the API confirmed.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from config import settings
from data.models import Favorite, Result
from data.state import ClientState
from services.protocols import ApiGatewayProtocol
from utils.exceptions import (
    ApiError, AuthError, KemonoClientError, NotFoundError, UnexpectedShapeError, ValidationError
)
from utils.helpers import parse_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)

SOURCE_ACCOUNT = "account"
SOURCE_RESPONSE_LIST = "responseList"

# Fields a record must carry to be imported from each source
REQUIRED_FIELDS = {
    SOURCE_ACCOUNT: ("id", "service", "name", "updated"),
    SOURCE_RESPONSE_LIST: ("id", "service"),
}

UNKNOWN_NAME = "Unknown Name"
ALREADY_FAVORITE_MESSAGE = "This creator is already in your favorites list."
NO_POSTS_MESSAGE = "Creator not found or has no posts."


@dataclass
class BulkImport:
    """Favorites accepted by a bulk import, not yet merged into the store."""
    favorites: List[Favorite] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.favorites)


def _favorite_from_record(source: str, record: Mapping[str, Any]) -> Favorite:
    if source == SOURCE_ACCOUNT:
        return Favorite(
            id=str(record["id"]),
            service=str(record["service"]),
            name=str(record["name"]),
            icon=str(record.get("icon") or ""),
            updated=str(record["updated"]),
        )
    return Favorite(
        id=str(record["id"]),
        service=str(record["service"]),
        name=str(record.get("name") or UNKNOWN_NAME),
        icon=str(record.get("icon") or ""),
        updated=str(record.get("updated") or settings.EPOCH_TIMESTAMP),
    )


def bulk_import(source: str, records: Iterable[Any], current: Iterable[Favorite]) -> BulkImport:
    """
    Select the records of a source list that can become new favorites.

    Records missing a required field are dropped, the rest are mapped into
    Favorite, and anything whose (id, service) is already in current (or
    earlier in the same batch) is skipped. Nothing is mutated.

    Args:
        source: SOURCE_ACCOUNT or SOURCE_RESPONSE_LIST.
        records: Raw records from the API.
        current: The existing favorites collection.

    Returns:
        BulkImport: The accepted new favorites.

    Raises:
        ValidationError: If the source is unknown.
    """
    if source not in REQUIRED_FIELDS:
        raise ValidationError(f"Unknown import source: {source}")

    required = REQUIRED_FIELDS[source]
    seen = {favorite.key for favorite in current}
    accepted = []

    for record in records:
        if not isinstance(record, Mapping):
            continue
        if not all(record.get(name) for name in required):
            continue
        favorite = _favorite_from_record(source, record)
        if favorite.key in seen:
            continue
        seen.add(favorite.key)
        accepted.append(favorite)

    return BulkImport(favorites=accepted)


def _with_prefix(error: KemonoClientError, prefix: str) -> KemonoClientError:
    """Re-create an error of the same type with context prepended to its message."""
    if isinstance(error, ApiError):
        return type(error)(f"{prefix}{error}", error.status_code)
    return type(error)(f"{prefix}{error}")


def _creator_details(post: Mapping[str, Any], creator_id: str) -> tuple:
    """Return (name, icon) for a creator from one of their posts."""
    user = post.get("user")
    if isinstance(user, Mapping):
        return str(user.get("name") or creator_id), str(user.get("icon") or "")
    return creator_id, ""


class FavoritesStore:
    """Service for the favorites collection held in ClientState."""

    def __init__(self, api: ApiGatewayProtocol, state: ClientState):
        """
        Initialize the favorites store.

        Args:
            api: Gateway used to confirm creators and import account favorites.
            state: Owned client state holding the collection.
        """
        self.api = api
        self.state = state

    @property
    def favorites(self) -> List[Favorite]:
        return list(self.state.favorites)

    def sorted_favorites(self) -> List[Favorite]:
        """Favorites for display, most recently updated first."""
        return self.state.sorted_favorites()

    def for_service(self, service: str) -> List[Favorite]:
        return [favorite for favorite in self.sorted_favorites() if favorite.service == service]

    def find(self, creator_id: str, service: str) -> Optional[Favorite]:
        for favorite in self.state.favorites:
            if favorite.key == (creator_id, service):
                return favorite
        return None

    def _merge(self, new_favorites: List[Favorite]) -> None:
        if new_favorites:
            self.state.set_favorites(self.state.favorites + new_favorites)

    def add(self, service: str, creator_id: str) -> Result:
        """
        Add a creator after confirming them through their latest post.

        Args:
            service: The creator's service, e.g. 'patreon'.
            creator_id: The creator's ID on that service.

        Returns:
            Result: The new Favorite; the existing one with a message if the
            creator is already a favorite.
        """
        service = (service or "").strip()
        creator_id = (creator_id or "").strip()
        if not service or not creator_id:
            return Result.fail(ValidationError("Service and creator ID are required."))
        if service not in settings.FAVORITABLE_SERVICES:
            return Result.fail(ValidationError(f"Creators on {service} cannot be added to favorites."))

        existing = self.find(creator_id, service)
        if existing:
            logger.info(f"{service}/{creator_id} is already a favorite")
            return Result.ok(existing, message=ALREADY_FAVORITE_MESSAGE)

        lookup = self.api.get_creator_posts(service, creator_id)
        if not lookup.success:
            logger.warning(f"Could not look up {service}/{creator_id}: {lookup.error_message}")
            return Result.fail(NotFoundError(
                f"{NO_POSTS_MESSAGE} {lookup.error_message}",
                getattr(lookup.error, "status_code", None),
            ))

        posts = lookup.data if isinstance(lookup.data, list) else []
        posts = [post for post in posts if isinstance(post, Mapping)]
        if not posts:
            return Result.fail(NotFoundError(NO_POSTS_MESSAGE))

        latest = max(posts, key=lambda post: parse_timestamp(post.get("published")))
        name, icon = _creator_details(latest, creator_id)
        favorite = Favorite(
            id=creator_id,
            service=service,
            name=name,
            icon=icon,
            updated=str(latest.get("published") or settings.EPOCH_TIMESTAMP),
        )

        try:
            self._merge([favorite])
        except KemonoClientError as e:
            logger.error(f"Failed to save favorites: {e}")
            return Result.fail(e)

        logger.info(f"Added favorite {favorite.name} ({service}/{creator_id})")
        return Result.ok(favorite, message=f"{favorite.name} has been added to your favorites.")

    def remove(self, creator_id: str, service: str) -> Result:
        """
        Remove a creator. Removing an absent creator succeeds without change.

        Returns:
            Result: True if a favorite was removed, False if none matched.
        """
        remaining = [favorite for favorite in self.state.favorites if favorite.key != (creator_id, service)]
        if len(remaining) == len(self.state.favorites):
            return Result.ok(False, message="Creator was not in your favorites.")

        try:
            self.state.set_favorites(remaining)
        except KemonoClientError as e:
            logger.error(f"Failed to save favorites: {e}")
            return Result.fail(e)

        logger.info(f"Removed favorite {service}/{creator_id}")
        return Result.ok(True, message="Favorite removed.")

    def import_from_account(self, token: Optional[str] = None) -> Result:
        """
        Import the artists favorited on the Kemono account.

        Args:
            token: Session cookie; defaults to the active session.

        Returns:
            Result: A BulkImport of the favorites that were added.
        """
        if token is None and self.state.session is not None:
            token = self.state.session.token
        if not token:
            return Result.fail(AuthError("You must be logged in to import favorites."))

        response = self.api.get_account_favorites(token, "artist")
        if not response.success:
            return Result.fail(_with_prefix(response.error, "Import failed: "))

        if not isinstance(response.data, list):
            return Result.fail(UnexpectedShapeError("Favorites data from API is not in the expected format."))

        if not response.data:
            return Result.ok(BulkImport(message="Your Kemono favorites list appears to be empty."))

        imported = bulk_import(SOURCE_ACCOUNT, response.data, self.state.favorites)
        try:
            self._merge(imported.favorites)
        except KemonoClientError as e:
            logger.error(f"Failed to save imported favorites: {e}")
            return Result.fail(e)

        if imported.count:
            imported.message = f"{imported.count} new creators have been imported and added to your list."
        else:
            imported.message = "Your local list is already up-to-date with your Kemono account."
        logger.info(imported.message)
        return Result.ok(imported, message=imported.message)

    def add_all_from_response(self, records: Any) -> Result:
        """
        Add every creator listed in an API response, e.g. moderator creator-link tasks.

        Args:
            records: The decoded response; must be a list of creator records.

        Returns:
            Result: A BulkImport of the favorites that were added.
        """
        if not isinstance(records, list):
            return Result.fail(UnexpectedShapeError("Only a list of creators can be added to favorites."))

        imported = bulk_import(SOURCE_RESPONSE_LIST, records, self.state.favorites)
        try:
            self._merge(imported.favorites)
        except KemonoClientError as e:
            logger.error(f"Failed to save favorites: {e}")
            return Result.fail(e)

        if imported.count:
            imported.message = f"{imported.count} new creators added."
        else:
            imported.message = "All displayed creators are already in your favorites."
        logger.info(imported.message)
        return Result.ok(imported, message=imported.message)
