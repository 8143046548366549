"""
Feed Service Module

This module builds the combined feed across favorite creators. One request per
favorite is issued in parallel, every request is waited for, failures of
individual creators are logged and skipped, and the collected posts are merged
newest first. Display paging over the merged feed happens locally.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Optional

from config import settings
from data.models import Favorite, Post, Result
from services.protocols import ApiGatewayProtocol
from utils.exceptions import (
    ApiError, KemonoClientError, NotFoundError, PartialFailure, UnexpectedShapeError
)
from utils.helpers import parse_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)

NO_FEED_POSTS_MESSAGE = "Could not fetch posts from any of your favorite creators."


def sort_posts(posts: Iterable[Post]) -> List[Post]:
    """Return posts ordered by 'published', newest first."""
    return sorted(posts, key=lambda post: parse_timestamp(post.published), reverse=True)


def posts_from_payload(data: Any) -> List[Post]:
    """
    Convert a creator's post list payload into Post objects.

    Items that do not satisfy the post contract are skipped.

    Raises:
        UnexpectedShapeError: If the payload is not a list.
    """
    if not isinstance(data, list):
        raise UnexpectedShapeError("The API returned posts in an unexpected format.")

    posts = []
    for item in data:
        try:
            posts.append(Post.from_api(item))
        except UnexpectedShapeError:
            logger.debug(f"Skipping non-post item in post list: {item!r}")
    return posts


class FeedAggregator:
    """Service for fetching creator posts and the merged favorites feed."""

    def __init__(self, api: ApiGatewayProtocol, max_workers: Optional[int] = None):
        """
        Initialize the aggregator.

        Args:
            api: Gateway used for post requests.
            max_workers: Upper bound on parallel requests. Defaults to settings.FEED_MAX_WORKERS.
        """
        self.api = api
        self.max_workers = max_workers or settings.FEED_MAX_WORKERS

    def _fetch_favorite(self, favorite: Favorite) -> List[Post]:
        result = self.api.get_creator_posts(favorite.service, favorite.id)
        return posts_from_payload(result.unwrap())

    def fetch_all(self, favorites: Iterable[Favorite]) -> Result:
        """
        Fetch and merge the posts of every favorite.

        Args:
            favorites: The creators to include.

        Returns:
            Result: All collected posts, newest first. Per-creator failures are
            listed in Result.warnings. Fails only if nothing was collected.
        """
        favorites = list(favorites)
        if not favorites:
            return Result.ok([])

        all_posts: List[Post] = []
        failures: List[PartialFailure] = []

        workers = max(1, min(self.max_workers, len(favorites)))
        # Workers share the gateway's requests.Session; every call is a read-only GET.
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [(favorite, executor.submit(self._fetch_favorite, favorite)) for favorite in favorites]

            # Join on every request before merging; results are taken in submission order.
            for favorite, future in futures:
                try:
                    all_posts.extend(future.result())
                except KemonoClientError as e:
                    failures.append(self._record_failure(favorite, e))
                except Exception as e:
                    logger.error(f"Unexpected error fetching {favorite.service}/{favorite.id}", exc_info=True)
                    failures.append(self._record_failure(favorite, e))

        if not all_posts:
            if len(failures) == len(favorites):
                return Result.fail(ApiError(NO_FEED_POSTS_MESSAGE))
            return Result.fail(NotFoundError(NO_FEED_POSTS_MESSAGE))

        merged = sort_posts(all_posts)
        logger.info(
            f"Fetched {len(merged)} posts from {len(favorites) - len(failures)} of {len(favorites)} favorites"
        )
        return Result.ok(merged, warnings=failures)

    @staticmethod
    def _record_failure(favorite: Favorite, error: Exception) -> PartialFailure:
        failure = PartialFailure(
            f"Failed to fetch posts for {favorite.name or favorite.id} ({favorite.service}/{favorite.id}): {error}",
            service=favorite.service,
            creator_id=favorite.id,
        )
        logger.warning(str(failure))
        return failure

    def fetch_creator_posts(self, service: str, creator_id: str) -> Result:
        """
        Fetch one creator's posts, newest first.

        Returns:
            Result: The sorted list of Post objects.
        """
        result = self.api.get_creator_posts(service, creator_id)
        if not result.success:
            return result
        try:
            return Result.ok(sort_posts(posts_from_payload(result.data)))
        except UnexpectedShapeError as e:
            return Result.fail(e)

    def fetch_post(self, service: str, creator_id: str, post_id: str) -> Result:
        """
        Fetch a single post.

        Returns:
            Result: The Post on success.
        """
        result = self.api.get_post(service, creator_id, post_id)
        if not result.success:
            return result

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict) and isinstance(data.get("post"), dict):
            data = data["post"]

        try:
            return Result.ok(Post.from_api(data))
        except UnexpectedShapeError as e:
            logger.warning(f"Unexpected post payload for {service}/{creator_id}/{post_id}")
            return Result.fail(e)


class FeedPager:
    """
    Client-side window over a merged feed.

    The full list is kept; the visible window starts at one page and grows by
    one page per load_more() call without re-fetching.
    """

    def __init__(self, posts: Optional[Iterable[Post]] = None, page_size: Optional[int] = None):
        self.page_size = page_size or settings.FEED_PAGE_SIZE
        self.reset(posts or [])

    def reset(self, posts: Iterable[Post]) -> None:
        self.posts = list(posts)
        self.visible_count = self.page_size

    @property
    def visible(self) -> List[Post]:
        return self.posts[:self.visible_count]

    @property
    def has_more(self) -> bool:
        return self.visible_count < len(self.posts)

    def load_more(self) -> List[Post]:
        """Grow the window by one page and return the visible posts."""
        if self.has_more:
            self.visible_count += self.page_size
        return self.visible
