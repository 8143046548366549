"""
API Gateway Module

This module wraps every outbound call to the Kemono API. It builds URLs from
the configured base URL, attaches the default browser headers and the session
cookie, and normalizes successes and failures into Result objects so that no
HTTP or network exception escapes to callers.
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from config import settings
from data.models import Result
from utils.exceptions import (
    ApiError, AuthError, NotFoundError, TransportError, UnexpectedShapeError, ValidationError
)
from utils.logger import get_logger

logger = get_logger(__name__)

CONNECTION_ERROR_MESSAGE = (
    "Could not connect to the API. Please check your internet connection or try again later."
)
UNKNOWN_TRANSPORT_ERROR_MESSAGE = "An unknown error occurred during the API request."
NO_CONTENT_PAYLOAD = {"message": "Request successful."}


def _require(value: Any, label: str) -> str:
    """Return the trimmed, URL-quoted value or raise ValidationError if it is blank."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required.")
    return quote(str(value).strip(), safe="")


def _require_token(token: Optional[str], action: str) -> str:
    if not token:
        raise AuthError(f"You must be logged in to {action}.")
    return token


def creator_path(service: str, creator_id: str) -> str:
    """
    Build the path of a creator's post list.

    Discord creators are servers and use the server collection; every other
    service uses the user collection.

    Raises:
        ValidationError: If service or creator_id is blank.
    """
    service = _require(service, "Service")
    creator_id = _require(creator_id, "Creator ID")
    if service == settings.SERVER_STYLE_SERVICE:
        return f"/{service}/server/{creator_id}"
    return f"/{service}/user/{creator_id}"


def post_path(service: str, creator_id: str, post_id: str) -> str:
    """
    Build the path of a single post.

    Raises:
        ValidationError: If any identifier is blank.
    """
    return f"{creator_path(service, creator_id)}/post/{_require(post_id, 'Post ID')}"


class KemonoApiGateway:
    """Gateway for the Kemono REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the gateway.

        Args:
            base_url: API root. Defaults to settings.KEMONO_API_BASE_URL.
            http_session: requests session to send through. A new one is created if omitted.
            headers: Default headers. Defaults to settings.REQUEST_HEADERS.
        """
        self.base_url = (base_url or settings.KEMONO_API_BASE_URL).rstrip("/")
        self.http = http_session or requests.Session()
        self.headers = dict(headers if headers is not None else settings.REQUEST_HEADERS)

    def _build_headers(self, token: Optional[str], has_body: bool) -> Dict[str, str]:
        headers = dict(self.headers)
        if token:
            headers['Cookie'] = token
        if has_body:
            headers['Content-Type'] = 'application/json'
        return headers

    def send(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        token: Optional[str] = None
    ) -> requests.Response:
        """
        Send a request and return the raw response, whatever its status.

        Args:
            path: API path appended to the base URL.
            method: HTTP method.
            body: JSON-serializable request body.
            token: Session cookie to authenticate with.

        Returns:
            requests.Response: The raw response.

        Raises:
            TransportError: If the API cannot be reached.
        """
        url = f"{self.base_url}{path}"
        data = json.dumps(body) if body is not None else None
        try:
            return self.http.request(
                method.upper(),
                url,
                headers=self._build_headers(token, data is not None),
                data=data,
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Kemono API request to path '{path}' failed: {e}")
            raise TransportError(CONNECTION_ERROR_MESSAGE) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Kemono API request to path '{path}' failed: {e}")
            raise TransportError(UNKNOWN_TRANSPORT_ERROR_MESSAGE) from e

    def error_message(self, response: requests.Response) -> str:
        """
        Extract a human-readable message from a failed response.

        Prefers the API's own 'error' field, then the status line.
        """
        try:
            error_body = response.json()
        except ValueError:
            error_body = {"error": response.reason or f"Request failed with status {response.status_code}"}
        message = error_body.get("error") if isinstance(error_body, dict) else None
        return str(message) if message else f"An unknown API error occurred. Status: {response.status_code}"

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        message = self.error_message(response)
        if status in (401, 403):
            raise AuthError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        raise ApiError(message, status)

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        token: Optional[str] = None
    ) -> Result:
        """
        Issue a request and wrap the decoded JSON or the error.

        Args:
            path: API path appended to the base URL.
            method: HTTP method.
            body: JSON-serializable request body.
            token: Session cookie to authenticate with.

        Returns:
            Result: The decoded JSON on success, an ApiError subclass on failure.
        """
        try:
            response = self.send(path, method=method, body=body, token=token)
            if not response.ok:
                self._raise_for_status(response)
            if response.status_code == 204:
                return Result.ok(dict(NO_CONTENT_PAYLOAD))
            try:
                return Result.ok(response.json())
            except ValueError as e:
                raise UnexpectedShapeError(
                    "The API returned a response that is not valid JSON.", response.status_code
                ) from e
        except ApiError as e:
            logger.warning(f"Kemono API {method.upper()} {path} failed: {e}")
            return Result.fail(e)

    # =========================================================================
    # Creators and posts
    # =========================================================================

    def get_creator_posts(self, service: str, creator_id: str) -> Result:
        try:
            path = creator_path(service, creator_id)
        except ValidationError as e:
            return Result.fail(e)
        return self.request(path)

    def get_post(self, service: str, creator_id: str, post_id: str) -> Result:
        try:
            path = post_path(service, creator_id, post_id)
        except ValidationError as e:
            return Result.fail(e)
        return self.request(path)

    def get_recent_posts(self) -> Result:
        """Site-wide feed of recently imported posts."""
        return self.request("/posts")

    def get_announcements(self) -> Result:
        return self.request("/info/announcements")

    def discord_lookup(self, lookup_type: str, query: str) -> Result:
        """
        Look up Discord channels, servers or members.

        Args:
            lookup_type: One of settings.DISCORD_LOOKUP_TYPES.
            query: Free-text search term.
        """
        if lookup_type not in settings.DISCORD_LOOKUP_TYPES:
            allowed = ", ".join(settings.DISCORD_LOOKUP_TYPES)
            return Result.fail(ValidationError(f"Lookup type must be one of: {allowed}."))
        try:
            encoded_query = _require(query, "Query")
        except ValidationError as e:
            return Result.fail(e)
        return self.request(f"/discord/{lookup_type}/lookup?q={encoded_query}")

    # =========================================================================
    # Account endpoints (require a session cookie)
    # =========================================================================

    def get_profile(self, token: str) -> Result:
        try:
            _require_token(token, "view your profile")
        except AuthError as e:
            return Result.fail(e)
        return self.request("/account/profile", token=token)

    def get_account_favorites(self, token: str, favorite_type: str = "artist") -> Result:
        if favorite_type not in settings.ACCOUNT_FAVORITE_TYPES:
            allowed = ", ".join(settings.ACCOUNT_FAVORITE_TYPES)
            return Result.fail(ValidationError(f"Favorite type must be one of: {allowed}."))
        try:
            _require_token(token, "view account favorites")
        except AuthError as e:
            return Result.fail(e)
        return self.request(f"/account/favorites?type={favorite_type}", token=token)

    def get_moderator_tasks(self, token: str) -> Result:
        """Pending creator-link tasks for moderators."""
        try:
            _require_token(token, "view moderator tasks")
        except AuthError as e:
            return Result.fail(e)
        return self.request("/account/moderator/tasks/creator_links", token=token)

    def request_creator_update(self, token: str, service: str, creator_id: str) -> Result:
        """Ask the importer to refresh a creator."""
        try:
            _require_token(token, "request an update")
            _require(service, "Service")
            _require(creator_id, "Creator ID")
        except (AuthError, ValidationError) as e:
            return Result.fail(e)
        return self.request(
            "/importer/submit",
            method="POST",
            body={"service": str(service).strip(), "id": str(creator_id).strip()},
            token=token,
        )
