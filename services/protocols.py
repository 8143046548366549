"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for services used in the Kemono
client. These protocols enable loose coupling, dependency injection, and easier
testing.

Protocols defined:
- ApiGatewayProtocol: Interface for calls to the remote Kemono API
"""

from typing import Protocol, Optional, Any

from data.models import Result


class ApiGatewayProtocol(Protocol):
    """Protocol defining the interface the session, favorites and feed services need.

    Implementations should provide methods for:
    - Issuing a generic request against the API and wrapping the outcome
    - Sending a raw request when response headers or cookies are needed
    - Fetching a creator's posts, a single post, and account data
    """

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        token: Optional[str] = None
    ) -> Result:
        """Issue a request and wrap the decoded JSON or the error.

        Args:
            path: API path appended to the base URL.
            method: HTTP method.
            body: JSON-serializable request body.
            token: Session cookie to authenticate with.

        Returns:
            Result with the decoded JSON on success.
        """
        ...

    def send(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        token: Optional[str] = None
    ) -> Any:
        """Issue a request and return the raw HTTP response.

        Raises:
            TransportError: If the API cannot be reached.
        """
        ...

    def error_message(self, response: Any) -> str:
        """Extract a human-readable error message from a failed response."""
        ...

    def get_creator_posts(self, service: str, creator_id: str) -> Result:
        """Fetch the posts of a creator."""
        ...

    def get_post(self, service: str, creator_id: str, post_id: str) -> Result:
        """Fetch a single post."""
        ...

    def get_profile(self, token: str) -> Result:
        """Fetch the profile of the authenticated account."""
        ...

    def get_account_favorites(self, token: str, favorite_type: str = "artist") -> Result:
        """Fetch the favorites saved on the authenticated account."""
        ...
