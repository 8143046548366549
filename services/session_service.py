"""
Session Service Module

This module handles authentication against the Kemono API. A session is
created either by logging in with a username and password or by validating a
session cookie the user already has. The active session is held in the
injected ClientState and persisted with it.
"""

from typing import Iterable, Optional

from config import settings
from data.models import Result, Session
from data.state import ClientState
from services.protocols import ApiGatewayProtocol
from utils.exceptions import (
    AuthError, KemonoClientError, StorageError, TransportError, UnexpectedShapeError, ValidationError
)
from utils.helpers import safe_get
from utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/authentication/login"


def extract_session_token(cookies: Iterable) -> str:
    """
    Pull the session token out of the cookies set by a login response.

    This is the only place that knows the API's session cookie name.

    Args:
        cookies: Cookie objects with 'name' and 'value' attributes, e.g. a
            requests cookie jar.

    Returns:
        str: The token in 'name=value' form, ready to send as a Cookie header.

    Raises:
        AuthError: If no cookie was set, or none carries the session name.
    """
    cookie_list = list(cookies or [])
    if not cookie_list:
        raise AuthError("Login seemed to succeed, but no session cookie was returned by the server.")

    for cookie in cookie_list:
        if cookie.name == settings.SESSION_COOKIE_NAME and cookie.value:
            return f"{cookie.name}={cookie.value}"

    raise AuthError(
        f"Could not find the '{settings.SESSION_COOKIE_NAME}' cookie in the response. "
        "The authentication method may have changed."
    )


def has_session_prefix(token: Optional[str]) -> bool:
    """Check that a token looks like a session cookie before sending it anywhere."""
    return bool(token) and token.strip().startswith(f"{settings.SESSION_COOKIE_NAME}=")


class SessionManager:
    """Manages the LoggedOut -> LoggedIn -> LoggedOut session lifecycle."""

    def __init__(self, api: ApiGatewayProtocol, state: ClientState):
        """
        Initialize the session manager.

        Args:
            api: Gateway used for login and profile calls.
            state: Owned client state the session is stored in.
        """
        self.api = api
        self.state = state

    @property
    def current_session(self) -> Optional[Session]:
        return self.state.session

    @property
    def is_logged_in(self) -> bool:
        return self.state.is_logged_in

    def require_token(self, action: str = "do that") -> str:
        """
        Return the active session token.

        Raises:
            AuthError: If no session is active.
        """
        if not self.state.session:
            raise AuthError(f"You must be logged in to {action}.")
        return self.state.session.token

    def login_with_credentials(self, username: str, password: str) -> Result:
        """
        Log in with a username and password.

        Args:
            username: Account name.
            password: Account password.

        Returns:
            Result: The new Session on success.
        """
        if not username or not password:
            return Result.fail(ValidationError("Username and password are required."))

        try:
            try:
                response = self.api.send(
                    LOGIN_PATH,
                    method="POST",
                    body={"username": username, "password": password},
                )
            except TransportError as e:
                raise TransportError(
                    "A network error occurred during the login request. Please check your connection."
                ) from e

            if not response.ok:
                if response.status_code in (401, 403):
                    raise AuthError("Login failed: Invalid username or password.", response.status_code)
                raise AuthError(f"Login failed. {self.api.error_message(response)}", response.status_code)

            token = extract_session_token(response.cookies)
            session = Session(username=username, token=token)
            self.state.set_session(session)

            logger.info(f"Successfully logged in to Kemono as {username}")
            return Result.ok(session, message=f"Welcome, {username}!")

        except KemonoClientError as e:
            logger.error(f"Kemono login failed: {e}")
            return Result.fail(e)

    def validate_token(self, token: str) -> Result:
        """
        Validate a session cookie by fetching the account profile.

        On success the cookie becomes the active session.

        Args:
            token: A session cookie, e.g. 'session=abc123'.

        Returns:
            Result: The account's username on success.
        """
        if not has_session_prefix(token):
            return Result.fail(ValidationError("Invalid session cookie format."))
        token = token.strip()

        response = self.api.get_profile(token)
        if not response.success:
            error = AuthError(
                f'Session cookie is invalid or expired. API said: "{response.error_message}"',
                getattr(response.error, "status_code", None),
            )
            logger.warning(str(error))
            return Result.fail(error)

        username = safe_get(response.data, "name")
        if not username or not isinstance(username, str):
            return Result.fail(UnexpectedShapeError(
                "Failed to validate session. The API returned an unexpected response."
            ))

        try:
            self.state.set_session(Session(username=username, token=token))
        except StorageError as e:
            logger.error(f"Failed to persist session: {e}")
            return Result.fail(e)

        logger.info(f"Session validated for {username}")
        return Result.ok(username, message=f"Welcome, {username}! Your session is now active.")

    def logout(self) -> Result:
        """Clear the active session. Logging out while logged out is not an error."""
        try:
            self.state.set_session(None)
        except StorageError as e:
            logger.error(f"Failed to clear session: {e}")
            return Result.fail(e)
        logger.info("Logged out")
        return Result.ok(message="You have been successfully logged out.")
