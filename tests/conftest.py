"""
Shared Test Fixtures for Kemono Client

This module provides common fixtures used across all test modules.
Fixtures include an in-memory storage backend, client state, a mocked API
gateway, logging capture, HTTP responses, and data factories for test objects.
"""

import pytest
from unittest.mock import MagicMock
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Captures actual log records from every logger that propagates to the
    root logger, including the application's 'kemono.*' loggers.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger('kemono')
    original_level = root_logger.level
    original_app_level = app_logger.level
    root_logger.setLevel(logging.DEBUG)
    app_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    root_logger.setLevel(original_level)
    app_logger.setLevel(original_app_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    This fixture returns a factory function that creates mock response
    objects with configurable status codes, JSON bodies, and cookies.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(
                status_code=200,
                json_data={'key': 'value'},
            )
            # ... test code

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        text: str = '',
        reason: str = '',
        cookies: Optional[Dict[str, str]] = None,
        url: str = 'https://kemono.test/api/v1'
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            json_data: Value to return from response.json(); if None, json() raises.
            text: Text content (auto-generated from json_data if not provided).
            reason: HTTP reason phrase.
            cookies: Cookies set by the response, as name -> value.
            url: The URL of the response.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json
        from requests.cookies import RequestsCookieJar

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.reason = reason
        mock_response.url = url
        mock_response.ok = status_code < 400

        if text:
            mock_response.text = text
        elif json_data is not None:
            mock_response.text = json.dumps(json_data)
        else:
            mock_response.text = ''

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        jar = RequestsCookieJar()
        for name, value in (cookies or {}).items():
            jar.set(name, value)
        mock_response.cookies = jar

        return mock_response

    return _create_response


@pytest.fixture
def http_session():
    """
    Mock requests.Session for the API gateway.

    Usage:
        def test_call(http_session, mock_http_response):
            http_session.request.return_value = mock_http_response(json_data=[])

    Returns:
        MagicMock: A mock session whose request() returns an empty JSON list.
    """
    session = MagicMock()
    session.request.return_value = MagicMock(
        status_code=200, ok=True, reason='OK', **{'json.return_value': []}
    )
    return session


@pytest.fixture
def gateway(http_session):
    """KemonoApiGateway sending through the mock session."""
    from services.api_gateway import KemonoApiGateway

    return KemonoApiGateway(
        base_url='https://kemono.test/api/v1',
        http_session=http_session,
        headers={'Accept': 'application/json', 'User-Agent': 'Test User Agent'}
    )


# =============================================================================
# Storage and State Fixtures
# =============================================================================

class MemoryStorage:
    """In-memory implementation of the KeyValueStorage protocol for testing.

    Usage:
        def test_with_storage(memory_storage):
            memory_storage.items['kemonoFavorites'] = '[]'
            state = ClientState.load(memory_storage)

    Set fail_writes to make set_item and remove_item raise StorageError.
    """

    def __init__(self, items: Optional[Dict[str, str]] = None):
        self.items = dict(items or {})
        self.fail_writes = False
        self.write_calls = []

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_writable(key)
        self.write_calls.append(key)
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self._check_writable(key)
        self.write_calls.append(key)
        self.items.pop(key, None)

    def _check_writable(self, key: str) -> None:
        from utils.exceptions import StorageError

        if self.fail_writes:
            raise StorageError(f"Failed to write {key}: disk full")


@pytest.fixture
def memory_storage():
    """Provide an empty MemoryStorage."""
    return MemoryStorage()


@pytest.fixture
def client_state(memory_storage):
    """Provide a logged out ClientState with no favorites, backed by memory_storage."""
    from data.state import ClientState

    return ClientState.load(memory_storage)


@pytest.fixture
def logged_in_state(client_state):
    """Provide a ClientState with an active session for user 'alice'."""
    from data.models import Session

    client_state.session = Session(username='alice', token='session=abc123')
    return client_state


@pytest.fixture
def mock_api():
    """
    Mock API gateway.

    The mock follows the KemonoApiGateway interface; configure return values
    with Result objects.

    Returns:
        MagicMock: A mock gateway.
    """
    from services.api_gateway import KemonoApiGateway

    return MagicMock(spec=KemonoApiGateway)


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def favorite_factory():
    """
    Factory fixture for creating Favorite test objects.

    Usage:
        def test_favorite(favorite_factory):
            fav = favorite_factory(id='5', service='patreon')

    Returns:
        callable: A factory function for creating Favorite objects.
    """
    from data.models import Favorite

    def _create_favorite(
        id: str = '1',
        service: str = 'patreon',
        name: Optional[str] = None,
        icon: str = '',
        updated: str = '2024-01-01T00:00:00'
    ) -> Favorite:
        return Favorite(
            id=id,
            service=service,
            name=name or f'Creator {id}',
            icon=icon,
            updated=updated
        )

    return _create_favorite


@pytest.fixture
def post_data_factory():
    """
    Factory fixture for creating post payloads as returned by the API.

    Usage:
        def test_posts(post_data_factory):
            payload = post_data_factory(id='p1', published='2024-03-01T10:00:00')

    Returns:
        callable: A factory function for creating post dictionaries.
    """
    def _create_post(
        id: str = 'p1',
        title: Optional[str] = None,
        published: str = '2024-01-01T00:00:00',
        user: Any = '1',
        service: str = 'patreon',
        content: str = '<p>Post body</p>',
        file: Optional[Dict[str, str]] = None,
        attachments: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        return {
            'id': id,
            'title': title or f'Post {id}',
            'content': content,
            'published': published,
            'user': user,
            'service': service,
            'file': file or {},
            'attachments': attachments or [],
        }

    return _create_post


@pytest.fixture
def memory_storage_factory():
    """
    Factory fixture for MemoryStorage pre-filled with slots.

    Usage:
        def test_load(memory_storage_factory):
            storage = memory_storage_factory({'kemonoUser': '{}'})

    Returns:
        callable: The MemoryStorage class.
    """
    return MemoryStorage
