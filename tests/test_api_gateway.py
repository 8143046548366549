"""
Tests for KemonoApiGateway

Tests cover URL and header construction, status-to-error mapping, transport
failures, the no-content case, and the endpoint helpers.
"""

import json
import pytest
from unittest.mock import MagicMock
import sys
import os

import requests

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.api_gateway import (
    KemonoApiGateway, creator_path, post_path,
    CONNECTION_ERROR_MESSAGE, UNKNOWN_TRANSPORT_ERROR_MESSAGE
)
from utils.exceptions import (
    ApiError, AuthError, NotFoundError, TransportError, UnexpectedShapeError, ValidationError
)


# =============================================================================
# Path Construction Tests
# =============================================================================

class TestPaths:
    """Tests for creator and post path helpers."""

    def test_user_style_service(self):
        assert creator_path('patreon', '123') == '/patreon/user/123'

    def test_server_style_service(self):
        assert creator_path('discord', '987') == '/discord/server/987'

    def test_post_path(self):
        assert post_path('fanbox', '42', '7') == '/fanbox/user/42/post/7'

    def test_identifiers_are_trimmed_and_quoted(self):
        assert creator_path(' patreon ', 'a/b') == '/patreon/user/a%2Fb'

    @pytest.mark.parametrize('service,creator_id', [('', '1'), ('patreon', ''), ('patreon', '   '), (None, '1')])
    def test_blank_identifier_rejected(self, service, creator_id):
        with pytest.raises(ValidationError):
            creator_path(service, creator_id)


# =============================================================================
# Request Tests
# =============================================================================

class TestRequest:
    """Tests for KemonoApiGateway.request()."""

    def test_success_returns_decoded_json(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(json_data=[{'id': '1'}])

        result = gateway.request('/posts')

        assert result.success is True
        assert result.data == [{'id': '1'}]
        method, url = http_session.request.call_args.args
        assert method == 'GET'
        assert url == 'https://kemono.test/api/v1/posts'

    def test_default_headers_sent_without_cookie(self, gateway, http_session):
        gateway.request('/posts')

        headers = http_session.request.call_args.kwargs['headers']
        assert headers['Accept'] == 'application/json'
        assert headers['User-Agent'] == 'Test User Agent'
        assert 'Cookie' not in headers
        assert 'Content-Type' not in headers
        assert http_session.request.call_args.kwargs['data'] is None

    def test_token_sent_as_cookie(self, gateway, http_session):
        gateway.request('/account/profile', token='session=abc123')

        headers = http_session.request.call_args.kwargs['headers']
        assert headers['Cookie'] == 'session=abc123'

    def test_body_serialized_as_json(self, gateway, http_session):
        gateway.request('/importer/submit', method='post', body={'service': 'patreon', 'id': '1'})

        call = http_session.request.call_args
        assert call.args[0] == 'POST'
        assert json.loads(call.kwargs['data']) == {'service': 'patreon', 'id': '1'}
        assert call.kwargs['headers']['Content-Type'] == 'application/json'

    def test_no_content_returns_success_message(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(status_code=204)

        result = gateway.request('/importer/submit', method='POST')

        assert result.success is True
        assert result.data == {'message': 'Request successful.'}

    @pytest.mark.parametrize('status,error_type', [
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (429, ApiError),
        (500, ApiError),
    ])
    def test_status_mapping(self, gateway, http_session, mock_http_response, status, error_type):
        http_session.request.return_value = mock_http_response(
            status_code=status, json_data={'error': 'Nope'}
        )

        result = gateway.request('/account/profile')

        assert result.success is False
        assert type(result.error) is error_type
        assert result.error.status_code == status
        assert result.error_message == 'Nope'

    def test_error_falls_back_to_reason(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(status_code=502, reason='Bad Gateway')

        result = gateway.request('/posts')

        assert result.error_message == 'Bad Gateway'

    def test_error_falls_back_to_status(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(status_code=500)

        result = gateway.request('/posts')

        assert result.error_message == 'Request failed with status 500'

    def test_error_body_without_error_field(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(status_code=400, json_data={'detail': 'x'})

        result = gateway.request('/posts')

        assert result.error_message == 'An unknown API error occurred. Status: 400'

    def test_non_json_success_is_unexpected_shape(self, gateway, http_session, mock_http_response):
        http_session.request.return_value = mock_http_response(status_code=200, text='<html></html>')

        result = gateway.request('/posts')

        assert result.success is False
        assert isinstance(result.error, UnexpectedShapeError)

    def test_connection_error_is_transport_error(self, gateway, http_session):
        http_session.request.side_effect = requests.exceptions.ConnectionError('refused')

        result = gateway.request('/posts')

        assert isinstance(result.error, TransportError)
        assert result.error_message == CONNECTION_ERROR_MESSAGE

    def test_other_request_exception_is_transport_error(self, gateway, http_session):
        http_session.request.side_effect = requests.exceptions.TooManyRedirects('loop')

        result = gateway.request('/posts')

        assert isinstance(result.error, TransportError)
        assert result.error_message == UNKNOWN_TRANSPORT_ERROR_MESSAGE

    def test_failure_is_logged(self, gateway, http_session, mock_http_response, capture_logs):
        http_session.request.return_value = mock_http_response(status_code=404, json_data={'error': 'Missing'})

        gateway.request('/patreon/user/1')

        assert any('Missing' in record.getMessage() for record in capture_logs)


class TestSend:
    """Tests for KemonoApiGateway.send()."""

    def test_returns_raw_response_for_error_status(self, gateway, http_session, mock_http_response):
        response = mock_http_response(status_code=401)
        http_session.request.return_value = response

        assert gateway.send('/authentication/login', method='POST', body={}) is response

    def test_raises_transport_error(self, gateway, http_session):
        http_session.request.side_effect = requests.exceptions.ConnectionError('down')

        with pytest.raises(TransportError):
            gateway.send('/authentication/login', method='POST', body={})


# =============================================================================
# Endpoint Helper Tests
# =============================================================================

class TestEndpoints:
    """Tests for the endpoint helpers."""

    def _url(self, http_session):
        return http_session.request.call_args.args[1]

    def test_get_creator_posts(self, gateway, http_session):
        gateway.get_creator_posts('patreon', '5')
        assert self._url(http_session) == 'https://kemono.test/api/v1/patreon/user/5'

    def test_get_creator_posts_blank_id_makes_no_request(self, gateway, http_session):
        result = gateway.get_creator_posts('patreon', '')

        assert isinstance(result.error, ValidationError)
        http_session.request.assert_not_called()

    def test_get_post(self, gateway, http_session):
        gateway.get_post('discord', '9', '3')
        assert self._url(http_session) == 'https://kemono.test/api/v1/discord/server/9/post/3'

    def test_recent_and_announcements(self, gateway, http_session):
        gateway.get_recent_posts()
        assert self._url(http_session).endswith('/posts')
        gateway.get_announcements()
        assert self._url(http_session).endswith('/info/announcements')

    def test_discord_lookup(self, gateway, http_session):
        gateway.discord_lookup('channel', 'art stuff')
        assert self._url(http_session) == 'https://kemono.test/api/v1/discord/channel/lookup?q=art%20stuff'

    def test_discord_lookup_rejects_unknown_type(self, gateway, http_session):
        result = gateway.discord_lookup('guild', 'x')

        assert isinstance(result.error, ValidationError)
        http_session.request.assert_not_called()

    def test_profile_requires_token(self, gateway, http_session):
        result = gateway.get_profile('')

        assert isinstance(result.error, AuthError)
        http_session.request.assert_not_called()

    def test_account_favorites(self, gateway, http_session):
        gateway.get_account_favorites('session=abc', 'sticker')

        assert self._url(http_session).endswith('/account/favorites?type=sticker')
        assert http_session.request.call_args.kwargs['headers']['Cookie'] == 'session=abc'

    def test_account_favorites_rejects_unknown_type(self, gateway, http_session):
        result = gateway.get_account_favorites('session=abc', 'post')

        assert isinstance(result.error, ValidationError)
        http_session.request.assert_not_called()

    def test_moderator_tasks_requires_token(self, gateway, http_session):
        result = gateway.get_moderator_tasks(None)

        assert result.error_message == 'You must be logged in to view moderator tasks.'
        http_session.request.assert_not_called()

    def test_request_creator_update(self, gateway, http_session):
        gateway.request_creator_update('session=abc', ' patreon ', '12')

        call = http_session.request.call_args
        assert call.args == ('POST', 'https://kemono.test/api/v1/importer/submit')
        assert json.loads(call.kwargs['data']) == {'service': 'patreon', 'id': '12'}

    def test_request_creator_update_requires_ids(self, gateway, http_session):
        result = gateway.request_creator_update('session=abc', 'patreon', '')

        assert isinstance(result.error, ValidationError)
        http_session.request.assert_not_called()


class TestInitialization:
    """Tests for gateway defaults."""

    def test_defaults_from_settings(self):
        from config import settings

        gateway = KemonoApiGateway(http_session=MagicMock())

        assert gateway.base_url == settings.KEMONO_API_BASE_URL.rstrip('/')
        assert gateway.headers == settings.REQUEST_HEADERS

    def test_creates_requests_session(self):
        gateway = KemonoApiGateway()
        assert isinstance(gateway.http, requests.Session)
