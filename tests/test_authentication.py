"""
Unit tests for NetSuite request authentication.

Tests OAuth 1.0 token-based signing, bearer tokens and the authenticator
factory.
"""

import base64
import hashlib
import hmac
from datetime import datetime, timedelta

import pytest

from credit_reconciliation.models import AuthenticationType, NetSuiteConnectionConfig
from credit_reconciliation.connectors.authentication import (
    AuthenticationError, AuthenticatorFactory, BearerTokenAuthenticator, TokenBasedAuthenticator
)


class TestTokenBasedAuthenticator:
    """Test cases for token-based authentication."""

    def setup_method(self):
        """Setup test environment."""
        self.authenticator = TokenBasedAuthenticator(
            account_id='1234567-sb1',
            consumer_key='ck',
            consumer_secret='cs',
            token_id='tk',
            token_secret='ts'
        )

    def test_realm(self):
        assert self.authenticator.realm == '1234567_SB1'
        assert self.authenticator.is_valid() is True

    def test_authorization_header(self):
        headers = self.authenticator.apply_authentication(
            {'Accept': 'application/json'}, method='GET',
            url='https://1234567-sb1.suitetalk.api.netsuite.com/services/rest/record/v1/journalEntry/1',
            timestamp=1700000000, nonce='abc123'
        )

        header = headers['Authorization']
        assert headers['Accept'] == 'application/json'
        assert header.startswith('OAuth realm="1234567_SB1", ')
        assert 'oauth_consumer_key="ck"' in header
        assert 'oauth_token="tk"' in header
        assert 'oauth_signature_method="HMAC-SHA256"' in header
        assert 'oauth_timestamp="1700000000"' in header
        assert 'oauth_nonce="abc123"' in header
        assert 'oauth_signature="' in header

    def test_signature(self):
        """Test the signature covers sorted oauth and query parameters."""
        oauth_params = {
            'oauth_consumer_key': 'ck',
            'oauth_nonce': 'abc123',
            'oauth_signature_method': 'HMAC-SHA256',
            'oauth_timestamp': '1700000000',
            'oauth_token': 'tk',
            'oauth_version': '1.0'
        }
        url = 'https://1234567-sb1.suitetalk.api.netsuite.com/services/rest/query/v1/suiteql?limit=10&offset=0'

        signature = self.authenticator.sign('POST', url, oauth_params)

        normalized = ('limit=10&oauth_consumer_key=ck&oauth_nonce=abc123&oauth_signature_method=HMAC-SHA256'
                      '&oauth_timestamp=1700000000&oauth_token=tk&oauth_version=1.0&offset=0')
        base_string = ('POST&https%3A%2F%2F1234567-sb1.suitetalk.api.netsuite.com%2Fservices%2Frest%2Fquery'
                       '%2Fv1%2Fsuiteql&' + normalized.replace('=', '%3D').replace('&', '%26'))
        expected = base64.b64encode(
            hmac.new(b'cs&ts', base_string.encode('utf-8'), hashlib.sha256).digest()).decode('utf-8')
        assert signature == expected

    def test_nonce_changes_signature(self):
        url = 'https://example.test/services/rest/record/v1/journalEntry'
        first = self.authenticator.apply_authentication({}, method='POST', url=url, timestamp=1, nonce='a')
        second = self.authenticator.apply_authentication({}, method='POST', url=url, timestamp=1, nonce='b')

        assert first['Authorization'] != second['Authorization']

    def test_url_required(self):
        with pytest.raises(AuthenticationError):
            self.authenticator.apply_authentication({}, method='GET')


class TestBearerTokenAuthenticator:
    """Test cases for bearer token authentication."""

    def test_bearer_header(self):
        authenticator = BearerTokenAuthenticator('access-token-123')

        headers = authenticator.apply_authentication({})

        assert headers['Authorization'] == 'Bearer access-token-123'
        assert authenticator.refresh_if_needed() is True

    def test_expired_token(self):
        """Test a token inside the expiry buffer is invalid."""
        authenticator = BearerTokenAuthenticator('access-token-123',
                                                 expires_at=datetime.utcnow() + timedelta(minutes=2))

        assert authenticator.is_valid() is False
        assert authenticator.refresh_if_needed() is False
        with pytest.raises(AuthenticationError):
            authenticator.apply_authentication({})

    def test_future_expiry_valid(self):
        authenticator = BearerTokenAuthenticator('access-token-123',
                                                 expires_at=datetime.utcnow() + timedelta(hours=1))

        assert authenticator.is_valid() is True


class TestAuthenticatorFactory:
    """Test cases for AuthenticatorFactory."""

    def test_token_based(self):
        config = NetSuiteConnectionConfig(connection_id='ns', account_id='1234567', consumer_key='ck',
                                          consumer_secret='cs', token_id='tk', token_secret='ts')

        authenticator = AuthenticatorFactory.create_authenticator(config)

        assert isinstance(authenticator, TokenBasedAuthenticator)

    def test_missing_fields_listed(self):
        config = NetSuiteConnectionConfig(connection_id='ns', account_id='1234567', consumer_key='ck')

        with pytest.raises(AuthenticationError) as excinfo:
            AuthenticatorFactory.create_authenticator(config)

        assert 'consumer_secret, token_id, token_secret' in str(excinfo.value)

    def test_bearer(self):
        config = NetSuiteConnectionConfig(connection_id='ns', account_id='1234567',
                                          authentication_type=AuthenticationType.BEARER_TOKEN,
                                          access_token='access-token-123')

        assert isinstance(AuthenticatorFactory.create_authenticator(config), BearerTokenAuthenticator)

    def test_supported_types(self):
        assert AuthenticatorFactory.get_supported_types() == [AuthenticationType.TOKEN_BASED,
                                                              AuthenticationType.BEARER_TOKEN]
