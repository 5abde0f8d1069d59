"""
Authentication mechanisms for the NetSuite REST connector.

Provides OAuth 1.0 token-based authentication (HMAC-SHA256 request
signing, as NetSuite requires for integration tokens) and bearer token
authentication for OAuth 2.0 access tokens.
"""

import base64
import hashlib
import hmac
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, quote, urlparse, urlunparse

from credit_reconciliation.models import AuthenticationType, NetSuiteConnectionConfig
from .base_connector import ConnectorError

import logging
logger = logging.getLogger(__name__)


class AuthenticationError(ConnectorError):
    """Exception raised for authentication-related errors."""
    pass


def _encode(value: str) -> str:
    """RFC 3986 percent-encoding used by OAuth 1.0."""
    return quote(str(value), safe='~')


class BaseAuthenticator(ABC):
    """Base class for all authentication mechanisms."""

    def __init__(self, auth_type: AuthenticationType):
        self.auth_type = auth_type
        self.logger = logging.getLogger(f"{__name__}.{auth_type.value}")

    @abstractmethod
    def apply_authentication(self, headers: Dict[str, str], **kwargs) -> Dict[str, str]:
        """
        Apply authentication to request headers.

        Args:
            headers: Existing request headers
            **kwargs: Request details (method, url) needed for signing

        Returns:
            Updated headers with authentication applied
        """
        pass

    @abstractmethod
    def is_valid(self) -> bool:
        """Check if the credentials are present and not expired."""
        pass

    def refresh_if_needed(self) -> bool:
        """
        Refresh authentication if needed and possible.

        Returns:
            True if refresh was successful or not needed, False if failed
        """
        return True


class TokenBasedAuthenticator(BaseAuthenticator):
    """
    OAuth 1.0 token-based authentication.

    Every request is signed separately; the signature base string covers
    the method, the URL without its query and all oauth and query
    parameters sorted by name.
    """

    SIGNATURE_METHOD = 'HMAC-SHA256'

    def __init__(self, account_id: str, consumer_key: str, consumer_secret: str,
                 token_id: str, token_secret: str):
        super().__init__(AuthenticationType.TOKEN_BASED)
        self.account_id = account_id
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.token_id = token_id
        self.token_secret = token_secret
        self.logger.info(f"Token-based authenticator initialized for account: {self.realm}")

    @property
    def realm(self) -> str:
        return self.account_id.upper().replace('-', '_')

    def apply_authentication(self, headers: Dict[str, str], **kwargs) -> Dict[str, str]:
        """Sign the request and add the OAuth Authorization header."""
        method = kwargs.get('method', 'GET').upper()
        url = kwargs.get('url', '')
        if not url:
            raise AuthenticationError("URL is required for token-based authentication")

        oauth_params = {
            'oauth_consumer_key': self.consumer_key,
            'oauth_token': self.token_id,
            'oauth_signature_method': self.SIGNATURE_METHOD,
            'oauth_timestamp': str(kwargs.get('timestamp') or int(time.time())),
            'oauth_nonce': kwargs.get('nonce') or secrets.token_hex(16),
            'oauth_version': '1.0'
        }
        oauth_params['oauth_signature'] = self.sign(method, url, oauth_params)

        header_params = ', '.join(f'{key}="{_encode(value)}"' for key, value in oauth_params.items())
        headers = headers.copy()
        headers['Authorization'] = f'OAuth realm="{self.realm}", {header_params}'
        return headers

    def sign(self, method: str, url: str, oauth_params: Dict[str, str]) -> str:
        """
        Compute the base64 HMAC-SHA256 signature for a request.

        Args:
            method: HTTP method
            url: Full request URL including any query string
            oauth_params: OAuth protocol parameters, without the signature

        Returns:
            Base64-encoded signature
        """
        parsed = urlparse(url)
        base_url = urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), parsed.path, '', '', ''))

        params = list(oauth_params.items()) + parse_qsl(parsed.query, keep_blank_values=True)
        encoded = sorted((_encode(key), _encode(value)) for key, value in params)
        normalized = '&'.join(f"{key}={value}" for key, value in encoded)

        base_string = '&'.join([method.upper(), _encode(base_url), _encode(normalized)])
        signing_key = f"{_encode(self.consumer_secret)}&{_encode(self.token_secret)}"
        digest = hmac.new(signing_key.encode('utf-8'), base_string.encode('utf-8'), hashlib.sha256).digest()

        self.logger.debug(f"Request signed for {method.upper()} {base_url}")
        return base64.b64encode(digest).decode('utf-8')

    def is_valid(self) -> bool:
        return all([self.account_id, self.consumer_key, self.consumer_secret,
                    self.token_id, self.token_secret])


class BearerTokenAuthenticator(BaseAuthenticator):
    """Bearer token authentication for OAuth 2.0 access tokens."""

    def __init__(self, access_token: str, expires_at: Optional[datetime] = None):
        """
        Initialize Bearer token authenticator.

        Args:
            access_token: The access token
            expires_at: Token expiration time (UTC)
        """
        super().__init__(AuthenticationType.BEARER_TOKEN)
        self.access_token = access_token
        self.expires_at = expires_at

        self.logger.info(f"Bearer token authenticator initialized, expires: {expires_at}")

    def apply_authentication(self, headers: Dict[str, str], **kwargs) -> Dict[str, str]:
        """Apply Bearer token to request headers."""
        if not self.is_valid():
            raise AuthenticationError("Bearer token is missing or expired")

        headers = headers.copy()
        headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    def is_valid(self) -> bool:
        """Check if token is valid and not expired."""
        if not self.access_token:
            return False

        if self.expires_at:
            # 5 minute buffer before expiration
            buffer_time = datetime.utcnow() + timedelta(minutes=5)
            return self.expires_at > buffer_time

        return True

    def refresh_if_needed(self) -> bool:
        # Access tokens are issued outside this process; an expired one cannot be renewed here.
        return self.is_valid()


class AuthenticatorFactory:
    """Factory for creating authenticators based on configuration."""

    @staticmethod
    def create_authenticator(config: NetSuiteConnectionConfig) -> BaseAuthenticator:
        """
        Create an authenticator for a connection configuration.

        Args:
            config: NetSuite connection configuration

        Returns:
            Configured authenticator instance

        Raises:
            AuthenticationError: If required credentials are missing
        """
        if config.authentication_type == AuthenticationType.TOKEN_BASED:
            missing = [name for name in ('consumer_key', 'consumer_secret', 'token_id', 'token_secret')
                       if not getattr(config, name)]
            if missing:
                raise AuthenticationError(
                    f"Token-based authentication requires {', '.join(missing)}")
            return TokenBasedAuthenticator(
                account_id=config.account_id,
                consumer_key=config.consumer_key,
                consumer_secret=config.consumer_secret,
                token_id=config.token_id,
                token_secret=config.token_secret
            )

        elif config.authentication_type == AuthenticationType.BEARER_TOKEN:
            if not config.access_token:
                raise AuthenticationError("Bearer token authentication requires access_token")
            return BearerTokenAuthenticator(config.access_token)

        raise AuthenticationError(f"Unsupported authentication type: {config.authentication_type}")

    @staticmethod
    def get_supported_types() -> List[AuthenticationType]:
        return [AuthenticationType.TOKEN_BASED, AuthenticationType.BEARER_TOKEN]
