"""
Ledger connectors for credit reconciliation.

This package provides the query and ledger store interfaces consumed by
the reconciliation engine and their implementations:
- NetSuite REST connector (SuiteQL searches, record API writes)
- In-memory ledger for offline runs and tests
- Request authentication (OAuth 1.0 token-based, bearer token)
"""

from .base_connector import (
    BaseConnector, ConnectorError, LedgerOperationError, LedgerStore, QueryError, QueryService
)
from .authentication import (
    AuthenticatorFactory, BaseAuthenticator, BearerTokenAuthenticator,
    TokenBasedAuthenticator, AuthenticationError
)
from .netsuite_connector import NetSuiteConnector, APIResponse, RateLimiter
from .memory_connector import InMemoryLedger

__all__ = [
    "BaseConnector",
    "ConnectorError",
    "LedgerOperationError",
    "LedgerStore",
    "QueryError",
    "QueryService",
    "AuthenticatorFactory",
    "BaseAuthenticator",
    "BearerTokenAuthenticator",
    "TokenBasedAuthenticator",
    "AuthenticationError",
    "NetSuiteConnector",
    "APIResponse",
    "RateLimiter",
    "InMemoryLedger"
]
