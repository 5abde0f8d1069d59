"""
Configuration management for credit reconciliation.

This package provides configuration storage with encrypted credentials,
settings and connection validation, and connection testing.
"""

from .config_manager import ConfigManager, get_config_manager
from .encryption import CredentialEncryption, EncryptionError
from .validation import ConfigurationValidator, ConnectionTester, ValidationResult

__all__ = [
    "ConfigManager",
    "get_config_manager",
    "CredentialEncryption",
    "EncryptionError",
    "ConfigurationValidator",
    "ConnectionTester",
    "ValidationResult"
]
