"""
Credential encryption and decryption utilities.

Encrypts ledger credentials (consumer and token secrets, access tokens)
for storage with Fernet symmetric encryption. The key is either a Fernet
key or a passphrase from which one is derived with PBKDF2.
"""

import base64
import binascii
import os
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from credit_reconciliation.models import ReconciliationError

import logging
logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = 'CREDIT_RECON_ENCRYPTION_KEY'
KEY_DERIVATION_SALT = b'credit_reconciliation_v1_salt'
KEY_DERIVATION_ITERATIONS = 390000
DEFAULT_PASSPHRASE = 'credit_reconciliation_default_key'
TOKEN_PREFIX = 'gAAAAA'


class EncryptionError(ReconciliationError):
    """Exception raised for encryption/decryption errors."""
    pass


def derive_key(passphrase: str) -> bytes:
    """Derive a Fernet key from a passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KEY_DERIVATION_SALT,
        iterations=KEY_DERIVATION_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode('utf-8')))


def _is_fernet_key(value: str) -> bool:
    try:
        return len(base64.urlsafe_b64decode(value.encode('utf-8'))) == 32
    except (binascii.Error, ValueError):
        return False


class CredentialEncryption:
    """
    Handles encryption and decryption of sensitive credentials.

    The key comes from the argument, then the CREDIT_RECON_ENCRYPTION_KEY
    environment variable, then a built-in passphrase (logged as a warning).
    """

    def __init__(self, encryption_key: Optional[str] = None):
        """
        Initialize credential encryption.

        Args:
            encryption_key: Fernet key or passphrase
        """
        self.logger = logging.getLogger(f"{__name__}.CredentialEncryption")

        if encryption_key:
            key, self._key_source = encryption_key, 'provided'
        elif os.environ.get(ENCRYPTION_KEY_ENV):
            key, self._key_source = os.environ[ENCRYPTION_KEY_ENV], 'environment'
        else:
            key, self._key_source = DEFAULT_PASSPHRASE, 'default'
            self.logger.warning(f"{ENCRYPTION_KEY_ENV} not configured - using the default key")

        if _is_fernet_key(key):
            self._key_derivation = 'Direct'
            self._fernet = Fernet(key.encode('utf-8'))
        else:
            self._key_derivation = 'PBKDF2-SHA256'
            self._fernet = Fernet(derive_key(key))

        self.logger.info(f"Encryption initialized with {self._key_source} key")

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext string.

        Raises:
            EncryptionError: If encryption fails
        """
        if not plaintext:
            return ""

        try:
            token = self._fernet.encrypt(plaintext.encode('utf-8')).decode('utf-8')
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Encryption failed: {e}")
        self.logger.debug(f"Successfully encrypted data (length: {len(plaintext)})")
        return token

    def decrypt(self, encrypted_string: str) -> str:
        """
        Decrypt an encrypted string.

        Raises:
            EncryptionError: If the token is invalid or was made with another key
        """
        if not encrypted_string:
            return ""

        try:
            plaintext = self._fernet.decrypt(encrypted_string.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            raise EncryptionError("Decryption failed: invalid token or wrong key")
        self.logger.debug(f"Successfully decrypted data (length: {len(plaintext)})")
        return plaintext

    def is_encrypted(self, value: str) -> bool:
        """Check if a string looks like a Fernet token."""
        return bool(value) and value.startswith(TOKEN_PREFIX)

    def get_key_info(self) -> Dict[str, Any]:
        """Get information about the encryption key (no sensitive data)."""
        return {
            'initialized': self._fernet is not None,
            'key_source': self._key_source,
            'algorithm': 'Fernet (AES-128-CBC + HMAC-SHA256)',
            'key_derivation': self._key_derivation
        }
