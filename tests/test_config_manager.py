"""
Unit tests for configuration manager.

Tests configuration storage, encryption, and management functionality.
"""

import json
import os
import tempfile
import shutil
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet

from credit_reconciliation.models import (
    AuthenticationType, ConfigurationError, NetSuiteConnectionConfig, ReconciliationSettings
)
from credit_reconciliation.config.config_manager import ConfigManager, default_config_dir
from credit_reconciliation.config.encryption import CredentialEncryption, EncryptionError


class TestCredentialEncryption:
    """Test cases for credential encryption."""

    def test_encryption_creation(self):
        """Test creating encryption instance."""
        encryption = CredentialEncryption("test_key_123")

        info = encryption.get_key_info()
        assert info['initialized'] is True
        assert info['key_source'] == 'provided'
        assert info['key_derivation'] == 'PBKDF2-SHA256'

    def test_fernet_key_used_directly(self):
        encryption = CredentialEncryption(Fernet.generate_key().decode('utf-8'))

        assert encryption.get_key_info()['key_derivation'] == 'Direct'

    def test_environment_key(self):
        with patch.dict(os.environ, {'CREDIT_RECON_ENCRYPTION_KEY': 'from-environment'}):
            encryption = CredentialEncryption()

        assert encryption.get_key_info()['key_source'] == 'environment'

    def test_encrypt_decrypt_cycle(self):
        """Test encrypting and decrypting data."""
        encryption = CredentialEncryption("secret_key")

        original = "my_token_secret"
        encrypted = encryption.encrypt(original)

        assert encrypted != original
        assert encryption.decrypt(encrypted) == original
        assert encryption.is_encrypted(encrypted) is True
        assert encryption.is_encrypted(original) is False

    def test_encrypt_empty_string(self):
        encryption = CredentialEncryption("test_key")

        assert encryption.encrypt("") == ""
        assert encryption.decrypt("") == ""

    def test_wrong_key_fails(self):
        """Test decrypting with another key raises EncryptionError."""
        encrypted = CredentialEncryption("first_key").encrypt("secret")

        with pytest.raises(EncryptionError):
            CredentialEncryption("second_key").decrypt(encrypted)


class TestConfigManager:
    """Test cases for configuration manager."""

    def setup_method(self):
        """Setup test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_manager = ConfigManager(
            config_dir=self.temp_dir,
            encryption_key="test_encryption_key"
        )

    def teardown_method(self):
        """Cleanup test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_connection_config(self, connection_id='netsuite') -> NetSuiteConnectionConfig:
        return NetSuiteConnectionConfig(
            connection_id=connection_id,
            account_id='1234567_SB1',
            consumer_key='consumer-key',
            consumer_secret='consumer-secret',
            token_id='token-id',
            token_secret='token-secret',
            attach_restlet_url='https://1234567-sb1.restlets.api.netsuite.com/app/site/hosting/restlet.nl'
        )

    def test_save_and_load_connection(self):
        """Test saving and loading a connection configuration."""
        config = self.create_connection_config()

        assert self.config_manager.save_connection_config(config) is True
        loaded = self.config_manager.load_connection_config('netsuite')

        assert loaded == config

    def test_secrets_encrypted_on_disk(self):
        self.config_manager.save_connection_config(self.create_connection_config())

        with open(Path(self.temp_dir) / 'connections.json') as f:
            stored = json.load(f)['netsuite']

        assert stored['consumer_secret'] != 'consumer-secret'
        assert stored['token_secret'] != 'token-secret'
        assert stored['consumer_key'] == 'consumer-key'
        assert set(stored['encrypted_fields']) == {'consumer_secret', 'token_secret'}

    def test_load_with_wrong_key(self):
        self.config_manager.save_connection_config(self.create_connection_config())

        other = ConfigManager(config_dir=self.temp_dir, encryption_key="another_key")

        assert other.load_connection_config('netsuite') is None

    def test_load_missing_connection(self):
        assert self.config_manager.load_connection_config('missing') is None

    def test_list_connections_without_secrets(self):
        self.config_manager.save_connection_config(self.create_connection_config('first'))
        bearer = NetSuiteConnectionConfig(connection_id='second', account_id='1234567',
                                          authentication_type=AuthenticationType.BEARER_TOKEN,
                                          access_token='access-token-123')
        self.config_manager.save_connection_config(bearer)

        connections = self.config_manager.list_connections()

        assert [c['connection_id'] for c in connections] == ['first', 'second']
        assert connections[1]['authentication_type'] == 'bearer_token'
        assert all('token_secret' not in c for c in connections)
        assert self.config_manager.load_connection_config('second').access_token == 'access-token-123'

    def test_delete_connection(self):
        self.config_manager.save_connection_config(self.create_connection_config())

        assert self.config_manager.delete_connection_config('netsuite') is True
        assert self.config_manager.connection_exists('netsuite') is False
        assert self.config_manager.delete_connection_config('netsuite') is False
        assert self.config_manager.get_config_info()['backup_count'] == 1

    def test_settings_defaults_when_missing(self):
        assert self.config_manager.load_settings() == ReconciliationSettings()

    def test_save_and_load_settings(self):
        settings = ReconciliationSettings(vendor_entity='3000', amount_tolerance=Decimal('0.02'))

        assert self.config_manager.save_settings(settings) is True
        assert self.config_manager.load_settings() == settings

    def test_invalid_settings_file(self):
        (Path(self.temp_dir) / 'settings.json').write_text('{not json')

        with pytest.raises(ConfigurationError):
            self.config_manager.load_settings()

    def test_backup_and_restore(self):
        """Test restoring a backup brings back deleted configuration."""
        self.config_manager.save_connection_config(self.create_connection_config())
        self.config_manager.save_settings(ReconciliationSettings(vendor_entity='3000'))
        backup_path = self.config_manager.create_backup('manual')

        self.config_manager.delete_connection_config('netsuite')
        self.config_manager.save_settings(ReconciliationSettings())

        assert self.config_manager.restore_backup(backup_path) is True
        assert self.config_manager.connection_exists('netsuite') is True
        assert self.config_manager.load_settings().vendor_entity == '3000'

    def test_restore_missing_backup(self):
        assert self.config_manager.restore_backup(os.path.join(self.temp_dir, 'nope.json')) is False

    def test_config_info(self):
        info = self.config_manager.get_config_info()

        assert info['config_directory'] == self.temp_dir
        assert info['connections_count'] == 0
        assert info['encryption_info']['key_source'] == 'provided'

    def test_default_config_dir_from_environment(self):
        with patch.dict(os.environ, {'CREDIT_RECON_CONFIG_DIR': self.temp_dir}):
            assert default_config_dir() == Path(self.temp_dir)
