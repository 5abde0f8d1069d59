"""
Configuration manager for credit reconciliation.

Stores NetSuite connection configurations (secrets encrypted) and the
reconciliation settings as JSON files in a configuration directory, with
backup and restore.
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from credit_reconciliation.models import (
    ConfigurationError, NetSuiteConnectionConfig, ReconciliationSettings
)
from .encryption import CredentialEncryption, EncryptionError

import logging
logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = 'CREDIT_RECON_CONFIG_DIR'
CONNECTIONS_FILE = 'connections.json'
SETTINGS_FILE = 'settings.json'

# Bookkeeping keys stored next to a connection's own fields
_METADATA_KEYS = ('encrypted_fields', 'created_at', 'updated_at')

_CONFIG_ERRORS = (OSError, ValueError, KeyError, TypeError, EncryptionError, ConfigurationError)


def default_config_dir() -> Path:
    """Configuration directory from CREDIT_RECON_CONFIG_DIR, else ~/.credit_reconciliation/config."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / '.credit_reconciliation' / 'config'


def _read_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _write_json(path: Path, data: Any):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


class ConfigManager:
    """
    Manages configuration storage and retrieval for credit reconciliation.

    Connection secrets are encrypted on save and decrypted on load; the
    settings file holds one ReconciliationSettings record.
    """

    def __init__(self, config_dir: Optional[str] = None, encryption_key: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Configuration directory; defaults to default_config_dir()
            encryption_key: Fernet key or passphrase for stored secrets
        """
        self.logger = logging.getLogger(f"{__name__}.ConfigManager")

        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.connections_file = self.config_dir / CONNECTIONS_FILE
        self.settings_file = self.config_dir / SETTINGS_FILE
        self.backup_dir = self.config_dir / 'backups'
        self.backup_dir.mkdir(parents=True, exist_ok=True)

        self.encryption = CredentialEncryption(encryption_key)
        self.logger.info(f"Using configuration directory {self.config_dir}")

    # Connections

    def save_connection_config(self, config: NetSuiteConnectionConfig) -> bool:
        """
        Save a connection configuration with encrypted secrets.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            connections = self._connections()
            previous = connections.get(config.connection_id, {})

            record = self._encrypt_secrets(config.to_dict(include_secrets=True))
            now = time.time()
            record['created_at'] = previous.get('created_at', now)
            record['updated_at'] = now

            connections[config.connection_id] = record
            _write_json(self.connections_file, connections)
        except _CONFIG_ERRORS as e:
            self.logger.error(f"Could not save connection '{config.connection_id}': {e}")
            return False

        action = "Updated" if previous else "Added"
        self.logger.info(f"{action} connection '{config.connection_id}' ({config.account_id})")
        return True

    def load_connection_config(self, connection_id: str) -> Optional[NetSuiteConnectionConfig]:
        """
        Load a connection configuration and decrypt its secrets.

        Returns:
            Connection configuration, or None if missing or unreadable
        """
        record = self._connections().get(connection_id)
        if record is None:
            self.logger.warning(f"No connection named '{connection_id}'")
            return None

        try:
            return NetSuiteConnectionConfig.from_dict(self._decrypt_secrets(record))
        except _CONFIG_ERRORS as e:
            self.logger.error(f"Could not load connection '{connection_id}': {e}")
            return None

    def list_connections(self) -> List[Dict[str, Any]]:
        """List all connection configurations without secrets."""
        summaries = []
        for connection_id, record in self._connections().items():
            summary = {'connection_id': connection_id}
            for key in ('account_id', 'authentication_type', 'rate_limit', 'created_at', 'updated_at'):
                summary[key] = record.get(key)
            summaries.append(summary)
        return summaries

    def delete_connection_config(self, connection_id: str) -> bool:
        """
        Delete a connection configuration, backing up first.

        Returns:
            True if deleted, False if missing or the delete failed
        """
        connections = self._connections()
        if connection_id not in connections:
            self.logger.warning(f"Cannot delete unknown connection '{connection_id}'")
            return False

        try:
            self._create_backup(f"before_delete_{connection_id}")
            connections.pop(connection_id)
            _write_json(self.connections_file, connections)
        except _CONFIG_ERRORS as e:
            self.logger.error(f"Could not delete connection '{connection_id}': {e}")
            return False

        self.logger.info(f"Deleted connection '{connection_id}'")
        return True

    def connection_exists(self, connection_id: str) -> bool:
        return connection_id in self._connections()

    # Settings

    def save_settings(self, settings: ReconciliationSettings) -> bool:
        """
        Save reconciliation settings.

        Returns:
            True if saved successfully, False otherwise
        """
        record = settings.to_dict()
        record['updated_at'] = time.time()
        try:
            _write_json(self.settings_file, record)
        except _CONFIG_ERRORS as e:
            self.logger.error(f"Could not save reconciliation settings: {e}")
            return False

        self.logger.info(f"Saved reconciliation settings to {self.settings_file}")
        return True

    def load_settings(self) -> ReconciliationSettings:
        """
        Load reconciliation settings.

        Returns:
            Stored settings, or defaults when no settings file exists

        Raises:
            ConfigurationError: If the settings file exists but cannot be read
        """
        if not self.settings_file.exists():
            self.logger.info("No reconciliation settings saved yet, using defaults")
            return ReconciliationSettings()

        try:
            record = _read_json(self.settings_file)
            record.pop('updated_at', None)
            return ReconciliationSettings.from_dict(record)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Invalid settings file {self.settings_file}: {e}")

    # Backups

    def create_backup(self, backup_name: Optional[str] = None) -> str:
        """
        Snapshot connections and settings into the backup directory.

        Returns:
            Path to the backup file
        """
        return self._create_backup(backup_name)

    def restore_backup(self, backup_path: str) -> bool:
        """
        Replace the current connections and settings with a backup.

        The current state is itself backed up as "before_restore" first.

        Returns:
            True if restored successfully, False otherwise
        """
        try:
            snapshot = _read_json(Path(backup_path))
            self._create_backup("before_restore")

            _write_json(self.connections_file, snapshot.get('connections', {}))
            if snapshot.get('settings'):
                _write_json(self.settings_file, snapshot['settings'])
        except _CONFIG_ERRORS as e:
            self.logger.error(f"Could not restore backup {backup_path}: {e}")
            return False

        self.logger.info(f"Restored configuration from {backup_path}")
        return True

    def get_config_info(self) -> Dict[str, Any]:
        """Get information about the configuration manager."""
        return {
            'config_directory': str(self.config_dir),
            'connections_count': len(self._connections()),
            'connections_file_exists': self.connections_file.exists(),
            'settings_file_exists': self.settings_file.exists(),
            'encryption_info': self.encryption.get_key_info(),
            'backup_directory': str(self.backup_dir),
            'backup_count': sum(1 for _ in self.backup_dir.glob('*.json'))
        }

    # Internals

    def _encrypt_secrets(self, record: Dict[str, Any]) -> Dict[str, Any]:
        encrypted = []
        for name in NetSuiteConnectionConfig.SECRET_FIELDS:
            if record.get(name):
                record[name] = self.encryption.encrypt(record[name])
                encrypted.append(name)
        record['encrypted_fields'] = encrypted
        return record

    def _decrypt_secrets(self, record: Dict[str, Any]) -> Dict[str, Any]:
        fields = {key: value for key, value in record.items() if key not in _METADATA_KEYS}
        for name in record.get('encrypted_fields', []):
            fields[name] = self.encryption.decrypt(fields.get(name, ''))
        return fields

    def _connections(self) -> Dict[str, Any]:
        """Stored connection records; a missing or unreadable file counts as empty."""
        if not self.connections_file.exists():
            return {}
        try:
            return _read_json(self.connections_file)
        except (OSError, ValueError) as e:
            self.logger.error(f"Ignoring unreadable {self.connections_file}: {e}")
            return {}

    def _create_backup(self, backup_name: Optional[str] = None) -> str:
        backup_file = self.backup_dir / f"{backup_name or f'backup_{int(time.time())}'}.json"
        snapshot = {
            'created_at': time.time(),
            'connections': self._connections(),
            'settings': {}
        }

        try:
            if self.settings_file.exists():
                snapshot['settings'] = _read_json(self.settings_file)
            _write_json(backup_file, snapshot)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Backup to {backup_file} failed: {e}")

        self.logger.info(f"Wrote configuration backup {backup_file}")
        return str(backup_file)


_global_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get the process-wide configuration manager, creating it on first use."""
    global _global_config_manager
    if _global_config_manager is None:
        _global_config_manager = ConfigManager()
    return _global_config_manager
