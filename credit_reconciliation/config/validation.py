"""
Configuration validation and testing utilities.

Provides validation for reconciliation settings and NetSuite connection
configurations, and a connection tester that validates before it calls
the ledger.
"""

import re
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from credit_reconciliation.models import (
    AuthenticationType, ConnectionTestResult, NetSuiteConnectionConfig, ReconciliationSettings
)
from credit_reconciliation.matching.classifier import INVOICE_REFERENCE_PATTERN, JOB_NUMBER_PATTERN
from credit_reconciliation.connectors.base_connector import ConnectorError
from credit_reconciliation.connectors.netsuite_connector import NetSuiteConnector

import logging
logger = logging.getLogger(__name__)

ACCOUNT_ID_PATTERN = re.compile(r'^\d+(_SB\d+|_RP\d+)?$', re.IGNORECASE)
IDENTIFIER_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# (label, attribute, minimum, warn below, warn above)
CONNECTION_LIMITS = (
    ("Timeout (seconds)", "timeout", 1, 5, 300),
    ("Rate limit (requests/minute)", "rate_limit", 1, 10, 10000),
    ("Retry attempts", "retry_attempts", 0, None, 10),
)


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    suggestions: List[str]

    def add_error(self, message: str):
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        """Add a warning message."""
        self.warnings.append(message)

    def add_suggestion(self, message: str):
        """Add a suggestion message."""
        self.suggestions.append(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'is_valid': self.is_valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'suggestions': self.suggestions
        }


def _looks_like_journal_reference(code: str) -> bool:
    code = code.strip().upper()
    return bool(JOB_NUMBER_PATTERN.match(code) or INVOICE_REFERENCE_PATTERN.match(code))


def _check_limit(result: ValidationResult, label: str, value: int, minimum: int,
                 low: Optional[int], high: int):
    if value < minimum:
        result.add_error(f"{label} must be at least {minimum}")
    elif value > high:
        result.add_warning(f"{label} {value} is very high (>{high})")
    elif low is not None and value < low:
        result.add_warning(f"{label} {value} is very low (<{low})")


class ConfigurationValidator:
    """Validates reconciliation settings and connection configurations with detailed error reporting."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ConfigurationValidator")

    def validate_settings(self, settings: ReconciliationSettings) -> ValidationResult:
        """
        Validate reconciliation settings.

        Args:
            settings: Settings to validate

        Returns:
            ValidationResult with validation details
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[], suggestions=[])

        # Account and entity ids
        required_ids = {
            'Accounts payable account': settings.accounts_payable_account,
            'Accounts receivable account': settings.accounts_receivable_account,
            'Freight account': settings.freight_account,
            'Vendor entity': settings.vendor_entity,
            'Service department': settings.service_department
        }
        for label, value in required_ids.items():
            if not value or not value.strip():
                result.add_error(f"{label} is required")
            elif not value.strip().isdigit():
                result.add_warning(f"{label} '{value}' is not a numeric internal id")

        if settings.accounts_payable_account and \
                settings.accounts_payable_account == settings.accounts_receivable_account:
            result.add_error("Accounts payable and accounts receivable must be different accounts")

        # Code sets
        vendor_credit_codes = {code.strip().upper() for code in settings.vendor_credit_codes}
        short_ship_codes = {code.strip().upper() for code in settings.short_ship_codes}

        if not vendor_credit_codes:
            result.add_warning("No vendor credit codes configured - no vendor credits will be created")
        if '' in vendor_credit_codes or '' in short_ship_codes:
            result.add_error("NARDA codes cannot be blank")

        overlap = vendor_credit_codes & short_ship_codes
        if overlap:
            result.add_error(f"Codes configured as both vendor credit and short ship: {', '.join(sorted(overlap))}")

        for code in sorted(vendor_credit_codes):
            if code and _looks_like_journal_reference(code):
                result.add_warning(f"Vendor credit code '{code}' looks like a job or invoice reference "
                                   f"and will never produce a journal entry")
        for code in sorted(short_ship_codes):
            if code and _looks_like_journal_reference(code):
                result.add_error(f"Short ship code '{code}' matches the job/invoice reference pattern "
                                 f"and can never be reached")

        # Tolerance
        if settings.amount_tolerance < 0:
            result.add_error("Amount tolerance cannot be negative")
        elif settings.amount_tolerance > Decimal('1.00'):
            result.add_warning(f"Amount tolerance {settings.amount_tolerance} is very high (>1.00)")

        # Transaction numbering and memos
        if not settings.journal_entry_suffix.strip():
            result.add_error("Journal entry suffix is required to keep journal entry numbers distinct "
                             "from vendor credit numbers")
        if not settings.memo_prefix.strip():
            result.add_warning("Memo prefix is empty - authorization lines are found by memo")

        if not settings.invalid_authorization_statuses:
            result.add_suggestion("Configure terminal authorization statuses such as Closed, Rejected, Cancelled")

        self.logger.debug(f"Settings validation completed: {len(result.errors)} errors, {len(result.warnings)} warnings")
        return result

    def validate_connection_config(self, config: NetSuiteConnectionConfig) -> ValidationResult:
        """
        Validate NetSuite connection configuration.

        Args:
            config: Connection configuration to validate

        Returns:
            ValidationResult with validation details
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[], suggestions=[])

        # Identifiers
        if not config.connection_id:
            result.add_error("Connection ID is required")
        elif not IDENTIFIER_PATTERN.match(config.connection_id):
            result.add_error("Connection ID can only contain letters, numbers, hyphens, and underscores")

        if not config.account_id:
            result.add_error("Account ID is required")
        elif not ACCOUNT_ID_PATTERN.match(config.account_id.replace('-', '_')):
            result.add_error("Account ID format appears invalid (expected: 1234567 or 1234567_SB1)")
        elif '_SB' in config.account_id.upper().replace('-', '_'):
            result.add_suggestion("Sandbox account detected - entries will not reach production")

        # Credentials
        if config.authentication_type == AuthenticationType.TOKEN_BASED:
            for label, value in (('Consumer key', config.consumer_key),
                                 ('Consumer secret', config.consumer_secret),
                                 ('Token ID', config.token_id),
                                 ('Token secret', config.token_secret)):
                if not value:
                    result.add_error(f"{label} is required for token-based authentication")
            if config.access_token:
                result.add_warning("Access token is ignored with token-based authentication")

        elif config.authentication_type == AuthenticationType.BEARER_TOKEN:
            if not config.access_token:
                result.add_error("Access token is required for bearer token authentication")
            elif len(config.access_token) < 10:
                result.add_warning("Bearer token appears to be very short")

        for label, attribute, minimum, low, high in CONNECTION_LIMITS:
            _check_limit(result, label, getattr(config, attribute), minimum, low, high)

        # Attachment RESTlet
        if not config.attach_restlet_url:
            result.add_suggestion("No attachment RESTlet configured - source files will not be attached")
        else:
            parsed_url = urlparse(config.attach_restlet_url)
            if parsed_url.scheme != 'https':
                result.add_error("Attachment RESTlet URL must use HTTPS")
            if not parsed_url.netloc:
                result.add_error("Attachment RESTlet URL must include hostname")
            elif 'restlets.api.netsuite.com' not in parsed_url.netloc:
                result.add_warning("Attachment RESTlet URL is not a NetSuite RESTlet host")

        self.logger.debug(f"Connection config validation completed: {len(result.errors)} errors, {len(result.warnings)} warnings")
        return result


class ConnectionTester:
    """Tests NetSuite connections with detailed diagnostics."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ConnectionTester")

    def test_netsuite_connection(self, config: NetSuiteConnectionConfig) -> ConnectionTestResult:
        """
        Validate a connection configuration, then test it against the ledger.

        Args:
            config: Connection configuration to test

        Returns:
            ConnectionTestResult with test results
        """
        start_time = time.time()

        validation = ConfigurationValidator().validate_connection_config(config)
        if not validation.is_valid:
            return ConnectionTestResult(
                success=False,
                connection_id=config.connection_id,
                response_time=time.time() - start_time,
                error_message=f"Configuration validation failed: {'; '.join(validation.errors)}",
                additional_info={
                    'validation_errors': validation.errors,
                    'validation_warnings': validation.warnings
                }
            )

        try:
            result = NetSuiteConnector(config).test_connection()
        except ConnectorError as e:
            self.logger.error(f"NetSuite connection test failed: {e}")
            return ConnectionTestResult(
                success=False,
                connection_id=config.connection_id,
                response_time=time.time() - start_time,
                error_message=str(e),
                additional_info={'exception_type': type(e).__name__}
            )

        result.additional_info['validation_warnings'] = validation.warnings
        return result
