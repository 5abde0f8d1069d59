"""
Base connector interfaces for the ledger system.

Defines the two collaborators the reconciliation engine consumes: a
QueryService for read-only searches and a LedgerStore for writes. Both
are implemented by every concrete connector, which also inherits the
common logging, timing and error handling of BaseConnector.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from credit_reconciliation.models import (
    AuthorizationLine, AuthorizationRecord, ConnectionTestResult, ExistingEntry,
    JournalEntry, LedgerEntryType, OpenInvoice, ReconciliationError, VendorCreditDraft
)

logger = logging.getLogger(__name__)


class ConnectorError(ReconciliationError):
    """Base exception for connector-related errors."""
    pass


class QueryError(ConnectorError):
    """Raised when a search fails; an empty result is never an error."""
    pass


class LedgerOperationError(ConnectorError):
    """
    Raised when the ledger rejects a write, load or transform.

    Attributes:
        code: Ledger error code when the ledger supplied one
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class QueryService(ABC):
    """Read-only searches against the ledger."""

    @abstractmethod
    def find_open_invoices_by_job(self, job_reference: str) -> List[OpenInvoice]:
        """
        Find open, unpaid customer invoices whose job reference equals the value.

        Raises:
            QueryError: If the search fails
        """
        pass

    @abstractmethod
    def find_open_invoices_by_tranid(self, tranid: str) -> List[OpenInvoice]:
        """
        Find open, unpaid customer invoices whose transaction number equals the value.

        Raises:
            QueryError: If the search fails
        """
        pass

    @abstractmethod
    def find_existing_entries(self, entry_type: LedgerEntryType, tranid: str) -> List[ExistingEntry]:
        """
        Find ledger transactions of one type with the given transaction number.

        Raises:
            QueryError: If the search fails
        """
        pass

    @abstractmethod
    def find_authorization_lines(self, memo_fragment: str) -> List[AuthorizationLine]:
        """
        Find vendor return authorization lines whose memo contains the fragment.

        Raises:
            QueryError: If the search fails
        """
        pass


class LedgerStore(ABC):
    """Write operations against the ledger."""

    @abstractmethod
    def create_journal_entry(self, entry: JournalEntry) -> str:
        """
        Create a journal entry.

        Returns:
            Internal id of the created transaction

        Raises:
            LedgerOperationError: If the ledger rejects the entry
        """
        pass

    @abstractmethod
    def load_authorization(self, authorization_id: str) -> AuthorizationRecord:
        """
        Load an authorization header.

        Raises:
            LedgerOperationError: If the record cannot be loaded
        """
        pass

    @abstractmethod
    def transform_authorization(self, authorization_id: str) -> VendorCreditDraft:
        """
        Transform an authorization into an unsaved vendor credit.

        Raises:
            LedgerOperationError: If the ledger refuses the transformation
        """
        pass

    @abstractmethod
    def save_vendor_credit(self, draft: VendorCreditDraft) -> str:
        """
        Save a vendor credit draft.

        Returns:
            Internal id of the created transaction

        Raises:
            LedgerOperationError: If the ledger rejects the credit
        """
        pass

    @abstractmethod
    def attach_file(self, file_id: str, entry_type: LedgerEntryType, internal_id: str) -> None:
        """
        Attach a stored file to a transaction.

        Raises:
            LedgerOperationError: If the attachment fails
        """
        pass

    @abstractmethod
    def delete_entry(self, entry_type: LedgerEntryType, internal_id: str) -> None:
        """
        Delete a transaction by internal id.

        Raises:
            LedgerOperationError: If the deletion fails
        """
        pass


class BaseConnector(QueryService, LedgerStore):
    """
    Abstract base class for ledger connectors.

    Provides connection testing, health tracking, timing and consistent
    error logging on top of the QueryService and LedgerStore interfaces.
    """

    def __init__(self, connection_id: str):
        """
        Initialize base connector.

        Args:
            connection_id: Unique identifier for this connection
        """
        self.connection_id = connection_id
        self.logger = logging.getLogger(f"{__name__}.{connection_id}")
        self._last_connection_test: Optional[ConnectionTestResult] = None
        self._connection_healthy = True

    @abstractmethod
    def test_connection(self) -> ConnectionTestResult:
        """
        Test the connection to the ledger.

        Returns:
            ConnectionTestResult with success status and details
        """
        pass

    @abstractmethod
    def get_connection_info(self) -> Dict[str, Any]:
        """Get information about the current connection."""
        pass

    def is_healthy(self) -> bool:
        return self._connection_healthy

    def get_last_test_result(self) -> Optional[ConnectionTestResult]:
        return self._last_connection_test

    def _log_operation(self, operation: str, duration: float, success: bool,
                       details: Optional[str] = None):
        """
        Log connector operation with timing and status.

        Args:
            operation: Name of the operation
            duration: Time taken in seconds
            success: Whether operation succeeded
            details: Additional details to log
        """
        status = "SUCCESS" if success else "FAILED"
        message = f"{operation} {status} in {duration:.3f}s"

        if details:
            message += f" - {details}"

        if success:
            self.logger.info(message)
        else:
            self.logger.error(message)

    def _handle_error(self, operation: str, error: Exception,
                      error_class: type = ConnectorError) -> ConnectorError:
        """
        Handle and log connector errors consistently.

        Args:
            operation: Name of the operation that failed
            error: The original exception
            error_class: ConnectorError subclass to return

        Returns:
            Connector error with appropriate message
        """
        error_msg = f"{operation} failed for connection '{self.connection_id}': {str(error)}"
        self.logger.error(error_msg, exc_info=True)
        self._connection_healthy = False
        return error_class(error_msg)

