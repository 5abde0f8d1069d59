"""
In-memory ledger connector.

Holds open invoices, authorizations and created transactions in plain
Python structures so the reconciliation engine can run without a live
ledger. Failures of individual operations can be injected to exercise
the engine's skip and failure paths.
"""

import copy
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from credit_reconciliation.models import (
    AuthorizationLine, AuthorizationRecord, ConnectionTestResult, ExistingEntry,
    JournalEntry, LedgerEntryType, OpenInvoice, VendorCreditDraft, VendorCreditItemLine,
    parse_amount
)
from .base_connector import BaseConnector, LedgerOperationError, QueryError

import logging
logger = logging.getLogger(__name__)


class InMemoryLedger(BaseConnector):
    """
    Query service and ledger store over in-process data.

    Created journal entries and vendor credits are registered as existing
    entries, so a second run over the same documents hits the duplicate
    guard exactly as it would against a real ledger.
    """

    def __init__(self, connection_id: str = 'memory', first_internal_id: int = 1000):
        super().__init__(connection_id)
        self.open_invoices: List[Tuple[OpenInvoice, Optional[str]]] = []
        self.authorizations: Dict[str, AuthorizationRecord] = {}
        self.authorization_lines: Dict[str, List[AuthorizationLine]] = {}
        self.existing_entries: Dict[LedgerEntryType, List[ExistingEntry]] = {
            entry_type: [] for entry_type in LedgerEntryType
        }
        self.journal_entries: Dict[str, JournalEntry] = {}
        self.vendor_credits: Dict[str, VendorCreditDraft] = {}
        self.attachments: List[Tuple[str, LedgerEntryType, str]] = []
        self.deleted: List[Tuple[LedgerEntryType, str]] = []

        self.failing_queries: Dict[str, str] = {}
        self.transform_errors: Dict[str, LedgerOperationError] = {}
        # Raised when saving the vendor credit of that authorization
        self.save_errors: Dict[str, LedgerOperationError] = {}
        self.failing_attachments: Set[str] = set()
        self.failing_saves: Dict[LedgerEntryType, str] = {}
        self._next_id = first_internal_id

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_open_invoice(self, internal_id: str, tranid: str, entity_id: str,
                         trandate: Optional[date] = None, job_reference: Optional[str] = None):
        """Register an open customer invoice, optionally tagged with a job reference."""
        invoice = OpenInvoice(internal_id=internal_id, tranid=tranid, entity_id=entity_id, trandate=trandate)
        self.open_invoices.append((invoice, job_reference))
        return invoice

    def add_authorization(self, internal_id: str, tranid: str, lines: Iterable[Dict[str, Any]],
                          status_text: str = 'Pending Credit', entity: Optional[str] = None):
        """
        Register a vendor return authorization and its item lines.

        Args:
            internal_id: Authorization internal id
            tranid: Authorization number
            lines: Dicts with line, amount, memo and optional item_name/item_id
            status_text: Display status of the authorization
            entity: Vendor entity id
        """
        self.authorizations[internal_id] = AuthorizationRecord(
            internal_id=internal_id, tranid=tranid, status_text=status_text, entity=entity)
        self.authorization_lines[internal_id] = [
            AuthorizationLine(
                authorization_id=internal_id,
                line_number=str(line['line']),
                amount=parse_amount(line['amount']),
                memo=line.get('memo', ''),
                item_id=line.get('item_id'),
                item_name=line.get('item_name'),
                authorization_tranid=tranid,
                entity=entity,
                status=status_text
            )
            for line in lines
        ]

    def add_existing_entry(self, entry_type: LedgerEntryType, tranid: str,
                           internal_id: Optional[str] = None, **fields) -> ExistingEntry:
        """Register a transaction that already exists in the ledger."""
        entry = ExistingEntry(internal_id=internal_id or self._allocate_id(), tranid=tranid, **fields)
        self.existing_entries[entry_type].append(entry)
        return entry

    def fail_query(self, operation: str, message: str = 'search unavailable'):
        """Make a QueryService operation raise QueryError."""
        self.failing_queries[operation] = message

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def test_connection(self) -> ConnectionTestResult:
        result = ConnectionTestResult(success=True, connection_id=self.connection_id, response_time=0.0,
                                      additional_info={'connection_type': 'MEMORY'})
        self._last_connection_test = result
        return result

    def get_connection_info(self) -> Dict[str, Any]:
        return {
            'connection_id': self.connection_id,
            'connection_type': 'MEMORY',
            'open_invoices': len(self.open_invoices),
            'authorizations': len(self.authorizations),
            'journal_entries': len(self.journal_entries),
            'vendor_credits': len(self.vendor_credits),
            'healthy': self.is_healthy()
        }

    # ------------------------------------------------------------------
    # QueryService
    # ------------------------------------------------------------------

    def find_open_invoices_by_job(self, job_reference: str) -> List[OpenInvoice]:
        self._check_query('find_open_invoices_by_job')
        return [invoice for invoice, job in self.open_invoices if job == job_reference]

    def find_open_invoices_by_tranid(self, tranid: str) -> List[OpenInvoice]:
        self._check_query('find_open_invoices_by_tranid')
        return [invoice for invoice, _ in self.open_invoices if invoice.tranid == tranid]

    def find_existing_entries(self, entry_type: LedgerEntryType, tranid: str) -> List[ExistingEntry]:
        self._check_query('find_existing_entries')
        return [entry for entry in self.existing_entries[entry_type] if entry.tranid == tranid]

    def find_authorization_lines(self, memo_fragment: str) -> List[AuthorizationLine]:
        self._check_query('find_authorization_lines')
        return [
            line
            for lines in self.authorization_lines.values()
            for line in lines
            if memo_fragment in (line.memo or '')
        ]

    # ------------------------------------------------------------------
    # LedgerStore
    # ------------------------------------------------------------------

    def create_journal_entry(self, entry: JournalEntry) -> str:
        self._check_save(LedgerEntryType.JOURNAL_ENTRY)
        internal_id = self._allocate_id()
        self.journal_entries[internal_id] = copy.deepcopy(entry)
        self.existing_entries[LedgerEntryType.JOURNAL_ENTRY].append(ExistingEntry(
            internal_id=internal_id, tranid=entry.tranid, trandate=entry.trandate.isoformat(), memo=entry.memo))
        self.logger.debug(f"Created journal entry {entry.tranid} as {internal_id}")
        return internal_id

    def load_authorization(self, authorization_id: str) -> AuthorizationRecord:
        record = self.authorizations.get(authorization_id)
        if record is None:
            raise LedgerOperationError(f"Record vendorReturnAuthorization {authorization_id} does not exist",
                                       code='RCRD_DSNT_EXIST')
        return copy.copy(record)

    def transform_authorization(self, authorization_id: str) -> VendorCreditDraft:
        if authorization_id in self.transform_errors:
            raise self.transform_errors[authorization_id]
        record = self.load_authorization(authorization_id)
        return VendorCreditDraft(
            authorization_id=authorization_id,
            authorization_tranid=record.tranid,
            entity=record.entity,
            item_lines=[
                VendorCreditItemLine(line_number=line.line_number, amount=line.amount,
                                     item_id=line.item_id, item_name=line.item_name, memo=line.memo)
                for line in self.authorization_lines.get(authorization_id, [])
            ]
        )

    def save_vendor_credit(self, draft: VendorCreditDraft) -> str:
        self._check_save(LedgerEntryType.VENDOR_CREDIT)
        if draft.authorization_id in self.save_errors:
            raise self.save_errors[draft.authorization_id]
        internal_id = self._allocate_id()
        self.vendor_credits[internal_id] = copy.deepcopy(draft)
        self.existing_entries[LedgerEntryType.VENDOR_CREDIT].append(ExistingEntry(
            internal_id=internal_id, tranid=draft.tranid,
            trandate=draft.trandate.isoformat() if draft.trandate else None,
            memo=draft.memo, entity=draft.entity))
        self.logger.debug(f"Saved vendor credit {draft.tranid} as {internal_id}")
        return internal_id

    def attach_file(self, file_id: str, entry_type: LedgerEntryType, internal_id: str) -> None:
        if file_id in self.failing_attachments:
            raise LedgerOperationError(f"File {file_id} could not be attached")
        self.attachments.append((file_id, entry_type, internal_id))

    def delete_entry(self, entry_type: LedgerEntryType, internal_id: str) -> None:
        store = self.journal_entries if entry_type is LedgerEntryType.JOURNAL_ENTRY else self.vendor_credits
        if store.pop(internal_id, None) is None:
            raise LedgerOperationError(f"{entry_type.label} {internal_id} does not exist",
                                       code='RCRD_DSNT_EXIST')
        self.existing_entries[entry_type] = [
            entry for entry in self.existing_entries[entry_type] if entry.internal_id != internal_id
        ]
        self.deleted.append((entry_type, internal_id))

    # ------------------------------------------------------------------

    def _allocate_id(self) -> str:
        internal_id = str(self._next_id)
        self._next_id += 1
        return internal_id

    def _check_query(self, operation: str):
        if operation in self.failing_queries:
            raise QueryError(f"{operation} failed: {self.failing_queries[operation]}")

    def _check_save(self, entry_type: LedgerEntryType):
        if entry_type in self.failing_saves:
            raise LedgerOperationError(self.failing_saves[entry_type])
