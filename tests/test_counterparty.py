"""
Unit tests for counterparty resolution, the duplicate guard and attachments.
"""

from datetime import date

from credit_reconciliation.models import LedgerEntryType
from credit_reconciliation.connectors.memory_connector import InMemoryLedger
from credit_reconciliation.ledger.counterparty import CounterpartyResolver
from credit_reconciliation.ledger.duplicate_guard import DuplicateGuard
from credit_reconciliation.ledger.attachments import AttachmentService


class TestCounterpartyResolver:
    """Test cases for CounterpartyResolver class."""

    def setup_method(self):
        """Setup test environment."""
        self.ledger = InMemoryLedger()
        self.resolver = CounterpartyResolver(self.ledger)

    def test_resolve_by_job_reference(self):
        self.ledger.add_open_invoice('10', 'INV100', '77', date(2024, 1, 5), job_reference='J1234')

        resolution = self.resolver.resolve('J1234')

        assert resolution.success is True
        assert resolution.entity_id == '77'
        assert resolution.found_by == 'job_reference'
        assert resolution.match_count == 1

    def test_falls_back_to_tranid(self):
        """Test invoice references resolve through the transaction number."""
        self.ledger.add_open_invoice('11', 'INV5555', '88', date(2024, 1, 5))

        resolution = self.resolver.resolve('INV5555')

        assert resolution.success is True
        assert resolution.entity_id == '88'
        assert resolution.found_by == 'tranid'

    def test_most_recent_invoice_wins(self):
        self.ledger.add_open_invoice('10', 'INV100', '77', date(2024, 1, 5), job_reference='J1234')
        self.ledger.add_open_invoice('12', 'INV120', '79', date(2024, 2, 1), job_reference='J1234')
        self.ledger.add_open_invoice('11', 'INV110', '78', date(2023, 12, 1), job_reference='J1234')

        resolution = self.resolver.resolve('J1234')

        assert resolution.entity_id == '79'
        assert resolution.invoice_tranid == 'INV120'
        assert resolution.match_count == 3

    def test_equal_dates_keep_search_order(self):
        self.ledger.add_open_invoice('10', 'INV100', '77', date(2024, 1, 5), job_reference='J1234')
        self.ledger.add_open_invoice('12', 'INV120', '79', date(2024, 1, 5), job_reference='J1234')

        assert self.resolver.resolve('J1234').entity_id == '77'

    def test_no_open_invoice(self):
        resolution = self.resolver.resolve('J9999')

        assert resolution.success is False
        assert resolution.reason == 'NO_MATCHING_OPEN_INVOICE'
        assert resolution.is_search_error is False
        assert 'J9999' in resolution.error

    def test_search_error(self):
        """Test a failed search is distinguished from no match."""
        self.ledger.fail_query('find_open_invoices_by_job', 'timeout')

        resolution = self.resolver.resolve('J1234')

        assert resolution.success is False
        assert resolution.is_search_error is True
        assert 'timeout' in resolution.error


class TestDuplicateGuard:
    """Test cases for DuplicateGuard class."""

    def setup_method(self):
        """Setup test environment."""
        self.ledger = InMemoryLedger()
        self.guard = DuplicateGuard(self.ledger)

    def test_clear(self):
        check = self.guard.check(LedgerEntryType.JOURNAL_ENTRY, '9001 CM')

        assert check.is_clear is True
        assert check.is_duplicate is False

    def test_duplicate(self):
        self.ledger.add_existing_entry(LedgerEntryType.VENDOR_CREDIT, '9001', internal_id='321')

        check = self.guard.check(LedgerEntryType.VENDOR_CREDIT, '9001')

        assert check.is_duplicate is True
        assert check.first_existing.internal_id == '321'
        assert 'Duplicate vendor credit exists with tranid: 9001' in check.describe()

    def test_types_are_checked_separately(self):
        self.ledger.add_existing_entry(LedgerEntryType.VENDOR_CREDIT, '9001')

        assert self.guard.check(LedgerEntryType.JOURNAL_ENTRY, '9001').is_clear is True

    def test_search_error_blocks_creation(self):
        """Test an unverifiable check is neither clear nor a duplicate."""
        self.ledger.fail_query('find_existing_entries', 'timeout')

        check = self.guard.check(LedgerEntryType.JOURNAL_ENTRY, '9001 CM')

        assert check.is_clear is False
        assert check.is_duplicate is False
        assert 'Could not verify uniqueness of 9001 CM' in check.describe()


class TestAttachmentService:
    """Test cases for AttachmentService class."""

    def test_failed_attachment_recorded(self):
        ledger = InMemoryLedger()
        ledger.failing_attachments.add('56')
        service = AttachmentService(ledger)

        results = service.attach_all(['55', '56'], LedgerEntryType.JOURNAL_ENTRY, '1000')

        assert [result.success for result in results] == [True, False]
        assert results[1].error == 'File 56 could not be attached'
        assert ledger.attachments == [('55', LedgerEntryType.JOURNAL_ENTRY, '1000')]
