"""
Unit tests for outcome aggregation and the batch report.
"""

from datetime import date
from decimal import Decimal

from credit_reconciliation.models import (
    CreditDocument, DocumentStatus, LedgerEntry, LedgerEntryType, Outcome, SkipType
)
from credit_reconciliation.outcomes import BatchReport, OutcomeAggregator, distinct_entries


def create_document():
    return CreditDocument(invoice_number='9001', invoice_date=date(2024, 3, 15), line_items=[],
                          file_name='memo.json')


def journal_entry(internal_id='1000'):
    return LedgerEntry(entry_type=LedgerEntryType.JOURNAL_ENTRY, internal_id=internal_id,
                       tranid='9001 CM', total_amount=Decimal('140.00'))


class TestOutcomeAggregator:
    """Test cases for OutcomeAggregator class."""

    def setup_method(self):
        """Setup test environment."""
        self.aggregator = OutcomeAggregator()

    def test_created_wins_over_failures(self):
        """Test a partial failure still counts the document as processed."""
        outcomes = [
            Outcome.created(journal_entry(), ['J1234'], Decimal('100.00')),
            Outcome.failed('save rejected', ['CORE'], Decimal('20.00'))
        ]

        result = self.aggregator.aggregate(create_document(), outcomes)

        assert result.status == DocumentStatus.PROCESSED
        assert len(result.created) == 1
        assert len(result.failed) == 1

    def test_all_skips(self):
        outcomes = [
            Outcome.skipped(SkipType.SHORT_SHIP, 'first reason', ['BOX'], Decimal('1.00')),
            Outcome.skipped(SkipType.UNIDENTIFIED_NARDA, 'second reason', ['XYZ'], Decimal('2.00'))
        ]

        result = self.aggregator.aggregate(create_document(), outcomes)

        assert result.status == DocumentStatus.SKIPPED
        assert result.skip_type == SkipType.SHORT_SHIP
        assert result.skip_reason == 'first reason'

    def test_skips_and_failures(self):
        outcomes = [
            Outcome.skipped(SkipType.SHORT_SHIP, 'reason', ['BOX'], Decimal('1.00')),
            Outcome.failed('search failed', ['NF'], Decimal('2.00'))
        ]

        result = self.aggregator.aggregate(create_document(), outcomes)

        assert result.status == DocumentStatus.FAILED
        assert result.error == 'search failed'

    def test_shared_journal_entry_counted_once(self):
        entry = journal_entry()
        outcomes = [
            Outcome.created(entry, ['J1234'], Decimal('100.00')),
            Outcome.created(entry, ['INV5555'], Decimal('40.00'))
        ]

        result = self.aggregator.aggregate(create_document(), outcomes)

        assert len(result.entries) == 1
        assert len(distinct_entries(outcomes)) == 1
        assert result.to_dict()['created_count'] == 2

    def test_skipped_document(self):
        result = self.aggregator.skipped_document(create_document(), SkipType.NOT_CREDIT_MEMO, 'Not a credit memo')

        assert result.status == DocumentStatus.SKIPPED
        assert result.outcomes == []
        assert result.to_dict()['skip_type'] == 'NOT_CREDIT_MEMO'


class TestBatchReport:
    """Test cases for BatchReport class."""

    def test_counts(self):
        aggregator = OutcomeAggregator()
        vendor_credit = LedgerEntry(entry_type=LedgerEntryType.VENDOR_CREDIT, internal_id='2000',
                                    tranid='9002', total_amount=Decimal('50.00'))
        report = BatchReport(results=[
            aggregator.aggregate(create_document(), [
                Outcome.created(journal_entry(), ['J1234'], Decimal('100.00')),
                Outcome.created(journal_entry(), ['INV5555'], Decimal('40.00')),
                Outcome.created(vendor_credit, ['NF'], Decimal('50.00'))
            ]),
            aggregator.skipped_document(create_document(), SkipType.NOT_CREDIT_MEMO, 'Not a credit memo'),
            aggregator.aggregate(create_document(), [
                Outcome.skipped(SkipType.SHORT_SHIP, 'reason', ['BOX'], Decimal('1.00'))
            ]),
            aggregator.failed_document('broken.json', 'No NARDA groups found in extracted data')
        ])

        summary = report.to_dict()['summary']

        assert summary['documents_found'] == 4
        assert summary['documents_processed'] == 1
        assert summary['documents_skipped'] == 2
        assert summary['documents_failed'] == 1
        assert summary['journal_entries_created'] == 1
        assert summary['vendor_credits_created'] == 1
        assert summary['skip_types'] == {'NOT_CREDIT_MEMO': 1, 'SHORT_SHIP': 1}
