"""
Unit tests for NARDA classification and bill-number consolidation.
"""

from datetime import date
from decimal import Decimal

from credit_reconciliation.models import (
    CreditDocument, LineItem, NardaGroup, ReconciliationSettings, TransactionTypeClass
)
from credit_reconciliation.matching.classifier import NardaClassifier, split_groups
from credit_reconciliation.matching.consolidator import BillNumberConsolidator


class TestNardaClassifier:
    """Test cases for NardaClassifier."""

    def setup_method(self):
        """Setup test environment."""
        self.classifier = NardaClassifier(ReconciliationSettings())

    def test_vendor_credit_codes(self):
        for code in ('CONCDA', 'CONCDAM', 'NF', 'CORE', 'CONCESSION', 'core', ' nf '):
            assert self.classifier.classify(code) == TransactionTypeClass.VENDOR_CREDIT

    def test_job_numbers(self):
        """Test job number shape J followed by 4 to 6 digits."""
        assert self.classifier.classify('J1234') == TransactionTypeClass.JOURNAL_ENTRY
        assert self.classifier.classify('J123456') == TransactionTypeClass.JOURNAL_ENTRY
        assert self.classifier.classify('j12345') == TransactionTypeClass.JOURNAL_ENTRY
        assert self.classifier.classify('J123') == TransactionTypeClass.UNIDENTIFIED
        assert self.classifier.classify('J1234567') == TransactionTypeClass.UNIDENTIFIED

    def test_invoice_references(self):
        assert self.classifier.classify('INV12345') == TransactionTypeClass.JOURNAL_ENTRY
        assert self.classifier.classify('INV') == TransactionTypeClass.UNIDENTIFIED

    def test_short_ship_markers(self):
        assert self.classifier.classify('SHORT') == TransactionTypeClass.SHORT_SHIP
        assert self.classifier.classify('box') == TransactionTypeClass.SHORT_SHIP

    def test_everything_else_unidentified(self):
        for code in ('', '   ', 'XYZ', 'CONC', '12345', None):
            assert self.classifier.classify(code) == TransactionTypeClass.UNIDENTIFIED

    def test_custom_code_sets(self):
        """Test classification follows configured code sets."""
        classifier = NardaClassifier(ReconciliationSettings(vendor_credit_codes=('RETURN',),
                                                            short_ship_codes=('MISSING',)))

        assert classifier.classify('RETURN') == TransactionTypeClass.VENDOR_CREDIT
        assert classifier.classify('CORE') == TransactionTypeClass.UNIDENTIFIED
        assert classifier.classify('MISSING') == TransactionTypeClass.SHORT_SHIP

    def test_group_line_items_first_seen_order(self):
        """Test lines group by exact code in first-seen order."""
        lines = [
            LineItem('CORE', Decimal('10.00')),
            LineItem('J1234', Decimal('20.00')),
            LineItem('CORE', Decimal('5.00')),
            LineItem('BOX', Decimal('1.00'))
        ]

        groups = self.classifier.group_line_items(lines)

        assert [group.narda_number for group in groups] == ['CORE', 'J1234', 'BOX']
        assert groups[0].total_amount == Decimal('15.00')
        assert groups[0].type_class == TransactionTypeClass.VENDOR_CREDIT
        assert sum(len(group.line_items) for group in groups) == len(lines)

    def test_classify_document_buckets(self):
        document = CreditDocument(invoice_number='9001', invoice_date=date(2024, 3, 15), line_items=[
            LineItem('J1234', Decimal('150.00')),
            LineItem('NF', Decimal('30.00'), original_bill_number='B200'),
            LineItem('SHORT', Decimal('5.00')),
            LineItem('???', Decimal('1.00'))
        ])

        buckets = self.classifier.classify_document(document)
        journal_groups, vendor_groups = split_groups(buckets)

        assert set(buckets) == set(TransactionTypeClass)
        assert [group.narda_number for group in journal_groups] == ['J1234']
        assert [group.narda_number for group in vendor_groups] == ['NF']
        assert len(buckets[TransactionTypeClass.SHORT_SHIP]) == 1
        assert len(buckets[TransactionTypeClass.UNIDENTIFIED]) == 1


class TestBillNumberConsolidator:
    """Test cases for BillNumberConsolidator."""

    def setup_method(self):
        """Setup test environment."""
        self.consolidator = BillNumberConsolidator()

    def create_group(self, code, *lines):
        return NardaGroup(narda_number=code, type_class=TransactionTypeClass.VENDOR_CREDIT,
                          line_items=[LineItem(code, Decimal(amount), original_bill_number=bill)
                                      for amount, bill in lines])

    def test_codes_sharing_a_bill_merge(self):
        """Test that lines of different codes with the same bill merge."""
        result = self.consolidator.consolidate([
            self.create_group('NF', ('30.00', 'B200')),
            self.create_group('CORE', ('20.00', 'B200'), ('40.00', 'B300'))
        ])

        assert result.bill_numbers == ['B200', 'B300']
        assert result.bill_groups[0].narda_types == ['NF', 'CORE']
        assert result.bill_groups[0].total_amount == Decimal('50.00')
        assert result.bill_groups[1].narda_types == ['CORE']
        assert result.unreferenced == []

    def test_unreferenced_lines_reported_per_code(self):
        """Test lines without a bill reference never join a bill group."""
        result = self.consolidator.consolidate([
            self.create_group('CORE', ('20.00', 'B100'), ('7.00', None)),
            self.create_group('NF', ('3.00', None))
        ])

        assert result.bill_numbers == ['B100']
        assert result.bill_groups[0].total_amount == Decimal('20.00')
        assert [group.narda_number for group in result.unreferenced] == ['CORE', 'NF']
        assert result.unreferenced[0].total_amount == Decimal('7.00')

    def test_non_vendor_credit_groups_ignored(self):
        journal_group = NardaGroup(narda_number='J1234', type_class=TransactionTypeClass.JOURNAL_ENTRY,
                                   line_items=[LineItem('J1234', Decimal('1.00'), original_bill_number='B1')])

        result = self.consolidator.consolidate([journal_group])

        assert result.bill_groups == []
        assert result.unreferenced == []
