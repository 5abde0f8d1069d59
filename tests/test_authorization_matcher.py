"""
Unit tests for authorization candidate search and per-candidate retry.
"""

from decimal import Decimal
from unittest.mock import Mock

from credit_reconciliation.models import (
    BillNumberGroup, LedgerEntry, LedgerEntryType, LineItem, Outcome, SkipType
)
from credit_reconciliation.connectors.memory_connector import InMemoryLedger
from credit_reconciliation.matching.authorization_matcher import AuthorizationMatcher


class TestAuthorizationMatcher:
    """Test cases for AuthorizationMatcher class."""

    def setup_method(self):
        """Setup test environment."""
        self.ledger = InMemoryLedger()
        self.matcher = AuthorizationMatcher(self.ledger)
        self.bill_group = BillNumberGroup(bill_number='B200', narda_types=['NF', 'CORE'], line_items=[
            LineItem('NF', Decimal('30.00'), original_bill_number='B200'),
            LineItem('CORE', Decimal('20.00'), original_bill_number='B200')
        ])

    def created(self, candidate):
        entry = LedgerEntry(entry_type=LedgerEntryType.VENDOR_CREDIT, internal_id='2000',
                            tranid='9001', total_amount=Decimal('50.00'))
        return Outcome.created(entry, ['NF', 'CORE'], Decimal('50.00'), authorization_id=candidate.internal_id)

    def skipped(self, skip_type):
        return Outcome.skipped(skip_type, 'skipped', ['NF', 'CORE'], Decimal('50.00'))

    def test_find_candidates_groups_by_authorization(self):
        """Test candidates are grouped in first-seen order with only referencing lines."""
        self.ledger.add_authorization('500', 'VRMA500', [
            {'line': 1, 'amount': '30.00', 'memo': 'Bill B200 NF'},
            {'line': 2, 'amount': '99.00', 'memo': 'Bill B999'}
        ])
        self.ledger.add_authorization('501', 'VRMA501', [
            {'line': 1, 'amount': '20.00', 'memo': 'B200 core'}
        ])

        candidates = self.matcher.find_candidates('B200')

        assert [candidate.internal_id for candidate in candidates] == ['500', '501']
        assert [line.line_number for line in candidates[0].lines] == ['1']
        assert candidates[0].tranid == 'VRMA500'

    def test_no_candidates_is_no_vrma_match(self):
        synthesize = Mock()

        outcome = self.matcher.resolve(self.bill_group, synthesize, source='memo.json')

        assert outcome.is_skipped
        assert outcome.skip_type == SkipType.NO_VRMA_MATCH
        assert outcome.reason == 'No VRMA found with matching bill number: B200'
        assert outcome.bill_number == 'B200'
        assert outcome.narda_numbers == ['NF', 'CORE']
        synthesize.assert_not_called()

    def test_query_error_is_failed(self):
        """Test a failed search is a failure, not a missing match."""
        self.ledger.fail_query('find_authorization_lines', 'timeout')

        outcome = self.matcher.resolve(self.bill_group, Mock())

        assert outcome.is_failed
        assert 'timeout' in outcome.error

    def test_first_matching_candidate_synthesized(self):
        self.ledger.add_authorization('500', 'VRMA500', [
            {'line': 1, 'amount': '30.00', 'memo': 'B200'},
            {'line': 2, 'amount': '20.00', 'memo': 'B200'}
        ])
        synthesize = Mock(side_effect=lambda group, candidate, pairs: self.created(candidate))

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.is_created
        group, candidate, pairs = synthesize.call_args[0]
        assert group is self.bill_group
        assert candidate.internal_id == '500'
        assert [pair.authorization_line.line_number for pair in pairs] == ['1', '2']

    def test_candidate_without_line_match_is_passed_over(self):
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '75.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        synthesize = Mock(side_effect=lambda group, candidate, pairs: self.created(candidate))

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.authorization_id == '501'
        assert synthesize.call_count == 1

    def test_business_skip_tries_next_candidate(self):
        """Test a skipped candidate does not end the search."""
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])

        def synthesize(group, candidate, pairs):
            if candidate.internal_id == '500':
                return self.skipped(SkipType.VRMA_FULLY_CREDITED)
            return self.created(candidate)

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.is_created
        assert outcome.authorization_id == '501'

    def test_last_skip_reported_when_all_skip(self):
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        results = iter([self.skipped(SkipType.VRMA_INVALID_STATUS), self.skipped(SkipType.VRMA_PERMISSION_ERROR)])

        outcome = self.matcher.resolve(self.bill_group, lambda group, candidate, pairs: next(results))

        assert outcome.skip_type == SkipType.VRMA_PERMISSION_ERROR

    def test_duplicate_ends_search(self):
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        synthesize = Mock(return_value=self.skipped(SkipType.DUPLICATE_VENDOR_CREDIT))

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.skip_type == SkipType.DUPLICATE_VENDOR_CREDIT
        assert synthesize.call_count == 1

    def test_failure_tries_next_candidate(self):
        """Test a failed save on one authorization does not stop the search."""
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])

        def synthesize(group, candidate, pairs):
            if candidate.internal_id == '500':
                return Outcome.failed('line amount exceeds remaining', ['NF', 'CORE'], Decimal('50.00'))
            return self.created(candidate)

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.is_created
        assert outcome.authorization_id == '501'

    def test_last_failure_reported_when_all_fail(self):
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        results = iter([self.skipped(SkipType.VRMA_INVALID_STATUS),
                        Outcome.failed('save rejected', ['NF', 'CORE'], Decimal('50.00'))])

        outcome = self.matcher.resolve(self.bill_group, lambda group, candidate, pairs: next(results))

        assert outcome.is_failed
        assert outcome.error == 'save rejected'

    def test_shared_failure_ends_search(self):
        """Test a failure every candidate would repeat is returned at once."""
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        self.ledger.add_authorization('501', 'VRMA501', [{'line': 1, 'amount': '30.00', 'memo': 'B200'}])
        synthesize = Mock(return_value=Outcome.failed('Duplicate check failed', ['NF', 'CORE'], Decimal('50.00'),
                                                      ends_candidate_search=True))

        outcome = self.matcher.resolve(self.bill_group, synthesize)

        assert outcome.is_failed
        assert synthesize.call_count == 1

    def test_no_line_matches_anywhere(self):
        self.ledger.add_authorization('500', 'VRMA500', [{'line': 1, 'amount': '1.00', 'memo': 'B200'}])

        outcome = self.matcher.resolve(self.bill_group, Mock())

        assert outcome.skip_type == SkipType.ALL_VRMA_ATTEMPTS_FAILED
        assert 'NF+CORE' in outcome.reason
