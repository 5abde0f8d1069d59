"""
Credit memo processing pipeline.

Runs one credit document through classification, journal entry synthesis
for job and invoice references, bill-number consolidation and
authorization matching for vendor credits, and manual-review skips for
everything else, then aggregates the outcomes. Batches are processed one
document at a time, in order.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from credit_reconciliation.models import (
    CreditDocument, NardaGroup, Outcome, ReconciliationSettings, SkipType, TransactionTypeClass
)
from credit_reconciliation.matching import (
    AuthorizationMatcher, BillNumberConsolidator, LineMatcher, NardaClassifier, ToleranceMatcher
)
from credit_reconciliation.ledger import JournalEntrySynthesizer, VendorCreditSynthesizer
from credit_reconciliation.connectors.base_connector import LedgerStore, QueryService
from credit_reconciliation.outcomes import BatchReport, DocumentResult, OutcomeAggregator

import logging
logger = logging.getLogger(__name__)


class CreditMemoProcessor:
    """
    Reconciles credit documents against the ledger.

    Example:
        processor = CreditMemoProcessor(connector, connector, settings)
        report = processor.process_batch(documents)
    """

    def __init__(self, query_service: QueryService, ledger_store: LedgerStore,
                 settings: Optional[ReconciliationSettings] = None,
                 aggregator: Optional[OutcomeAggregator] = None):
        """
        Initialize processor.

        Args:
            query_service: Read-only ledger searches
            ledger_store: Ledger writes
            settings: Accounts, entities and rules for the run
            aggregator: Outcome aggregator
        """
        self.settings = settings or ReconciliationSettings()
        self.classifier = NardaClassifier(self.settings)
        self.consolidator = BillNumberConsolidator()
        self.line_matcher = LineMatcher(ToleranceMatcher(self.settings.amount_tolerance))
        self.authorization_matcher = AuthorizationMatcher(query_service, self.line_matcher)
        self.journal_entries = JournalEntrySynthesizer(query_service, ledger_store, self.settings)
        self.vendor_credits = VendorCreditSynthesizer(query_service, ledger_store, self.settings)
        self.aggregator = aggregator or OutcomeAggregator()
        self.logger = logging.getLogger(f"{__name__}.CreditMemoProcessor")

    def process_document(self, document: CreditDocument) -> DocumentResult:
        """
        Process one credit document to a terminal result.

        Args:
            document: Extracted credit document

        Returns:
            DocumentResult with one outcome per NARDA or bill-number group
        """
        if not document.is_credit_memo:
            return self.aggregator.skipped_document(document, SkipType.NOT_CREDIT_MEMO, "Not a credit memo")
        if not document.line_items:
            return self.aggregator.failed_document(document.label, "No NARDA groups found in extracted data",
                                                   document.invoice_number)

        buckets = self.classifier.classify_document(document)
        self.logger.info(f"{document.label}: invoice {document.invoice_number}, "
                         f"{len(document.line_items)} line(s), " +
                         ', '.join(f"{len(groups)} {type_class.value}" for type_class, groups in buckets.items()))

        outcomes: List[Outcome] = []
        outcomes.extend(self._process_journal_entries(document, buckets[TransactionTypeClass.JOURNAL_ENTRY]))
        outcomes.extend(self._process_vendor_credits(document, buckets[TransactionTypeClass.VENDOR_CREDIT]))
        outcomes.extend(self._manual_review_skips(document, buckets))

        return self.aggregator.aggregate(document, outcomes)

    def process_batch(self, documents: Iterable[CreditDocument], stop_on_error: bool = False) -> BatchReport:
        """
        Process documents strictly in order.

        An exception escaping one document marks that document failed; the
        batch continues unless stop_on_error is set.

        Args:
            documents: Credit documents to reconcile
            stop_on_error: Stop at the first document that raises

        Returns:
            BatchReport with one result per attempted document
        """
        report = BatchReport()

        for document in documents:
            try:
                report.results.append(self.process_document(document))
            except Exception as e:
                self.logger.error(f"Unexpected error processing {document.label}: {e}", exc_info=True)
                report.results.append(self.aggregator.failed_document(
                    document.label, f"Unexpected error: {e}", document.invoice_number))
                if stop_on_error:
                    report.stopped_early = True
                    break

        report.finished_at = datetime.now()
        self.logger.info(f"Batch complete: {report.documents_found} document(s), "
                         f"{report.documents_processed} processed, {report.documents_skipped} skipped, "
                         f"{report.documents_failed} failed; {report.journal_entries_created} journal "
                         f"entr(ies), {report.vendor_credits_created} vendor credit(s) created")
        return report

    def _process_journal_entries(self, document: CreditDocument, groups: List[NardaGroup]) -> List[Outcome]:
        if not groups:
            return []
        try:
            return self.journal_entries.synthesize(document, groups)
        except Exception as e:
            self.logger.error(f"{document.label}: journal entry synthesis error: {e}", exc_info=True)
            return [Outcome.failed(f"Journal entry synthesis error: {e}", [group.narda_number],
                                   group.total_amount, source=document.label) for group in groups]

    def _process_vendor_credits(self, document: CreditDocument, groups: List[NardaGroup]) -> List[Outcome]:
        if not groups:
            return []

        consolidation = self.consolidator.consolidate(groups)
        outcomes: List[Outcome] = []

        for group in consolidation.unreferenced:
            outcomes.append(Outcome.skipped(
                SkipType.NO_ORIGINATING_BILL,
                f"{group.narda_number} NARDA - no original bill number on {len(group.line_items)} "
                f"line(s), cannot match VRMA",
                [group.narda_number], group.total_amount, source=document.label
            ))

        def synthesize(bill_group, candidate, pairs):
            return self.vendor_credits.synthesize(document, bill_group, candidate, pairs)

        for bill_group in consolidation.bill_groups:
            try:
                outcome = self.authorization_matcher.resolve(bill_group, synthesize, source=document.label)
            except Exception as e:
                self.logger.error(f"{document.label}: vendor credit error for bill {bill_group.bill_number}: {e}",
                                  exc_info=True)
                outcome = Outcome.failed(f"Vendor credit synthesis error: {e}", bill_group.narda_types,
                                         bill_group.total_amount, bill_number=bill_group.bill_number,
                                         source=document.label)
            outcomes.append(outcome)

        return outcomes

    def _manual_review_skips(self, document: CreditDocument,
                             buckets: Dict[TransactionTypeClass, List[NardaGroup]]) -> List[Outcome]:
        outcomes = []
        for group in buckets[TransactionTypeClass.SHORT_SHIP]:
            outcomes.append(Outcome.skipped(
                SkipType.SHORT_SHIP,
                f"{group.narda_number.upper()} NARDA - requires manual short ship processing",
                [group.narda_number], group.total_amount, source=document.label
            ))
        for group in buckets[TransactionTypeClass.UNIDENTIFIED]:
            outcomes.append(Outcome.skipped(
                SkipType.UNIDENTIFIED_NARDA,
                f"Unidentified NARDA value: {group.narda_number or '<blank>'} - requires manual review",
                [group.narda_number], group.total_amount, source=document.label
            ))
        return outcomes
