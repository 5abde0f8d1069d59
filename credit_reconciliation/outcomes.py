"""
Outcome aggregation for credit documents and batches.

Folds the per-group outcomes of one document into a DocumentResult and
the document results of a run into a BatchReport, the structure handed
to whatever renders or delivers the processing report.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from credit_reconciliation.models import (
    CreditDocument, DocumentStatus, LedgerEntry, LedgerEntryType, Outcome, SkipType
)

import logging
logger = logging.getLogger(__name__)


def distinct_entries(outcomes: List[Outcome]) -> List[LedgerEntry]:
    """Created ledger entries, once each; groups sharing a journal entry report it once."""
    seen = set()
    entries = []
    for outcome in outcomes:
        if outcome.entry is None:
            continue
        key = (outcome.entry.entry_type, outcome.entry.internal_id)
        if key not in seen:
            seen.add(key)
            entries.append(outcome.entry)
    return entries


@dataclass
class DocumentResult:
    """Aggregate result of processing one credit document."""
    source: str
    invoice_number: str
    status: DocumentStatus
    outcomes: List[Outcome] = field(default_factory=list)
    skip_type: Optional[SkipType] = None
    skip_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def created(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.is_created]

    @property
    def skipped(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.is_skipped]

    @property
    def failed(self) -> List[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.is_failed]

    @property
    def entries(self) -> List[LedgerEntry]:
        return distinct_entries(self.outcomes)

    def entries_of(self, entry_type: LedgerEntryType) -> List[LedgerEntry]:
        return [entry for entry in self.entries if entry.entry_type is entry_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'source': self.source,
            'invoice_number': self.invoice_number,
            'status': self.status.value,
            'skip_type': self.skip_type.value if self.skip_type else None,
            'skip_reason': self.skip_reason,
            'error': self.error,
            'created_count': len(self.created),
            'skipped_count': len(self.skipped),
            'failed_count': len(self.failed),
            'entries': [entry.to_dict() for entry in self.entries],
            'created': [outcome.to_dict() for outcome in self.created],
            'skipped': [outcome.to_dict() for outcome in self.skipped],
            'failed': [outcome.to_dict() for outcome in self.failed]
        }


@dataclass
class BatchReport:
    """Results of processing a batch of credit documents in order."""
    results: List[DocumentResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    stopped_early: bool = False

    @property
    def documents_found(self) -> int:
        return len(self.results)

    def _count(self, status: DocumentStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def documents_processed(self) -> int:
        return self._count(DocumentStatus.PROCESSED)

    @property
    def documents_skipped(self) -> int:
        return self._count(DocumentStatus.SKIPPED)

    @property
    def documents_failed(self) -> int:
        return self._count(DocumentStatus.FAILED)

    @property
    def journal_entries_created(self) -> int:
        return sum(len(result.entries_of(LedgerEntryType.JOURNAL_ENTRY)) for result in self.results)

    @property
    def vendor_credits_created(self) -> int:
        return sum(len(result.entries_of(LedgerEntryType.VENDOR_CREDIT)) for result in self.results)

    def skip_type_counts(self) -> Dict[str, int]:
        """Count skipped outcomes and skipped documents by skip type."""
        counts = Counter()
        for result in self.results:
            if not result.outcomes and result.skip_type is not None:
                counts[result.skip_type.value] += 1
            for outcome in result.skipped:
                counts[outcome.skip_type.value] += 1
        return dict(counts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'stopped_early': self.stopped_early,
            'summary': {
                'documents_found': self.documents_found,
                'documents_processed': self.documents_processed,
                'documents_skipped': self.documents_skipped,
                'documents_failed': self.documents_failed,
                'journal_entries_created': self.journal_entries_created,
                'vendor_credits_created': self.vendor_credits_created,
                'skip_types': self.skip_type_counts()
            },
            'documents': [result.to_dict() for result in self.results]
        }


class OutcomeAggregator:
    """Classifies a document from the outcomes of its groups."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.OutcomeAggregator")

    def aggregate(self, document: CreditDocument, outcomes: List[Outcome]) -> DocumentResult:
        """
        Fold group outcomes into one document result.

        A document is processed when anything was created, skipped when
        every outcome is a skip, and failed otherwise.

        Args:
            document: The source document
            outcomes: Outcomes of all its groups

        Returns:
            DocumentResult for the document
        """
        result = DocumentResult(source=document.label, invoice_number=document.invoice_number,
                                status=DocumentStatus.FAILED, outcomes=list(outcomes))

        if result.created:
            result.status = DocumentStatus.PROCESSED
        elif outcomes and len(result.skipped) == len(outcomes):
            result.status = DocumentStatus.SKIPPED
            first = result.skipped[0]
            result.skip_type = first.skip_type
            result.skip_reason = first.reason
        elif not outcomes:
            result.error = "No outcomes produced"
        else:
            result.error = result.failed[0].error

        self.logger.info(f"{document.label}: {result.status.value} - {len(result.created)} created, "
                         f"{len(result.skipped)} skipped, {len(result.failed)} failed")
        return result

    def skipped_document(self, document: CreditDocument, skip_type: SkipType, reason: str) -> DocumentResult:
        self.logger.info(f"{document.label}: skipped ({skip_type.value}) - {reason}")
        return DocumentResult(source=document.label, invoice_number=document.invoice_number,
                              status=DocumentStatus.SKIPPED, skip_type=skip_type, skip_reason=reason)

    def failed_document(self, source: str, error: str, invoice_number: str = '',
                        outcomes: Optional[List[Outcome]] = None) -> DocumentResult:
        self.logger.error(f"{source}: failed - {error}")
        return DocumentResult(source=source, invoice_number=invoice_number,
                              status=DocumentStatus.FAILED, outcomes=list(outcomes or []), error=error)
