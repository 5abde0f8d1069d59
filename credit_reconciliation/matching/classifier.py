"""
Grouping and classification of credit-memo line items.

Line items are grouped by NARDA code and every group is assigned a
transaction type purely from the code's lexical shape, with a fixed
precedence: vendor-credit codes, journal-entry job/invoice references,
short-ship markers, and everything else as unidentified.
"""

import re
from typing import Dict, List, Tuple

from credit_reconciliation.models import (
    CreditDocument, LineItem, NardaGroup, ReconciliationSettings, TransactionTypeClass
)

import logging
logger = logging.getLogger(__name__)

JOB_NUMBER_PATTERN = re.compile(r'^J\d{4,6}$')
INVOICE_REFERENCE_PATTERN = re.compile(r'^INV\d+$')


class NardaClassifier:
    """
    Classifies NARDA codes and groups document lines by code.

    Classification is total: every string, including the empty one,
    resolves to exactly one TransactionTypeClass.
    """

    def __init__(self, settings: ReconciliationSettings):
        self.settings = settings
        self._vendor_credit_codes = frozenset(code.upper() for code in settings.vendor_credit_codes)
        self._short_ship_codes = frozenset(code.upper() for code in settings.short_ship_codes)
        self.logger = logging.getLogger(f"{__name__}.NardaClassifier")

    def classify(self, narda_number: str) -> TransactionTypeClass:
        """
        Classify one NARDA code.

        Args:
            narda_number: Code as extracted

        Returns:
            The transaction type for the code
        """
        code = (narda_number or '').strip().upper()
        if not code:
            return TransactionTypeClass.UNIDENTIFIED
        if code in self._vendor_credit_codes:
            return TransactionTypeClass.VENDOR_CREDIT
        if JOB_NUMBER_PATTERN.match(code) or INVOICE_REFERENCE_PATTERN.match(code):
            return TransactionTypeClass.JOURNAL_ENTRY
        if code in self._short_ship_codes:
            return TransactionTypeClass.SHORT_SHIP
        return TransactionTypeClass.UNIDENTIFIED

    def group_line_items(self, line_items: List[LineItem]) -> List[NardaGroup]:
        """
        Group line items by exact NARDA code, preserving first-seen order.

        Args:
            line_items: Lines of one credit document

        Returns:
            One classified NardaGroup per distinct code
        """
        by_code: Dict[str, List[LineItem]] = {}
        for item in line_items:
            by_code.setdefault(item.narda_number, []).append(item)

        groups = [
            NardaGroup(narda_number=code, line_items=items, type_class=self.classify(code))
            for code, items in by_code.items()
        ]
        self.logger.debug(f"Grouped {len(line_items)} line items into {len(groups)} NARDA groups: "
                          f"{[(g.narda_number, g.type_class.value) for g in groups]}")
        return groups

    def classify_document(self, document: CreditDocument) -> Dict[TransactionTypeClass, List[NardaGroup]]:
        """
        Group a document's lines and bucket the groups by transaction type.

        Returns:
            Mapping with an entry (possibly empty) for every TransactionTypeClass
        """
        buckets: Dict[TransactionTypeClass, List[NardaGroup]] = {
            type_class: [] for type_class in TransactionTypeClass
        }
        for group in self.group_line_items(document.line_items):
            buckets[group.type_class].append(group)
        return buckets


def split_groups(buckets: Dict[TransactionTypeClass, List[NardaGroup]]) -> Tuple[List[NardaGroup], List[NardaGroup]]:
    """Return (journal entry groups, vendor credit groups) from classified buckets."""
    return buckets[TransactionTypeClass.JOURNAL_ENTRY], buckets[TransactionTypeClass.VENDOR_CREDIT]
