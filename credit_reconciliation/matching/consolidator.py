"""
Bill-number consolidation for vendor-credit NARDA groups.

Vendor credits are created against the authorization that references the
originating bill, so lines from different vendor-credit codes that share
a bill reference are merged before matching.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from credit_reconciliation.models import BillNumberGroup, NardaGroup, TransactionTypeClass

import logging
logger = logging.getLogger(__name__)


@dataclass
class ConsolidationResult:
    """Bill-number groups plus the lines that carried no bill reference."""
    bill_groups: List[BillNumberGroup] = field(default_factory=list)
    unreferenced: List[NardaGroup] = field(default_factory=list)

    @property
    def bill_numbers(self) -> List[str]:
        return [group.bill_number for group in self.bill_groups]


class BillNumberConsolidator:
    """Merges vendor-credit lines from all codes by originating bill reference."""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.BillNumberConsolidator")

    def consolidate(self, groups: List[NardaGroup]) -> ConsolidationResult:
        """
        Consolidate vendor-credit groups by originating bill number.

        Groups of any other type are ignored. Lines without a bill
        reference are collected per code into ``unreferenced`` so the
        caller can report them; they never join a bill-number group.

        Args:
            groups: Classified NARDA groups of one document

        Returns:
            ConsolidationResult in first-seen bill order
        """
        by_bill: Dict[str, BillNumberGroup] = {}
        result = ConsolidationResult()

        for group in groups:
            if group.type_class is not TransactionTypeClass.VENDOR_CREDIT:
                continue

            unreferenced_items = []
            for item in group.line_items:
                bill_number = item.original_bill_number
                if not bill_number:
                    unreferenced_items.append(item)
                    continue
                bill_group = by_bill.get(bill_number)
                if bill_group is None:
                    bill_group = BillNumberGroup(bill_number=bill_number)
                    by_bill[bill_number] = bill_group
                    result.bill_groups.append(bill_group)
                if group.narda_number not in bill_group.narda_types:
                    bill_group.narda_types.append(group.narda_number)
                bill_group.line_items.append(item)

            if unreferenced_items:
                result.unreferenced.append(NardaGroup(
                    narda_number=group.narda_number,
                    line_items=unreferenced_items,
                    type_class=group.type_class
                ))

        self.logger.debug(f"Consolidated vendor credit groups into {len(result.bill_groups)} bill numbers "
                          f"{result.bill_numbers}; {len(result.unreferenced)} group(s) with unreferenced lines")
        return result
