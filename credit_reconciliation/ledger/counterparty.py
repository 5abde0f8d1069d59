"""
Counterparty resolution for journal-entry credit lines.

The customer on a journal-entry credit line is taken from the most recent
open invoice that references the NARDA code, first through the invoice's
job reference and then through its transaction number.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from credit_reconciliation.models import OpenInvoice
from credit_reconciliation.connectors.base_connector import QueryError, QueryService

import logging
logger = logging.getLogger(__name__)

NO_MATCHING_OPEN_INVOICE = 'NO_MATCHING_OPEN_INVOICE'
SEARCH_ERROR = 'SEARCH_ERROR'


@dataclass
class CounterpartyResolution:
    """Result of resolving the counterparty for one NARDA code."""
    success: bool
    narda_number: str
    entity_id: Optional[str] = None
    invoice_id: Optional[str] = None
    invoice_tranid: Optional[str] = None
    tran_date: Optional[date] = None
    found_by: Optional[str] = None  # 'job_reference' or 'tranid'
    match_count: int = 0
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_search_error(self) -> bool:
        return self.reason == SEARCH_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'narda_number': self.narda_number,
            'entity_id': self.entity_id,
            'invoice_id': self.invoice_id,
            'invoice_tranid': self.invoice_tranid,
            'tran_date': self.tran_date.isoformat() if self.tran_date else None,
            'found_by': self.found_by,
            'match_count': self.match_count,
            'reason': self.reason,
            'error': self.error
        }


class CounterpartyResolver:
    """Finds the customer entity to credit for a journal-entry NARDA code."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service
        self.logger = logging.getLogger(f"{__name__}.CounterpartyResolver")

    def resolve(self, narda_number: str) -> CounterpartyResolution:
        """
        Resolve the counterparty for a NARDA code.

        Args:
            narda_number: Journal-entry code (job number or invoice reference)

        Returns:
            Successful resolution with the entity of the most recent open
            invoice, or a failed one with reason NO_MATCHING_OPEN_INVOICE
            or SEARCH_ERROR
        """
        try:
            matches = self.query_service.find_open_invoices_by_job(narda_number)
            found_by = 'job_reference'
            if not matches:
                self.logger.debug(f"No open invoice with job reference {narda_number}, trying transaction number")
                matches = self.query_service.find_open_invoices_by_tranid(narda_number)
                found_by = 'tranid'
        except QueryError as e:
            self.logger.error(f"Open invoice search failed for {narda_number}: {e}")
            return CounterpartyResolution(success=False, narda_number=narda_number,
                                          reason=SEARCH_ERROR, error=str(e))

        if not matches:
            return CounterpartyResolution(
                success=False,
                narda_number=narda_number,
                reason=NO_MATCHING_OPEN_INVOICE,
                error=(f"No open invoices found with NARDA number: {narda_number} - "
                       f"cannot determine customer entity for journal entry credit line")
            )

        invoice = self.most_recent(matches)
        self.logger.debug(f"Counterparty for {narda_number}: entity {invoice.entity_id} from invoice "
                          f"{invoice.tranid} ({len(matches)} match(es), found by {found_by})")
        return CounterpartyResolution(
            success=True,
            narda_number=narda_number,
            entity_id=invoice.entity_id,
            invoice_id=invoice.internal_id,
            invoice_tranid=invoice.tranid,
            tran_date=invoice.trandate,
            found_by=found_by,
            match_count=len(matches)
        )

    @staticmethod
    def most_recent(invoices: List[OpenInvoice]) -> OpenInvoice:
        """Latest transaction date first; equal dates keep search order."""
        return sorted(invoices, key=lambda invoice: invoice.trandate or date.min, reverse=True)[0]
