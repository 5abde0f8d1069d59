"""
Duplicate guard for ledger transactions.

Every transaction number is checked against the ledger before anything is
built. A failed check blocks creation just like a found duplicate does.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from credit_reconciliation.models import ExistingEntry, LedgerEntryType
from credit_reconciliation.connectors.base_connector import QueryError, QueryService

import logging
logger = logging.getLogger(__name__)


@dataclass
class DuplicateCheck:
    """Result of a pre-flight uniqueness check."""
    entry_type: LedgerEntryType
    tranid: str
    existing: List[ExistingEntry] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_clear(self) -> bool:
        return not self.existing and self.error is None

    @property
    def is_duplicate(self) -> bool:
        return bool(self.existing)

    @property
    def first_existing(self) -> Optional[ExistingEntry]:
        return self.existing[0] if self.existing else None

    def describe(self) -> str:
        if self.error is not None:
            return f"Could not verify uniqueness of {self.tranid} due to search error: {self.error}"
        if self.existing:
            first = self.first_existing
            return (f"Duplicate {self.entry_type.label.lower()} exists with tranid: {self.tranid} "
                    f"(internal id {first.internal_id})")
        return f"No existing {self.entry_type.label.lower()} with tranid: {self.tranid}"


class DuplicateGuard:
    """Checks the ledger for an existing transaction before creation."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service
        self.logger = logging.getLogger(f"{__name__}.DuplicateGuard")

    def check(self, entry_type: LedgerEntryType, tranid: str) -> DuplicateCheck:
        """
        Check whether a transaction number is already used.

        Args:
            entry_type: Kind of transaction about to be created
            tranid: Transaction number it will carry

        Returns:
            DuplicateCheck that is clear, a duplicate, or an error
        """
        try:
            existing = self.query_service.find_existing_entries(entry_type, tranid)
        except QueryError as e:
            self.logger.error(f"Duplicate check failed for {entry_type.label} {tranid}: {e}")
            return DuplicateCheck(entry_type=entry_type, tranid=tranid, error=str(e))

        result = DuplicateCheck(entry_type=entry_type, tranid=tranid, existing=list(existing))
        if result.is_duplicate:
            self.logger.info(f"{result.describe()}; {len(existing)} existing match(es)")
        else:
            self.logger.debug(result.describe())
        return result
