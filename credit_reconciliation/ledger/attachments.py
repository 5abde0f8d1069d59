"""Best-effort attachment of source files to created transactions."""

from typing import Iterable, List

from credit_reconciliation.models import AttachmentResult, LedgerEntryType
from credit_reconciliation.connectors.base_connector import ConnectorError, LedgerStore

import logging
logger = logging.getLogger(__name__)


class AttachmentService:
    """
    Attaches files to a ledger transaction.

    A failed attachment is logged and recorded on its result; it never
    raises, so the transaction it belongs to still counts as created.
    """

    def __init__(self, ledger_store: LedgerStore):
        self.ledger_store = ledger_store
        self.logger = logging.getLogger(f"{__name__}.AttachmentService")

    def attach_all(self, file_ids: Iterable[str], entry_type: LedgerEntryType,
                   internal_id: str) -> List[AttachmentResult]:
        results = []
        for file_id in file_ids:
            try:
                self.ledger_store.attach_file(file_id, entry_type, internal_id)
                results.append(AttachmentResult(file_id=file_id, success=True))
                self.logger.debug(f"Attached file {file_id} to {entry_type.label} {internal_id}")
            except ConnectorError as e:
                self.logger.error(f"Failed to attach file {file_id} to {entry_type.label} {internal_id} "
                                  f"(transaction kept): {e}")
                results.append(AttachmentResult(file_id=file_id, success=False, error=str(e)))
        return results
