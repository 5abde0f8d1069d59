"""
Ledger transaction synthesis for credit reconciliation.

This package provides counterparty resolution, the pre-flight duplicate
guard, best-effort file attachment and the journal entry and vendor
credit synthesizers.
"""

from .counterparty import CounterpartyResolution, CounterpartyResolver
from .duplicate_guard import DuplicateCheck, DuplicateGuard
from .attachments import AttachmentService
from .synthesizer import JournalEntrySynthesizer, VendorCreditSynthesizer, classify_transform_error

__all__ = [
    "CounterpartyResolution",
    "CounterpartyResolver",
    "DuplicateCheck",
    "DuplicateGuard",
    "AttachmentService",
    "JournalEntrySynthesizer",
    "VendorCreditSynthesizer",
    "classify_transform_error"
]
