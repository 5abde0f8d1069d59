"""
Credit Reconciliation

Reconciles vendor credit memos against NetSuite. Each credit memo line is
grouped by its NARDA code and becomes a customer-invoice journal entry, a
vendor credit transformed from a vendor return authorization, or a
recorded skip for manual review.
"""

__version__ = "1.0.0"
__author__ = "Credit Reconciliation Team"

from .models import (
    AuthenticationType,
    CreditDocument,
    DocumentStatus,
    LedgerEntry,
    LedgerEntryType,
    LineItem,
    NardaGroup,
    NetSuiteConnectionConfig,
    Outcome,
    OutcomeStatus,
    ReconciliationSettings,
    SkipType,
    TransactionTypeClass,
    ReconciliationError,
    ConfigurationError,
    ValidationError,
    SynthesisError
)
from .outcomes import BatchReport, DocumentResult, OutcomeAggregator
from .processor import CreditMemoProcessor

__all__ = [
    "AuthenticationType",
    "CreditDocument",
    "DocumentStatus",
    "LedgerEntry",
    "LedgerEntryType",
    "LineItem",
    "NardaGroup",
    "NetSuiteConnectionConfig",
    "Outcome",
    "OutcomeStatus",
    "ReconciliationSettings",
    "SkipType",
    "TransactionTypeClass",
    "ReconciliationError",
    "ConfigurationError",
    "ValidationError",
    "SynthesisError",
    "BatchReport",
    "DocumentResult",
    "OutcomeAggregator",
    "CreditMemoProcessor"
]
