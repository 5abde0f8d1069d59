"""
Core data models for credit-memo reconciliation.

This module defines the fundamental data structures used throughout the
reconciliation process: the extracted credit document and its line items,
the derived NARDA and bill-number groups, authorization records pulled from
the ledger, the journal entries and vendor credits synthesized from them,
and the outcomes reported for every group.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import re


ZERO = Decimal('0.00')

_AMOUNT_NOISE = re.compile(r'[()$,\-\s]')
_DATE_FORMATS = ('%m/%d/%Y', '%m/%d/%y', '%Y-%m-%d')


def parse_amount(value: Any) -> Decimal:
    """
    Parse an extracted money value into an absolute Decimal.

    Extraction output writes credits as "($1,234.56)" or "-1234.56";
    the sign is dropped since every amount on a credit memo is a credit.
    Unparseable values count as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        cleaned = _AMOUNT_NOISE.sub('', str(value))
        if not cleaned:
            return ZERO
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            return ZERO
    # NaN and Infinity parse but can never balance
    if not result.is_finite():
        return ZERO
    return abs(result)


def parse_date(value: Any) -> Optional[date]:
    """Parse an extracted date string; returns None when it cannot be read."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def unique_values(values) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class TransactionTypeClass(Enum):
    """How a NARDA group is posted, decided from its code alone."""
    JOURNAL_ENTRY = "journal_entry"
    VENDOR_CREDIT = "vendor_credit"
    SHORT_SHIP = "short_ship"
    UNIDENTIFIED = "unidentified"


class LedgerEntryType(Enum):
    """Ledger transaction kinds this engine creates."""
    JOURNAL_ENTRY = "journalEntry"
    VENDOR_CREDIT = "vendorCredit"

    @property
    def label(self) -> str:
        return "Journal Entry" if self is LedgerEntryType.JOURNAL_ENTRY else "Vendor Credit"


class OutcomeStatus(Enum):
    """Terminal state of one processing attempt."""
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipType(Enum):
    """Stable subtypes for business skips, used for downstream grouping."""
    SHORT_SHIP = "SHORT_SHIP"
    UNIDENTIFIED_NARDA = "UNIDENTIFIED_NARDA"
    NO_MATCHING_OPEN_INVOICE = "NO_MATCHING_OPEN_INVOICE"
    NO_ORIGINATING_BILL = "NO_ORIGINATING_BILL"
    NO_VRMA_MATCH = "NO_VRMA_MATCH"
    DUPLICATE_JOURNAL_ENTRY = "DUPLICATE_JOURNAL_ENTRY"
    DUPLICATE_VENDOR_CREDIT = "DUPLICATE_VENDOR_CREDIT"
    VRMA_INVALID_STATUS = "VRMA_INVALID_STATUS"
    VRMA_ACCESS_ERROR = "VRMA_ACCESS_ERROR"
    VRMA_FULLY_CREDITED = "VRMA_FULLY_CREDITED"
    VRMA_PERMISSION_ERROR = "VRMA_PERMISSION_ERROR"
    VRMA_TRANSFORM_ERROR = "VRMA_TRANSFORM_ERROR"
    ALL_VRMA_ATTEMPTS_FAILED = "ALL_VRMA_ATTEMPTS_FAILED"
    NOT_CREDIT_MEMO = "NOT_CREDIT_MEMO"

    @property
    def description(self) -> str:
        return _SKIP_DESCRIPTIONS[self]


_SKIP_DESCRIPTIONS = {
    SkipType.SHORT_SHIP: 'Short Ship - Requires Manual Processing',
    SkipType.UNIDENTIFIED_NARDA: 'Unidentified NARDA - Requires Manual Review',
    SkipType.NO_MATCHING_OPEN_INVOICE: 'No Open Invoice - Customer Could Not Be Determined',
    SkipType.NO_ORIGINATING_BILL: 'No Original Bill Number - Cannot Match VRMA',
    SkipType.NO_VRMA_MATCH: 'No Matching VRMA Found',
    SkipType.DUPLICATE_JOURNAL_ENTRY: 'Duplicate Journal Entry - Already Exists',
    SkipType.DUPLICATE_VENDOR_CREDIT: 'Duplicate Vendor Credit - Already Exists',
    SkipType.VRMA_INVALID_STATUS: 'VRMA Closed, Rejected or Cancelled',
    SkipType.VRMA_ACCESS_ERROR: 'VRMA Could Not Be Loaded',
    SkipType.VRMA_FULLY_CREDITED: 'VRMA Already Fully Credited',
    SkipType.VRMA_PERMISSION_ERROR: 'Insufficient Permission To Transform VRMA',
    SkipType.VRMA_TRANSFORM_ERROR: 'VRMA Transformation Failed',
    SkipType.ALL_VRMA_ATTEMPTS_FAILED: 'All Candidate VRMAs Failed',
    SkipType.NOT_CREDIT_MEMO: 'Document Is Not A Credit Memo',
}


class DocumentStatus(Enum):
    """Aggregate state of one credit document."""
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class AuthenticationType(Enum):
    """Authentication methods for the ledger REST API."""
    TOKEN_BASED = "token_based"
    BEARER_TOKEN = "bearer_token"


@dataclass
class LineItem:
    """
    One extracted credit-memo line.

    The amount is always the absolute value of what was extracted.
    """
    narda_number: str
    amount: Decimal
    part_number: Optional[str] = None
    original_bill_number: Optional[str] = None
    sales_order_number: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'narda_number': self.narda_number,
            'amount': str(self.amount),
            'part_number': self.part_number,
            'original_bill_number': self.original_bill_number,
            'sales_order_number': self.sales_order_number,
            'description': self.description
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        """Create a LineItem from an extraction record."""
        return cls(
            narda_number=str(data.get('nardaNumber') or '').strip(),
            amount=parse_amount(data.get('totalAmount')),
            part_number=(data.get('partNumber') or '').strip() or None,
            original_bill_number=(data.get('originalBillNumber') or '').strip() or None,
            sales_order_number=(data.get('salesOrderNumber') or '').strip() or None,
            description=data.get('description')
        )


@dataclass
class CreditDocument:
    """
    A credit memo as delivered by the upstream extraction step.

    Carries the ids of the source file and of an optional rendered copy so
    both can be attached to whatever gets created from it.
    """
    invoice_number: str
    invoice_date: Optional[date]
    line_items: List[LineItem]
    document_total: Optional[Decimal] = None
    delivery_amount: Decimal = ZERO
    is_credit_memo: bool = True
    file_name: Optional[str] = None
    file_id: Optional[str] = None
    companion_file_id: Optional[str] = None
    invoice_date_raw: Optional[str] = None

    @property
    def label(self) -> str:
        return self.file_name or self.invoice_number or '<unnamed document>'

    @property
    def attachment_ids(self) -> List[str]:
        return [file_id for file_id in (self.file_id, self.companion_file_id) if file_id]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'invoice_number': self.invoice_number,
            'invoice_date': self.invoice_date.isoformat() if self.invoice_date else self.invoice_date_raw,
            'document_total': str(self.document_total) if self.document_total is not None else None,
            'delivery_amount': str(self.delivery_amount),
            'is_credit_memo': self.is_credit_memo,
            'file_name': self.file_name,
            'file_id': self.file_id,
            'companion_file_id': self.companion_file_id,
            'line_items': [item.to_dict() for item in self.line_items]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_name: Optional[str] = None,
                  file_id: Optional[str] = None,
                  companion_file_id: Optional[str] = None) -> 'CreditDocument':
        """Create a CreditDocument from an extraction record."""
        raw_date = data.get('invoiceDate')
        document_total = data.get('documentTotal')
        return cls(
            invoice_number=str(data.get('invoiceNumber') or '').strip(),
            invoice_date=parse_date(raw_date),
            invoice_date_raw=str(raw_date) if raw_date else None,
            line_items=[LineItem.from_dict(item) for item in data.get('lineItems') or []],
            document_total=parse_amount(document_total) if document_total is not None else None,
            delivery_amount=parse_amount(data.get('deliveryAmount')),
            is_credit_memo=bool(data.get('isCreditMemo', True)),
            file_name=file_name or data.get('fileName'),
            file_id=file_id or data.get('fileId'),
            companion_file_id=companion_file_id or data.get('pdfFileId')
        )


@dataclass
class NardaGroup:
    """Line items sharing one classification code."""
    narda_number: str
    line_items: List[LineItem]
    type_class: TransactionTypeClass

    @property
    def total_amount(self) -> Decimal:
        return sum((item.amount for item in self.line_items), ZERO)

    @property
    def original_bill_numbers(self) -> List[str]:
        return unique_values(item.original_bill_number for item in self.line_items)

    @property
    def sales_order_numbers(self) -> List[str]:
        return unique_values(item.sales_order_number for item in self.line_items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'narda_number': self.narda_number,
            'type_class': self.type_class.value,
            'total_amount': str(self.total_amount),
            'original_bill_numbers': self.original_bill_numbers,
            'line_count': len(self.line_items)
        }


@dataclass
class BillNumberGroup:
    """Vendor-credit lines from every code that share one originating bill."""
    bill_number: str
    narda_types: List[str] = field(default_factory=list)
    line_items: List[LineItem] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((item.amount for item in self.line_items), ZERO)

    @property
    def combined_narda(self) -> str:
        return '+'.join(self.narda_types)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bill_number': self.bill_number,
            'narda_types': list(self.narda_types),
            'total_amount': str(self.total_amount),
            'line_count': len(self.line_items)
        }


@dataclass
class AuthorizationLine:
    """One line of a vendor return authorization, as returned by the line search."""
    authorization_id: str
    line_number: str
    amount: Decimal
    memo: str = ''
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    authorization_tranid: Optional[str] = None
    entity: Optional[str] = None
    status: Optional[str] = None


@dataclass
class AuthorizationCandidate:
    """A vendor return authorization with the lines that reference a bill."""
    internal_id: str
    tranid: Optional[str]
    lines: List[AuthorizationLine] = field(default_factory=list)
    entity: Optional[str] = None
    status: Optional[str] = None


@dataclass
class AuthorizationRecord:
    """Header of an authorization as loaded from the ledger."""
    internal_id: str
    tranid: Optional[str]
    status_text: str = ''
    entity: Optional[str] = None


@dataclass
class MatchedPair:
    """A credit line paired with one line of the same authorization."""
    line_item: LineItem
    authorization_line: AuthorizationLine

    @property
    def amount(self) -> Decimal:
        return self.line_item.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'amount': str(self.amount),
            'part_number': self.line_item.part_number,
            'authorization_id': self.authorization_line.authorization_id,
            'authorization_line': self.authorization_line.line_number,
            'item_name': self.authorization_line.item_name
        }


@dataclass
class OpenInvoice:
    """An open customer invoice found while resolving a counterparty."""
    internal_id: str
    tranid: Optional[str]
    entity_id: str
    trandate: Optional[date] = None


@dataclass
class ExistingEntry:
    """A ledger transaction found by the duplicate guard."""
    internal_id: str
    tranid: str
    trandate: Optional[str] = None
    memo: Optional[str] = None
    entity: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'internal_id': self.internal_id,
            'tranid': self.tranid,
            'trandate': self.trandate,
            'memo': self.memo,
            'entity': self.entity
        }


@dataclass
class JournalEntryLine:
    """One debit or credit line of a journal entry."""
    account: str
    memo: str
    entity: Optional[str] = None
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account': self.account,
            'entity': self.entity,
            'memo': self.memo,
            'debit': str(self.debit),
            'credit': str(self.credit)
        }


@dataclass
class JournalEntry:
    """A journal entry ready to be created in the ledger."""
    tranid: str
    trandate: date
    memo: str
    lines: List[JournalEntryLine] = field(default_factory=list)

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tranid': self.tranid,
            'trandate': self.trandate.isoformat(),
            'memo': self.memo,
            'lines': [line.to_dict() for line in self.lines]
        }


@dataclass
class VendorCreditItemLine:
    """An item line inherited from the authorization being transformed."""
    line_number: str
    amount: Decimal
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    memo: Optional[str] = None


@dataclass
class ExpenseLine:
    """An expense line added to a vendor credit."""
    account: str
    amount: Decimal
    memo: str
    department: Optional[str] = None


@dataclass
class VendorCreditDraft:
    """
    A vendor credit transformed from an authorization but not yet saved.

    Starts with every item line of the authorization; the synthesizer
    narrows it to the matched lines before saving.
    """
    authorization_id: str
    authorization_tranid: Optional[str]
    item_lines: List[VendorCreditItemLine] = field(default_factory=list)
    expense_lines: List[ExpenseLine] = field(default_factory=list)
    entity: Optional[str] = None
    tranid: Optional[str] = None
    trandate: Optional[date] = None
    memo: Optional[str] = None

    def retain_lines(self, line_numbers) -> List[str]:
        """Drop every item line not in line_numbers; returns the removed line numbers."""
        keep = set(line_numbers)
        removed = [line.line_number for line in self.item_lines if line.line_number not in keep]
        self.item_lines = [line for line in self.item_lines if line.line_number in keep]
        return removed

    @property
    def total_amount(self) -> Decimal:
        items = sum((line.amount for line in self.item_lines), ZERO)
        return items + sum((line.amount for line in self.expense_lines), ZERO)


@dataclass
class AttachmentResult:
    """Result of attaching one file to a created transaction."""
    file_id: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'file_id': self.file_id, 'success': self.success, 'error': self.error}


@dataclass
class LedgerEntry:
    """A transaction this engine created in the ledger."""
    entry_type: LedgerEntryType
    internal_id: str
    tranid: str
    total_amount: Decimal
    memo: Optional[str] = None
    authorization_id: Optional[str] = None
    authorization_tranid: Optional[str] = None
    matched_line_numbers: List[str] = field(default_factory=list)
    attachments: List[AttachmentResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry_type': self.entry_type.value,
            'internal_id': self.internal_id,
            'tranid': self.tranid,
            'total_amount': str(self.total_amount),
            'memo': self.memo,
            'authorization_id': self.authorization_id,
            'authorization_tranid': self.authorization_tranid,
            'matched_line_numbers': list(self.matched_line_numbers),
            'attachments': [a.to_dict() for a in self.attachments]
        }


@dataclass
class Outcome:
    """
    Terminal result for one NARDA group or bill-number group.

    Created outcomes carry the ledger entry; skipped outcomes carry a skip
    type and reason; failed outcomes carry the error text. All of them
    carry the codes, amount and bill reference needed to remediate by hand.
    """
    status: OutcomeStatus
    narda_numbers: List[str]
    total_amount: Decimal
    bill_number: Optional[str] = None
    source: Optional[str] = None
    entry: Optional[LedgerEntry] = None
    skip_type: Optional[SkipType] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    existing_entry: Optional[ExistingEntry] = None
    authorization_id: Optional[str] = None
    authorization_tranid: Optional[str] = None
    # Set when every other authorization candidate would end the same way
    ends_candidate_search: bool = False

    @classmethod
    def created(cls, entry: LedgerEntry, narda_numbers: List[str], total_amount: Decimal,
                **context) -> 'Outcome':
        return cls(status=OutcomeStatus.CREATED, entry=entry, narda_numbers=list(narda_numbers),
                   total_amount=total_amount, **context)

    @classmethod
    def skipped(cls, skip_type: SkipType, reason: str, narda_numbers: List[str],
                total_amount: Decimal, **context) -> 'Outcome':
        return cls(status=OutcomeStatus.SKIPPED, skip_type=skip_type, reason=reason,
                   narda_numbers=list(narda_numbers), total_amount=total_amount, **context)

    @classmethod
    def failed(cls, error: str, narda_numbers: List[str], total_amount: Decimal,
               **context) -> 'Outcome':
        return cls(status=OutcomeStatus.FAILED, error=error, narda_numbers=list(narda_numbers),
                   total_amount=total_amount, **context)

    @property
    def is_created(self) -> bool:
        return self.status is OutcomeStatus.CREATED

    @property
    def is_skipped(self) -> bool:
        return self.status is OutcomeStatus.SKIPPED

    @property
    def is_failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @property
    def narda_label(self) -> str:
        return '+'.join(self.narda_numbers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'status': self.status.value,
            'narda_numbers': list(self.narda_numbers),
            'total_amount': str(self.total_amount),
            'bill_number': self.bill_number,
            'source': self.source,
            'entry': self.entry.to_dict() if self.entry else None,
            'skip_type': self.skip_type.value if self.skip_type else None,
            'skip_description': self.skip_type.description if self.skip_type else None,
            'reason': self.reason,
            'error': self.error,
            'existing_entry': self.existing_entry.to_dict() if self.existing_entry else None,
            'authorization_id': self.authorization_id,
            'authorization_tranid': self.authorization_tranid
        }


@dataclass
class ConnectionTestResult:
    """Result of testing a ledger connection."""
    success: bool
    connection_id: str
    response_time: float
    error_message: Optional[str] = None
    additional_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'success': self.success,
            'connection_id': self.connection_id,
            'response_time': self.response_time,
            'error_message': self.error_message,
            'additional_info': self.additional_info
        }


@dataclass(frozen=True)
class ReconciliationSettings:
    """
    Account, entity and rule configuration for one reconciliation run.

    Loaded once and passed to every component; never mutated during a run.
    """
    accounts_payable_account: str = "111"
    accounts_receivable_account: str = "119"
    freight_account: str = "367"
    vendor_entity: str = "2106"
    service_department: str = "13"
    vendor_credit_codes: Tuple[str, ...] = ("CONCDA", "CONCDAM", "NF", "CORE", "CONCESSION")
    short_ship_codes: Tuple[str, ...] = ("SHORT", "BOX")
    journal_entry_suffix: str = " CM"
    memo_prefix: str = "MARCONE CM"
    amount_tolerance: Decimal = Decimal('0.01')
    invalid_authorization_statuses: Tuple[str, ...] = ("Closed", "Rejected", "Cancelled")

    def journal_entry_tranid(self, invoice_number: str) -> str:
        return f"{invoice_number}{self.journal_entry_suffix}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'accounts_payable_account': self.accounts_payable_account,
            'accounts_receivable_account': self.accounts_receivable_account,
            'freight_account': self.freight_account,
            'vendor_entity': self.vendor_entity,
            'service_department': self.service_department,
            'vendor_credit_codes': list(self.vendor_credit_codes),
            'short_ship_codes': list(self.short_ship_codes),
            'journal_entry_suffix': self.journal_entry_suffix,
            'memo_prefix': self.memo_prefix,
            'amount_tolerance': str(self.amount_tolerance),
            'invalid_authorization_statuses': list(self.invalid_authorization_statuses)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReconciliationSettings':
        """Create settings from a dictionary; missing keys keep their defaults."""
        values: Dict[str, Any] = {}
        for key in ('accounts_payable_account', 'accounts_receivable_account', 'freight_account',
                    'vendor_entity', 'service_department', 'journal_entry_suffix', 'memo_prefix'):
            if data.get(key) is not None:
                values[key] = str(data[key])
        for key in ('vendor_credit_codes', 'short_ship_codes', 'invalid_authorization_statuses'):
            if data.get(key) is not None:
                values[key] = tuple(str(value) for value in data[key])
        if data.get('amount_tolerance') is not None:
            values['amount_tolerance'] = Decimal(str(data['amount_tolerance']))
        return cls(**values)


@dataclass
class NetSuiteConnectionConfig:
    """Configuration for the NetSuite REST connection."""
    connection_id: str
    account_id: str
    consumer_key: str = ''
    consumer_secret: str = ''  # Will be encrypted in storage
    token_id: str = ''
    token_secret: str = ''  # Will be encrypted in storage
    authentication_type: AuthenticationType = AuthenticationType.TOKEN_BASED
    access_token: str = ''  # Will be encrypted in storage
    timeout: int = 60
    rate_limit: int = 100  # requests per minute
    retry_attempts: int = 3
    attach_restlet_url: Optional[str] = None

    SECRET_FIELDS = ('consumer_secret', 'token_secret', 'access_token')

    @property
    def base_url(self) -> str:
        host = self.account_id.lower().replace('_', '-')
        return f"https://{host}.suitetalk.api.netsuite.com/services/rest"

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """Convert to dictionary, optionally excluding secrets."""
        data = {
            'connection_id': self.connection_id,
            'account_id': self.account_id,
            'consumer_key': self.consumer_key,
            'token_id': self.token_id,
            'authentication_type': self.authentication_type.value,
            'timeout': self.timeout,
            'rate_limit': self.rate_limit,
            'retry_attempts': self.retry_attempts,
            'attach_restlet_url': self.attach_restlet_url
        }
        if include_secrets:
            for name in self.SECRET_FIELDS:
                data[name] = getattr(self, name)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NetSuiteConnectionConfig':
        return cls(
            connection_id=data['connection_id'],
            account_id=data['account_id'],
            consumer_key=data.get('consumer_key', ''),
            consumer_secret=data.get('consumer_secret', ''),
            token_id=data.get('token_id', ''),
            token_secret=data.get('token_secret', ''),
            authentication_type=AuthenticationType(
                data.get('authentication_type', AuthenticationType.TOKEN_BASED.value)),
            access_token=data.get('access_token', ''),
            timeout=data.get('timeout', 60),
            rate_limit=data.get('rate_limit', 100),
            retry_attempts=data.get('retry_attempts', 3),
            attach_restlet_url=data.get('attach_restlet_url')
        )


# Custom exceptions for credit reconciliation
class ReconciliationError(Exception):
    """Base exception for credit reconciliation operations."""
    pass


class ConfigurationError(ReconciliationError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(ReconciliationError):
    """Raised when data validation fails."""
    pass


class SynthesisError(ReconciliationError):
    """Raised when a ledger transaction cannot be built consistently."""
    pass
