"""
Transaction synthesis for credit memos.

Builds and commits the two kinds of ledger transactions a credit memo can
produce:

- one balanced journal entry per document, debiting the payable account
  for the vendor and crediting the receivable account once per resolved
  journal-entry NARDA group;
- one vendor credit per bill-number group, transformed from the matched
  vendor return authorization and narrowed to the matched lines, with an
  optional delivery expense line.

Every path is gated by the duplicate guard and attaches the source files
to whatever it created.
"""

from typing import Dict, List, Optional, Tuple

from credit_reconciliation.models import (
    AuthorizationCandidate, BillNumberGroup, CreditDocument, ExpenseLine, JournalEntry,
    JournalEntryLine, LedgerEntry, LedgerEntryType, MatchedPair, NardaGroup, Outcome,
    ReconciliationSettings, SkipType, SynthesisError, ZERO, unique_values
)
from credit_reconciliation.connectors.base_connector import LedgerOperationError, LedgerStore, QueryService
from .attachments import AttachmentService
from .counterparty import CounterpartyResolution, CounterpartyResolver
from .duplicate_guard import DuplicateGuard

import logging
logger = logging.getLogger(__name__)

# Ledger error codes raised when an authorization refuses to become a vendor credit.
FULLY_CREDITED_CODE = 'INVALID_INITIALIZE_REF'
PERMISSION_CODE = 'INSUFFICIENT_PERMISSION'


def validate_header(document: CreditDocument) -> Optional[str]:
    """Return an error message when the document lacks an invoice number or a usable date."""
    if not document.invoice_number:
        return "Missing required invoice number"
    if document.invoice_date is None:
        if document.invoice_date_raw:
            return f"Invalid invoice date: {document.invoice_date_raw}"
        return "Missing required invoice date"
    return None


def sales_order_suffix(sales_orders: List[str]) -> str:
    return f" | SOs: {', '.join(sales_orders)}" if sales_orders else ''


def classify_transform_error(error: LedgerOperationError) -> SkipType:
    """Map a rejected authorization transform to its skip subtype."""
    if error.code == FULLY_CREDITED_CODE or 'invalid reference' in str(error).lower():
        return SkipType.VRMA_FULLY_CREDITED
    if error.code == PERMISSION_CODE:
        return SkipType.VRMA_PERMISSION_ERROR
    return SkipType.VRMA_TRANSFORM_ERROR


class JournalEntrySynthesizer:
    """
    Creates the journal entry for a document's journal-entry NARDA groups.

    All groups whose counterparty resolves share one entry under the
    document's journal-entry transaction number. Groups without a
    determinable counterparty are skipped on their own.
    """

    def __init__(self, query_service: QueryService, ledger_store: LedgerStore,
                 settings: ReconciliationSettings,
                 resolver: Optional[CounterpartyResolver] = None,
                 duplicate_guard: Optional[DuplicateGuard] = None,
                 attachments: Optional[AttachmentService] = None):
        self.ledger_store = ledger_store
        self.settings = settings
        self.resolver = resolver or CounterpartyResolver(query_service)
        self.duplicate_guard = duplicate_guard or DuplicateGuard(query_service)
        self.attachments = attachments or AttachmentService(ledger_store)
        self.logger = logging.getLogger(f"{__name__}.JournalEntrySynthesizer")

    def synthesize(self, document: CreditDocument, groups: List[NardaGroup]) -> List[Outcome]:
        """
        Synthesize the journal entry for a document.

        Args:
            document: Source credit document
            groups: Journal-entry NARDA groups of the document

        Returns:
            One outcome per group, in group order
        """
        if not groups:
            return []

        source = document.label

        def failed(group: NardaGroup, error: str) -> Outcome:
            return Outcome.failed(error, [group.narda_number], group.total_amount, source=source)

        header_error = validate_header(document)
        if header_error:
            self.logger.error(f"{source}: cannot create journal entry - {header_error}")
            return [failed(group, header_error) for group in groups]

        tranid = self.settings.journal_entry_tranid(document.invoice_number)
        check = self.duplicate_guard.check(LedgerEntryType.JOURNAL_ENTRY, tranid)
        if check.error is not None:
            return [failed(group, check.describe()) for group in groups]
        if check.is_duplicate:
            return [
                Outcome.skipped(
                    SkipType.DUPLICATE_JOURNAL_ENTRY,
                    f"{group.narda_number} NARDA - {check.describe()}",
                    [group.narda_number], group.total_amount,
                    source=source, existing_entry=check.first_existing
                )
                for group in groups
            ]

        outcomes: Dict[int, Outcome] = {}
        resolved: List[Tuple[int, NardaGroup, CounterpartyResolution]] = []
        for index, group in enumerate(groups):
            resolution = self.resolver.resolve(group.narda_number)
            if resolution.success:
                resolved.append((index, group, resolution))
            elif resolution.is_search_error:
                outcomes[index] = failed(
                    group, f"Could not find credit line entity for {group.narda_number}: {resolution.error}")
            else:
                self.logger.info(f"{source}: {group.narda_number} skipped ({SkipType.NO_MATCHING_OPEN_INVOICE.value})")
                outcomes[index] = Outcome.skipped(
                    SkipType.NO_MATCHING_OPEN_INVOICE,
                    f"{group.narda_number} NARDA - {resolution.error}",
                    [group.narda_number], group.total_amount, source=source
                )

        if resolved:
            for index, outcome in self._create_entry(document, tranid, resolved):
                outcomes[index] = outcome

        return [outcomes[index] for index in range(len(groups))]

    def build_entry(self, document: CreditDocument, tranid: str,
                    resolved: List[Tuple[NardaGroup, CounterpartyResolution]]) -> JournalEntry:
        """
        Build the journal entry for resolved groups.

        Raises:
            SynthesisError: If debits and credits do not balance
        """
        prefix = f"{self.settings.memo_prefix}{document.invoice_number}"
        groups = [group for group, _ in resolved]

        if len(groups) > 1:
            memo = f"{prefix} Multi-NARDA Groups"
        else:
            group = groups[0]
            if len(group.line_items) > 1:
                memo = f"{prefix} Consolidated {group.narda_number}"
            else:
                memo = f"{prefix} {group.narda_number}"
            memo += sales_order_suffix(group.sales_order_numbers)

        total = sum((group.total_amount for group in groups), ZERO)
        entry = JournalEntry(tranid=tranid, trandate=document.invoice_date, memo=memo)
        entry.lines.append(JournalEntryLine(
            account=self.settings.accounts_payable_account,
            entity=self.settings.vendor_entity,
            memo=memo,
            debit=total
        ))
        for group, resolution in resolved:
            line_memo = memo if len(groups) == 1 else f"{prefix} {group.narda_number}"
            entry.lines.append(JournalEntryLine(
                account=self.settings.accounts_receivable_account,
                entity=resolution.entity_id,
                memo=line_memo,
                credit=group.total_amount
            ))

        if not entry.is_balanced:
            raise SynthesisError(f"Journal entry {tranid} is unbalanced: debits {entry.total_debits} "
                                 f"!= credits {entry.total_credits}")
        return entry

    def _create_entry(self, document: CreditDocument, tranid: str,
                      resolved: List[Tuple[int, NardaGroup, CounterpartyResolution]]) -> List[Tuple[int, Outcome]]:
        source = document.label
        try:
            entry = self.build_entry(document, tranid, [(group, resolution) for _, group, resolution in resolved])
            internal_id = self.ledger_store.create_journal_entry(entry)
        except (SynthesisError, LedgerOperationError) as e:
            self.logger.error(f"{source}: journal entry {tranid} not created: {e}")
            return [
                (index, Outcome.failed(f"Journal entry {tranid} not created: {e}",
                                       [group.narda_number], group.total_amount, source=source))
                for index, group, _ in resolved
            ]

        ledger_entry = LedgerEntry(
            entry_type=LedgerEntryType.JOURNAL_ENTRY,
            internal_id=internal_id,
            tranid=tranid,
            total_amount=entry.total_debits,
            memo=entry.memo,
            attachments=self.attachments.attach_all(document.attachment_ids,
                                                    LedgerEntryType.JOURNAL_ENTRY, internal_id)
        )
        self.logger.info(f"{source}: created journal entry {tranid} ({internal_id}) for "
                         f"{[group.narda_number for _, group, _ in resolved]} totalling {entry.total_debits}")
        return [
            (index, Outcome.created(ledger_entry, [group.narda_number], group.total_amount, source=source))
            for index, group, _ in resolved
        ]


class VendorCreditSynthesizer:
    """
    Creates a vendor credit from one authorization candidate.

    Used as the synthesis step of the authorization matcher: every
    business refusal comes back as a skip so the matcher can move on to
    the next candidate.
    """

    def __init__(self, query_service: QueryService, ledger_store: LedgerStore,
                 settings: ReconciliationSettings,
                 duplicate_guard: Optional[DuplicateGuard] = None,
                 attachments: Optional[AttachmentService] = None):
        self.ledger_store = ledger_store
        self.settings = settings
        self.duplicate_guard = duplicate_guard or DuplicateGuard(query_service)
        self.attachments = attachments or AttachmentService(ledger_store)
        self.logger = logging.getLogger(f"{__name__}.VendorCreditSynthesizer")

    def build_memo(self, document: CreditDocument, bill_group: BillNumberGroup,
                   authorization_tranid: Optional[str], pairs: List[MatchedPair]) -> str:
        memo = (f"{bill_group.combined_narda.upper()} Credit - {document.invoice_number} - "
                f"Bill: {bill_group.bill_number} - VRMA: {authorization_tranid}")
        return memo + sales_order_suffix(unique_values(pair.line_item.sales_order_number for pair in pairs))

    def synthesize(self, document: CreditDocument, bill_group: BillNumberGroup,
                   candidate: AuthorizationCandidate, pairs: List[MatchedPair]) -> Outcome:
        """
        Create a vendor credit for matched lines of one authorization.

        Args:
            document: Source credit document
            bill_group: Bill-number group being credited
            candidate: Authorization whose lines were matched
            pairs: Matched pairs, all on this candidate

        Returns:
            Created, skipped or failed outcome for the bill-number group
        """
        label = bill_group.combined_narda
        context = {
            'bill_number': bill_group.bill_number,
            'source': document.label,
            'authorization_id': candidate.internal_id,
            'authorization_tranid': candidate.tranid
        }

        def skipped(skip_type: SkipType, reason: str, **extra) -> Outcome:
            self.logger.info(f"{document.label}: bill {bill_group.bill_number} skipped ({skip_type.value}): {reason}")
            return Outcome.skipped(skip_type, reason, bill_group.narda_types, bill_group.total_amount,
                                   **context, **extra)

        def failed(error: str, **extra) -> Outcome:
            self.logger.error(f"{document.label}: bill {bill_group.bill_number} failed: {error}")
            return Outcome.failed(error, bill_group.narda_types, bill_group.total_amount, **context, **extra)

        # Header and duplicate checks come out the same for every candidate
        header_error = validate_header(document)
        if header_error:
            return failed(header_error, ends_candidate_search=True)

        tranid = document.invoice_number
        check = self.duplicate_guard.check(LedgerEntryType.VENDOR_CREDIT, tranid)
        if check.error is not None:
            return failed(check.describe(), ends_candidate_search=True)
        if check.is_duplicate:
            return skipped(SkipType.DUPLICATE_VENDOR_CREDIT, f"{label} NARDA - {check.describe()}",
                           existing_entry=check.first_existing, ends_candidate_search=True)

        try:
            authorization = self.ledger_store.load_authorization(candidate.internal_id)
        except LedgerOperationError as e:
            return skipped(SkipType.VRMA_ACCESS_ERROR,
                           f"{label} NARDA - Cannot access VRMA {candidate.internal_id}: {e}")

        authorization_tranid = authorization.tranid or candidate.tranid
        context['authorization_tranid'] = authorization_tranid
        if any(status in authorization.status_text for status in self.settings.invalid_authorization_statuses):
            return skipped(SkipType.VRMA_INVALID_STATUS,
                           f"{label} NARDA - VRMA {authorization_tranid} cannot be credited "
                           f"(Status: {authorization.status_text})")

        try:
            draft = self.ledger_store.transform_authorization(candidate.internal_id)
        except LedgerOperationError as e:
            return self._transform_skip(e, label, authorization_tranid, skipped)

        draft.tranid = tranid
        draft.trandate = document.invoice_date
        draft.memo = self.build_memo(document, bill_group, authorization_tranid, pairs)

        matched_lines = [pair.authorization_line.line_number for pair in pairs]
        available = {line.line_number for line in draft.item_lines}
        missing = [line for line in matched_lines if line not in available]
        if missing:
            return failed(f"Matched VRMA {authorization_tranid} line(s) {missing} missing from the "
                          f"transformed vendor credit")
        removed = draft.retain_lines(matched_lines)
        self.logger.debug(f"Vendor credit from VRMA {authorization_tranid}: kept lines {matched_lines}, "
                          f"removed {removed}")

        if document.delivery_amount > ZERO:
            draft.expense_lines.append(ExpenseLine(
                account=self.settings.freight_account,
                amount=document.delivery_amount,
                memo=f"Delivery - {document.invoice_number}",
                department=self.settings.service_department
            ))

        try:
            internal_id = self.ledger_store.save_vendor_credit(draft)
        except LedgerOperationError as e:
            # The ledger performs the transform on save, so rejections surface here too
            if classify_transform_error(e) is not SkipType.VRMA_TRANSFORM_ERROR:
                return self._transform_skip(e, label, authorization_tranid, skipped)
            return failed(f"Vendor credit {tranid} not saved: {e}")

        unmatched = len(bill_group.line_items) - len(pairs)
        if unmatched:
            self.logger.warning(f"{document.label}: {unmatched} line(s) of bill {bill_group.bill_number} "
                                f"had no match on VRMA {authorization_tranid}")

        ledger_entry = LedgerEntry(
            entry_type=LedgerEntryType.VENDOR_CREDIT,
            internal_id=internal_id,
            tranid=tranid,
            total_amount=draft.total_amount,
            memo=draft.memo,
            authorization_id=candidate.internal_id,
            authorization_tranid=authorization_tranid,
            matched_line_numbers=matched_lines,
            attachments=self.attachments.attach_all(document.attachment_ids,
                                                    LedgerEntryType.VENDOR_CREDIT, internal_id)
        )
        self.logger.info(f"{document.label}: created vendor credit {tranid} ({internal_id}) from VRMA "
                         f"{authorization_tranid} for bill {bill_group.bill_number}, {len(pairs)} line(s)")
        return Outcome.created(ledger_entry, bill_group.narda_types, bill_group.total_amount, **context)

    @staticmethod
    def _transform_skip(error: LedgerOperationError, label: str, authorization_tranid: Optional[str],
                        skipped) -> Outcome:
        skip_type = classify_transform_error(error)
        if skip_type is SkipType.VRMA_FULLY_CREDITED:
            reason = (f"{label} NARDA - VRMA {authorization_tranid} cannot be transformed "
                      f"(fully credited or invalid state)")
        elif skip_type is SkipType.VRMA_PERMISSION_ERROR:
            reason = f"{label} NARDA - Insufficient permissions to transform VRMA {authorization_tranid}"
        else:
            reason = f"{label} NARDA - VRMA {authorization_tranid} transformation failed: {error}"
        return skipped(skip_type, reason)
