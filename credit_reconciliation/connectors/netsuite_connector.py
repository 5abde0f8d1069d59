"""
NetSuite REST connector for credit reconciliation.

Implements the QueryService and LedgerStore interfaces over the NetSuite
REST web services: SuiteQL for searches, the record API for journal
entries, authorization loads, vendor credit transforms and deletes, and a
RESTlet for file attachments. Requests are authenticated, rate limited
and retried on throttling and server errors.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode

import requests

from credit_reconciliation.models import (
    AuthorizationLine, AuthorizationRecord, ConnectionTestResult, ExistingEntry,
    JournalEntry, LedgerEntryType, NetSuiteConnectionConfig, OpenInvoice,
    VendorCreditDraft, VendorCreditItemLine, parse_amount, parse_date
)
from .base_connector import BaseConnector, ConnectorError, LedgerOperationError, QueryError
from .authentication import AuthenticatorFactory, BaseAuthenticator

import logging
logger = logging.getLogger(__name__)

RECORD_TYPES = {
    LedgerEntryType.JOURNAL_ENTRY: 'journalEntry',
    LedgerEntryType.VENDOR_CREDIT: 'vendorCredit',
}

TRANSACTION_TYPES = {
    LedgerEntryType.JOURNAL_ENTRY: 'Journal',
    LedgerEntryType.VENDOR_CREDIT: 'VendCred',
}

AUTHORIZATION_RECORD = 'vendorReturnAuthorization'

OPEN_INVOICE_QUERY = (
    "SELECT t.id, t.tranid, t.entity, TO_CHAR(t.trandate, 'YYYY-MM-DD') AS trandate "
    "FROM transaction t "
    "WHERE t.type = 'CustInvc' AND t.status = 'A' AND {condition} "
    "ORDER BY t.trandate DESC"
)

EXISTING_ENTRY_QUERY = (
    "SELECT t.id, t.tranid, TO_CHAR(t.trandate, 'YYYY-MM-DD') AS trandate, t.memo, t.entity "
    "FROM transaction t "
    "WHERE t.type = {transaction_type} AND t.tranid = {tranid} "
    "ORDER BY t.id"
)

AUTHORIZATION_LINE_QUERY = (
    "SELECT t.id AS authorization_id, t.tranid, t.entity, BUILTIN.DF(t.status) AS status, "
    "tl.id AS line, tl.memo, tl.item, BUILTIN.DF(tl.item) AS item_name, tl.foreignamount AS amount "
    "FROM transaction t "
    "INNER JOIN transactionline tl ON tl.transaction = t.id "
    "WHERE t.type = 'VendAuth' AND tl.mainline = 'F' AND tl.memo LIKE {pattern} "
    "ORDER BY t.id, tl.id"
)


def sql_literal(value: str) -> str:
    """Quote a value as a SuiteQL string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def _ref_id(value: Any) -> Optional[str]:
    """Read the id of a record reference ({"id": ..., "refName": ...}) or a plain value."""
    if isinstance(value, dict):
        value = value.get('id')
    return str(value) if value not in (None, '') else None


def _money(value) -> float:
    return float(value)


@dataclass
class APIResponse:
    """Response from connector HTTP operations."""
    success: bool
    status_code: int
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time: float = 0.0
    headers: Optional[Dict[str, str]] = None

    @property
    def created_id(self) -> Optional[str]:
        """Internal id of a created record, read from the Location header."""
        location = (self.headers or {}).get('Location') or (self.headers or {}).get('location')
        if not location:
            return None
        return location.rstrip('/').rsplit('/', 1)[-1]


class RateLimiter:
    """Token bucket refilled at the connection's requests-per-minute rate."""

    def __init__(self, rate_limit: int):
        self.capacity = rate_limit
        self.per_second = rate_limit / 60.0
        self.tokens = float(rate_limit)
        self.last_update = time.monotonic()

    def reserve(self) -> float:
        """Take a token and return the seconds to wait before spending it."""
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_update) * self.per_second)
        self.last_update = now

        # A negative balance is owed by the caller
        self.tokens -= 1
        if self.tokens >= 0:
            return 0.0
        return -self.tokens / self.per_second


class NetSuiteConnector(BaseConnector):
    """
    Query service and ledger store backed by the NetSuite REST API.

    Searches run as SuiteQL queries and are paged until exhausted; record
    writes return the new record's internal id from the Location header.
    """

    RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})
    PAGE_SIZE = 1000
    MAX_BACKOFF = 30.0

    def __init__(self, config: NetSuiteConnectionConfig, session: Optional[requests.Session] = None):
        """
        Initialize NetSuite connector.

        Args:
            config: NetSuite connection configuration
            session: Optional requests session to reuse
        """
        super().__init__(config.connection_id)
        self.config = config
        self.rate_limiter = RateLimiter(config.rate_limit)

        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

        self.authenticator = self._create_authenticator()

        self.logger.info(f"NetSuite connector initialized for {config.base_url}")

    def _create_authenticator(self) -> BaseAuthenticator:
        """Create authenticator based on configuration."""
        try:
            authenticator = AuthenticatorFactory.create_authenticator(self.config)
            self.logger.info(f"Created {self.config.authentication_type.value} authenticator")
            return authenticator
        except Exception as e:
            self.logger.error(f"Failed to create authenticator: {e}")
            raise ConnectorError(f"Authentication setup failed: {e}")

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def test_connection(self) -> ConnectionTestResult:
        """
        Test the connection with a one-row SuiteQL query.

        Returns:
            ConnectionTestResult with test status and details
        """
        start_time = time.time()
        response = self._make_request(
            'POST', self._suiteql_url(limit=1, offset=0),
            json={'q': "SELECT id FROM currency"},
            headers={'Prefer': 'transient'}
        )
        duration = time.time() - start_time

        result = ConnectionTestResult(
            success=response.success,
            connection_id=self.connection_id,
            response_time=duration,
            error_message=response.error_message,
            additional_info={
                'status_code': response.status_code,
                'base_url': self.config.base_url,
                'authentication_type': self.config.authentication_type.value
            }
        )
        self._last_connection_test = result
        self._connection_healthy = response.success

        self._log_operation("Connection test", duration, response.success,
                            f"Status: {response.status_code}")
        return result

    def get_connection_info(self) -> Dict[str, Any]:
        """Get information about the NetSuite connection."""
        return {
            'connection_id': self.connection_id,
            'connection_type': 'NETSUITE_REST',
            'account_id': self.config.account_id,
            'base_url': self.config.base_url,
            'authentication_type': self.config.authentication_type.value,
            'rate_limit': self.config.rate_limit,
            'timeout': self.config.timeout,
            'retry_attempts': self.config.retry_attempts,
            'attachments_enabled': bool(self.config.attach_restlet_url),
            'healthy': self.is_healthy(),
            'last_test': self._last_connection_test.to_dict() if self._last_connection_test else None
        }

    # ------------------------------------------------------------------
    # QueryService
    # ------------------------------------------------------------------

    def find_open_invoices_by_job(self, job_reference: str) -> List[OpenInvoice]:
        query = OPEN_INVOICE_QUERY.format(condition=f"t.custbody_f4n_job_id = {sql_literal(job_reference)}")
        return [self._open_invoice(row) for row in self.run_suiteql(query)]

    def find_open_invoices_by_tranid(self, tranid: str) -> List[OpenInvoice]:
        query = OPEN_INVOICE_QUERY.format(condition=f"t.tranid = {sql_literal(tranid)}")
        return [self._open_invoice(row) for row in self.run_suiteql(query)]

    def find_existing_entries(self, entry_type: LedgerEntryType, tranid: str) -> List[ExistingEntry]:
        query = EXISTING_ENTRY_QUERY.format(
            transaction_type=sql_literal(TRANSACTION_TYPES[entry_type]),
            tranid=sql_literal(tranid)
        )
        return [
            ExistingEntry(
                internal_id=str(row.get('id')),
                tranid=row.get('tranid') or tranid,
                trandate=row.get('trandate'),
                memo=row.get('memo'),
                entity=_ref_id(row.get('entity'))
            )
            for row in self.run_suiteql(query)
        ]

    def find_authorization_lines(self, memo_fragment: str) -> List[AuthorizationLine]:
        query = AUTHORIZATION_LINE_QUERY.format(pattern=sql_literal(f"%{memo_fragment}%"))
        return [
            AuthorizationLine(
                authorization_id=str(row.get('authorization_id')),
                line_number=str(row.get('line')),
                amount=parse_amount(row.get('amount')),
                memo=row.get('memo') or '',
                item_id=_ref_id(row.get('item')),
                item_name=row.get('item_name'),
                authorization_tranid=row.get('tranid'),
                entity=_ref_id(row.get('entity')),
                status=row.get('status')
            )
            for row in self.run_suiteql(query)
        ]

    def run_suiteql(self, query: str) -> List[Dict[str, Any]]:
        """
        Run a SuiteQL query and collect every page of results.

        Args:
            query: SuiteQL statement

        Returns:
            Result rows with lower-case column keys

        Raises:
            QueryError: If any page request fails
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        start_time = time.time()

        while True:
            response = self._make_request(
                'POST', self._suiteql_url(limit=self.PAGE_SIZE, offset=offset),
                json={'q': query},
                headers={'Prefer': 'transient'}
            )
            if not response.success:
                self._log_operation("SuiteQL query", time.time() - start_time, False, response.error_message)
                raise QueryError(f"SuiteQL query failed: {response.error_message}")

            data = response.data if isinstance(response.data, dict) else {}
            items = data.get('items') or []
            for item in items:
                rows.append({key.lower(): value for key, value in item.items() if key != 'links'})

            if not data.get('hasMore') or not items:
                break
            offset += len(items)

        self.logger.debug(f"SuiteQL returned {len(rows)} row(s) in {time.time() - start_time:.3f}s")
        return rows

    # ------------------------------------------------------------------
    # LedgerStore
    # ------------------------------------------------------------------

    def create_journal_entry(self, entry: JournalEntry) -> str:
        lines = []
        for line in entry.lines:
            payload = {'account': {'id': line.account}, 'memo': line.memo}
            if line.entity:
                payload['entity'] = {'id': line.entity}
            if line.debit:
                payload['debit'] = _money(line.debit)
            if line.credit:
                payload['credit'] = _money(line.credit)
            lines.append(payload)

        body = {
            'tranId': entry.tranid,
            'tranDate': entry.trandate.isoformat(),
            'memo': entry.memo,
            'line': {'items': lines}
        }
        response = self._make_request('POST', self._record_url(RECORD_TYPES[LedgerEntryType.JOURNAL_ENTRY]),
                                      json=body)
        return self._require_created(response, f"Journal entry {entry.tranid}")

    def load_authorization(self, authorization_id: str) -> AuthorizationRecord:
        response = self._make_request('GET', self._record_url(AUTHORIZATION_RECORD, authorization_id))
        data = self._require_data(response, f"Load authorization {authorization_id}")
        status = data.get('status')
        return AuthorizationRecord(
            internal_id=str(data.get('id') or authorization_id),
            tranid=data.get('tranId'),
            status_text=(status.get('refName') if isinstance(status, dict) else status) or '',
            entity=_ref_id(data.get('entity'))
        )

    def transform_authorization(self, authorization_id: str) -> VendorCreditDraft:
        """
        Build an unsaved vendor credit holding every item line of an authorization.

        The ledger performs the actual transformation when the draft is
        saved; rejections surface then with the same error codes.
        """
        url = self._record_url(AUTHORIZATION_RECORD, authorization_id) + '?' + urlencode(
            {'expandSubResources': 'true'})
        response = self._make_request('GET', url)
        data = self._require_data(response, f"Transform authorization {authorization_id}")

        item_lines = []
        for item in (data.get('item') or {}).get('items') or []:
            reference = item.get('item') if isinstance(item.get('item'), dict) else {}
            item_lines.append(VendorCreditItemLine(
                line_number=str(item.get('line')),
                amount=parse_amount(item.get('amount')),
                item_id=_ref_id(item.get('item')),
                item_name=reference.get('refName'),
                memo=item.get('description')
            ))

        return VendorCreditDraft(
            authorization_id=str(authorization_id),
            authorization_tranid=data.get('tranId'),
            item_lines=item_lines,
            entity=_ref_id(data.get('entity'))
        )

    def save_vendor_credit(self, draft: VendorCreditDraft) -> str:
        body: Dict[str, Any] = {
            'tranId': draft.tranid,
            'memo': draft.memo,
            'item': {'items': [
                {'orderLine': int(line.line_number) if line.line_number.isdigit() else line.line_number,
                 'amount': _money(line.amount)}
                for line in draft.item_lines
            ]},
            'expense': {'items': [
                {
                    'account': {'id': line.account},
                    'amount': _money(line.amount),
                    'memo': line.memo,
                    **({'department': {'id': line.department}} if line.department else {})
                }
                for line in draft.expense_lines
            ]}
        }
        if draft.trandate:
            body['tranDate'] = draft.trandate.isoformat()

        url = (self._record_url(AUTHORIZATION_RECORD, draft.authorization_id)
               + '/!transform/vendorCredit?' + urlencode({'replace': 'item,expense'}))
        response = self._make_request('POST', url, json=body)
        return self._require_created(response, f"Vendor credit {draft.tranid}")

    def attach_file(self, file_id: str, entry_type: LedgerEntryType, internal_id: str) -> None:
        if not self.config.attach_restlet_url:
            raise LedgerOperationError("No attachment RESTlet configured")
        body = {
            'fileId': file_id,
            'recordType': RECORD_TYPES[entry_type].lower(),
            'recordId': internal_id
        }
        response = self._make_request('POST', self.config.attach_restlet_url, json=body)
        if not response.success:
            raise LedgerOperationError(f"Attach file {file_id} failed: {response.error_message}",
                                       code=response.error_code)

    def delete_entry(self, entry_type: LedgerEntryType, internal_id: str) -> None:
        response = self._make_request('DELETE', self._record_url(RECORD_TYPES[entry_type], internal_id))
        if not response.success:
            raise LedgerOperationError(
                f"Delete {entry_type.label} {internal_id} failed: {response.error_message}",
                code=response.error_code)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _suiteql_url(self, limit: int, offset: int) -> str:
        return f"{self.config.base_url}/query/v1/suiteql?" + urlencode({'limit': limit, 'offset': offset})

    def _record_url(self, record_type: str, internal_id: Optional[str] = None) -> str:
        url = f"{self.config.base_url}/record/v1/{record_type}"
        return f"{url}/{internal_id}" if internal_id is not None else url

    def _require_created(self, response: APIResponse, operation: str) -> str:
        if not response.success:
            raise LedgerOperationError(f"{operation} failed: {response.error_message}",
                                       code=response.error_code)
        internal_id = response.created_id
        if not internal_id:
            raise LedgerOperationError(f"{operation} returned no record location")
        return internal_id

    def _require_data(self, response: APIResponse, operation: str) -> Dict[str, Any]:
        if not response.success:
            raise LedgerOperationError(f"{operation} failed: {response.error_message}",
                                       code=response.error_code)
        return response.data if isinstance(response.data, dict) else {}

    def _acquire_rate_limit(self):
        delay = self.rate_limiter.reserve()
        if delay > 0:
            self.logger.warning(f"Rate limited, waiting {delay:.2f} seconds")
            time.sleep(delay)

    def _backoff(self, attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after:
            try:
                return min(float(retry_after), self.MAX_BACKOFF)
            except ValueError:
                pass
        return min(2 ** (attempt - 1), self.MAX_BACKOFF)

    @staticmethod
    def _parse_error(response: requests.Response, data: Any) -> Tuple[str, Optional[str]]:
        """Extract a readable message and ledger error code from an error response."""
        message = f"HTTP {response.status_code}"
        code = None
        if isinstance(data, dict):
            details = data.get('o:errorDetails') or []
            if details:
                code = details[0].get('o:errorCode')
                detail = details[0].get('detail')
                if detail:
                    message = f"{message}: {detail}"
            elif data.get('title'):
                message = f"{message}: {data['title']}"
            code = code or data.get('o:errorCode') or data.get('code')
        else:
            message = f"{message}: {response.text[:200]}"
        return message, code

    def _make_request(self, method: str, url: str, **kwargs) -> APIResponse:
        """
        Make an HTTP request with authentication, rate limiting and retries.

        Args:
            method: HTTP method
            url: Full request URL (query string included, since it is signed)
            **kwargs: json body and extra headers

        Returns:
            APIResponse with request results
        """
        attempts = max(1, self.config.retry_attempts)
        start_time = time.time()
        response = None

        for attempt in range(1, attempts + 1):
            headers = dict(kwargs.get('headers') or {})
            if 'json' in kwargs:
                headers['Content-Type'] = 'application/json'

            try:
                self._acquire_rate_limit()
                if not self.authenticator.refresh_if_needed():
                    raise ConnectorError("Authentication refresh failed")
                headers = self.authenticator.apply_authentication(headers, method=method.upper(), url=url)

                response = self.session.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    json=kwargs.get('json'),
                    timeout=self.config.timeout
                )
            except requests.RequestException as e:
                if attempt < attempts:
                    delay = self._backoff(attempt)
                    self.logger.warning(f"{method.upper()} {url} attempt {attempt}/{attempts} failed ({e}), "
                                        f"retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                error = self._handle_error(f"{method.upper()} {url}", e)
                return APIResponse(success=False, status_code=0, error_message=str(error),
                                   response_time=time.time() - start_time)
            except ConnectorError as e:
                duration = time.time() - start_time
                self._log_operation(f"{method.upper()} {url}", duration, False, str(e))
                return APIResponse(success=False, status_code=0, error_message=str(e), response_time=duration)

            if response.status_code in self.RETRY_STATUSES and attempt < attempts:
                delay = self._backoff(attempt, (response.headers or {}).get('Retry-After'))
                self.logger.warning(f"{method.upper()} {url} returned {response.status_code}, "
                                    f"retry {attempt}/{attempts - 1} in {delay:.1f}s")
                time.sleep(delay)
                continue
            break

        duration = time.time() - start_time
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = {'raw_response': response.text}

        success = response.status_code < 400
        error_message, error_code = (None, None) if success else self._parse_error(response, data)

        self._log_operation(f"{method.upper()} {url}", duration, success, f"Status: {response.status_code}")
        return APIResponse(
            success=success,
            status_code=response.status_code,
            data=data,
            error_message=error_message,
            error_code=error_code,
            response_time=duration,
            headers=dict(response.headers or {})
        )

    @staticmethod
    def _open_invoice(row: Dict[str, Any]) -> OpenInvoice:
        return OpenInvoice(
            internal_id=str(row.get('id')),
            tranid=row.get('tranid'),
            entity_id=_ref_id(row.get('entity')) or '',
            trandate=parse_date(row.get('trandate'))
        )
