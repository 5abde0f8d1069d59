"""
Authorization matching for bill-number groups.

Finds the vendor return authorizations whose line memos reference a bill
number, pairs the group's lines against each candidate in turn and hands
the first candidate with matches to the vendor credit synthesizer. The
search continues past candidates whose synthesis is skipped or fails and
reports the last such outcome if none succeeds.
"""

from typing import Callable, Dict, List, Optional

from credit_reconciliation.models import (
    AuthorizationCandidate, BillNumberGroup, MatchedPair, Outcome, SkipType
)
from credit_reconciliation.connectors.base_connector import QueryError, QueryService
from .line_matcher import LineMatcher

import logging
logger = logging.getLogger(__name__)

SynthesizeCallback = Callable[[BillNumberGroup, AuthorizationCandidate, List[MatchedPair]], Outcome]

# The transaction number does not change between candidates, so a duplicate ends the search.
TERMINAL_SKIP_TYPES = frozenset({SkipType.DUPLICATE_VENDOR_CREDIT})


class AuthorizationMatcher:
    """
    Searches authorization candidates for a bill-number group.

    Candidates are tried in the order their lines were returned; only
    "used lines" within one candidate are tracked between attempts.
    """

    def __init__(self, query_service: QueryService, line_matcher: Optional[LineMatcher] = None):
        self.query_service = query_service
        self.line_matcher = line_matcher or LineMatcher()
        self.logger = logging.getLogger(f"{__name__}.AuthorizationMatcher")

    def find_candidates(self, bill_number: str) -> List[AuthorizationCandidate]:
        """
        Find authorization candidates referencing a bill number.

        Args:
            bill_number: Originating bill reference

        Returns:
            Candidates in first-seen order, each holding only the lines
            whose memo contains the bill number

        Raises:
            QueryError: If the line search fails
        """
        lines = self.query_service.find_authorization_lines(bill_number)
        filtered = [line for line in lines if line.memo and bill_number in line.memo]

        candidates: Dict[str, AuthorizationCandidate] = {}
        for line in filtered:
            candidate = candidates.get(line.authorization_id)
            if candidate is None:
                candidate = AuthorizationCandidate(
                    internal_id=line.authorization_id,
                    tranid=line.authorization_tranid,
                    entity=line.entity,
                    status=line.status
                )
                candidates[line.authorization_id] = candidate
            candidate.lines.append(line)

        self.logger.debug(f"Bill {bill_number}: {len(lines)} authorization line(s) returned, "
                          f"{len(filtered)} referencing the bill across {len(candidates)} authorization(s)")
        return list(candidates.values())

    def resolve(self, bill_group: BillNumberGroup, synthesize: SynthesizeCallback,
                source: Optional[str] = None) -> Outcome:
        """
        Match a bill-number group to an authorization and synthesize its vendor credit.

        Args:
            bill_group: Consolidated vendor-credit lines for one bill
            synthesize: Builds and saves a vendor credit from one candidate
            source: Source document label for reporting

        Returns:
            Created outcome of the first successful candidate, or the
            last skip or failure
        """
        context = {'bill_number': bill_group.bill_number, 'source': source}
        narda_numbers = list(bill_group.narda_types)

        try:
            candidates = self.find_candidates(bill_group.bill_number)
        except QueryError as e:
            self.logger.error(f"Authorization search failed for bill {bill_group.bill_number}: {e}")
            return Outcome.failed(
                f"Authorization search failed for bill number {bill_group.bill_number}: {e}",
                narda_numbers, bill_group.total_amount, **context
            )

        if not candidates:
            return Outcome.skipped(
                SkipType.NO_VRMA_MATCH,
                f"No VRMA found with matching bill number: {bill_group.bill_number}",
                narda_numbers, bill_group.total_amount, **context
            )

        last_outcome: Optional[Outcome] = None
        for attempt, candidate in enumerate(candidates, start=1):
            pairs = self.line_matcher.pair_lines(bill_group.line_items, candidate)
            if not pairs:
                self.logger.debug(f"No line matches on authorization {candidate.internal_id} "
                                  f"(attempt {attempt}/{len(candidates)}), trying next")
                continue

            outcome = synthesize(bill_group, candidate, pairs)
            if outcome.is_created:
                self.logger.debug(f"Authorization {candidate.internal_id} produced vendor credit "
                                  f"on attempt {attempt}/{len(candidates)}")
                return outcome
            if outcome.ends_candidate_search or outcome.skip_type in TERMINAL_SKIP_TYPES:
                return outcome

            detail = outcome.error if outcome.is_failed else f"skipped ({outcome.skip_type.value}): {outcome.reason}"
            self.logger.debug(f"Authorization {candidate.internal_id} {detail}; trying next")
            last_outcome = outcome

        if last_outcome is not None:
            return last_outcome

        return Outcome.skipped(
            SkipType.ALL_VRMA_ATTEMPTS_FAILED,
            f"{bill_group.combined_narda} NARDA - all {len(candidates)} VRMA(s) with bill number "
            f"{bill_group.bill_number} failed line matching",
            narda_numbers, bill_group.total_amount, **context
        )
