"""
Pairing of credit-memo lines with authorization lines.

Each credit line is paired with the first unused authorization line of the
same candidate whose amount matches within tolerance and, when both sides
carry one, whose item name equals the line's part number.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from credit_reconciliation.models import (
    AuthorizationCandidate, AuthorizationLine, LineItem, MatchedPair
)
from .tolerance_matcher import ToleranceMatcher

import logging
logger = logging.getLogger(__name__)


@dataclass
class PartMatchResult:
    """Result of a part number comparison."""
    matches: bool
    expected_value: Optional[str]
    actual_value: Optional[str]
    match_type: str  # 'exact' or 'not_compared'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'matches': self.matches,
            'expected_value': self.expected_value,
            'actual_value': self.actual_value,
            'match_type': self.match_type
        }


class LineMatcher:
    """
    Pairs credit lines to authorization lines one-to-one.

    Pairing is greedy in input order and never reuses an authorization
    line, so the same inputs always produce the same pairs.
    """

    def __init__(self, tolerance_matcher: Optional[ToleranceMatcher] = None):
        self.tolerance_matcher = tolerance_matcher or ToleranceMatcher()
        self.logger = logging.getLogger(f"{__name__}.LineMatcher")

    def match_part_number(self, part_number: Optional[str],
                          item_name: Optional[str]) -> PartMatchResult:
        """
        Compare a line's part number to an authorization line's item name.

        Only compared when both are present; otherwise the part is not
        an obstacle to the match.
        """
        expected = (part_number or '').strip()
        actual = (item_name or '').strip()
        if not expected or not actual:
            return PartMatchResult(matches=True, expected_value=part_number,
                                   actual_value=item_name, match_type='not_compared')
        return PartMatchResult(matches=expected == actual, expected_value=part_number,
                               actual_value=item_name, match_type='exact')

    def line_matches(self, line_item: LineItem, authorization_line: AuthorizationLine) -> bool:
        """Check amount and part identity of one pair."""
        if not self.tolerance_matcher.amounts_match(line_item.amount, authorization_line.amount):
            return False
        return self.match_part_number(line_item.part_number, authorization_line.item_name).matches

    def pair_lines(self, line_items: List[LineItem],
                   candidate: AuthorizationCandidate) -> List[MatchedPair]:
        """
        Pair credit lines with the lines of one authorization candidate.

        Args:
            line_items: Lines of a bill-number group, in document order
            candidate: Authorization whose lines may be consumed

        Returns:
            Matched pairs in line order; unmatched lines are left out
        """
        pairs: List[MatchedPair] = []
        used_lines = set()

        for line_item in line_items:
            for authorization_line in candidate.lines:
                if authorization_line.line_number in used_lines:
                    continue
                if self.line_matches(line_item, authorization_line):
                    pairs.append(MatchedPair(line_item=line_item, authorization_line=authorization_line))
                    used_lines.add(authorization_line.line_number)
                    self.logger.debug(f"Matched {line_item.amount} ({line_item.part_number or 'no part'}) "
                                      f"to authorization {candidate.internal_id} line "
                                      f"{authorization_line.line_number}")
                    break

        self.logger.debug(f"Line matching for authorization {candidate.internal_id}: "
                          f"{len(pairs)}/{len(line_items)} lines matched")
        return pairs
