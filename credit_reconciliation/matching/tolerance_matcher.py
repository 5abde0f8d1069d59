"""
Tolerance-based amount matching.

Provides absolute-tolerance comparison of money values coming from two
sources (extracted credit lines and ledger authorization lines) that may
arrive as Decimal, float or formatted strings.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union
from dataclasses import dataclass

from credit_reconciliation.models import parse_amount

import logging
logger = logging.getLogger(__name__)

Amount = Union[Decimal, float, int, str]


@dataclass
class ToleranceMatchResult:
    """Result of a tolerance-based amount comparison."""
    field_name: str
    matches: bool
    expected_value: Any
    actual_value: Any
    tolerance_value: Decimal
    actual_variance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'field_name': self.field_name,
            'matches': self.matches,
            'expected_value': str(self.expected_value),
            'actual_value': str(self.actual_value),
            'tolerance_value': str(self.tolerance_value),
            'actual_variance': str(self.actual_variance)
        }


def to_decimal(value: Amount) -> Decimal:
    """Convert a money value to an absolute Decimal."""
    if isinstance(value, str):
        return parse_amount(value)
    if isinstance(value, float):
        return abs(Decimal(str(value)))
    return abs(Decimal(value))


class ToleranceMatcher:
    """
    Compares absolute amounts within a fixed tolerance.

    The comparison is strict: a difference equal to the tolerance is a
    mismatch, so with the default 0.01 only identical cents match.
    """

    def __init__(self, tolerance: Amount = Decimal('0.01')):
        """
        Initialize tolerance matcher.

        Args:
            tolerance: Absolute tolerance (e.g. 0.01)
        """
        self.tolerance = to_decimal(tolerance)
        self.logger = logging.getLogger(f"{__name__}.ToleranceMatcher")

    def match_amount(self, expected: Amount, actual: Amount,
                     field_name: str = 'amount') -> ToleranceMatchResult:
        """
        Match two amounts by absolute value.

        Args:
            expected: Amount from the credit document
            actual: Amount from the ledger
            field_name: Name reported on the result

        Returns:
            ToleranceMatchResult with match details
        """
        try:
            expected_decimal = to_decimal(expected)
            actual_decimal = to_decimal(actual)
        except (InvalidOperation, ValueError, TypeError) as e:
            self.logger.error(f"Error comparing amounts {expected} vs {actual}: {e}")
            return ToleranceMatchResult(
                field_name=field_name,
                matches=False,
                expected_value=expected,
                actual_value=actual,
                tolerance_value=self.tolerance,
                actual_variance=Decimal('Infinity')
            )

        difference = abs(expected_decimal - actual_decimal)
        matches = difference == 0 or difference < self.tolerance

        self.logger.debug(f"Amount tolerance match: {expected_decimal} vs {actual_decimal} "
                          f"(<{self.tolerance}) = {matches} (variance: {difference})")
        return ToleranceMatchResult(
            field_name=field_name,
            matches=matches,
            expected_value=expected,
            actual_value=actual,
            tolerance_value=self.tolerance,
            actual_variance=difference
        )

    def amounts_match(self, expected: Amount, actual: Amount) -> bool:
        """Shorthand for match_amount(...).matches."""
        return self.match_amount(expected, actual).matches
