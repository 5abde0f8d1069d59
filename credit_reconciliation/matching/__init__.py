"""
Classification and matching for credit reconciliation.

This package provides:
- NARDA code classification and grouping
- Bill-number consolidation of vendor-credit groups
- Amount tolerance and line pairing against authorizations
- Authorization candidate search with per-candidate retry
"""

from .classifier import NardaClassifier, split_groups
from .consolidator import BillNumberConsolidator, ConsolidationResult
from .tolerance_matcher import ToleranceMatcher, ToleranceMatchResult
from .line_matcher import LineMatcher, PartMatchResult
from .authorization_matcher import AuthorizationMatcher

__all__ = [
    "NardaClassifier",
    "split_groups",
    "BillNumberConsolidator",
    "ConsolidationResult",
    "ToleranceMatcher",
    "ToleranceMatchResult",
    "LineMatcher",
    "PartMatchResult",
    "AuthorizationMatcher"
]
