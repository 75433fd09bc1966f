# ============================================================================
# src/lab_ingestion/mapping/__init__.py
# ============================================================================
"""
Name matching and review grouping.
"""

from .fuzzy_matcher import FuzzyParameterMatcher, normalize_test_name, mapping_confidence
from .reconciliation import ImportReconciliationBuilder, suggest_best_candidate, apply_review

__all__ = [
    "FuzzyParameterMatcher",
    "normalize_test_name",
    "mapping_confidence",
    "ImportReconciliationBuilder",
    "suggest_best_candidate",
    "apply_review",
]
