# ============================================================================
# src/lab_ingestion/validators/__init__.py
# ============================================================================
"""
Validation of extracted values before import.
"""

from .value_validator import ValueValidator, Verdict

__all__ = ["ValueValidator", "Verdict"]
