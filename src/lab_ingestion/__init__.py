# ============================================================================
# src/lab_ingestion/__init__.py
# ============================================================================
"""
Lab Ingestion

Turns laboratory report documents into reviewable, standardized lab
results: OCR structuring, AI-assisted value extraction, fuzzy mapping
onto a canonical parameter catalog and grouping for human review.
"""

__version__ = "0.1.0"
