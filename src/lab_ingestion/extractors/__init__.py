# ============================================================================
# src/lab_ingestion/extractors/__init__.py
# ============================================================================
"""
Document structuring (OCR) and AI-assisted text extraction.
"""

from .structuring import DocumentStructuringService, JobStatus, structure_document
from .docling_client import DoclingClient
from .text_extraction import (
    TextExtractionOrchestrator,
    chunk_document,
    build_extraction_prompt,
    clean_response,
    parse_response_line,
    parse_response,
    infer_test_type,
    deduplicate_values,
)

__all__ = [
    "DocumentStructuringService",
    "JobStatus",
    "structure_document",
    "DoclingClient",
    "TextExtractionOrchestrator",
    "chunk_document",
    "build_extraction_prompt",
    "clean_response",
    "parse_response_line",
    "parse_response",
    "infer_test_type",
    "deduplicate_values",
]
