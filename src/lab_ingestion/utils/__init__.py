# ============================================================================
# src/lab_ingestion/utils/__init__.py
# ============================================================================
"""
Utility modules for the lab ingestion pipeline.
"""

from .exceptions import (
    LabIngestionError,
    DocumentProcessingError,
    DocumentReadError,
    StructuringError,
    StructuringTimeoutError,
    StructuringJobFailedError,
    CompletionError,
    ConfigurationError,
    StoreError,
)

from .logging import (
    setup_logging,
    get_logger,
    JsonFormatter,
    log_performance,
)

__all__ = [
    # Exceptions
    'LabIngestionError',
    'DocumentProcessingError',
    'DocumentReadError',
    'StructuringError',
    'StructuringTimeoutError',
    'StructuringJobFailedError',
    'CompletionError',
    'ConfigurationError',
    'StoreError',
    # Logging
    'setup_logging',
    'get_logger',
    'JsonFormatter',
    'log_performance',
]
