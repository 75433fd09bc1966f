# ============================================================================
# src/lab_ingestion/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the lab ingestion pipeline.

Data-quality problems (unparseable values, unmapped names) are never
raised; they are verdicts or dropped values. Only infrastructure and
configuration failures use this hierarchy.
"""


class LabIngestionError(Exception):
    """Base exception for all lab ingestion errors."""
    pass


class DocumentProcessingError(LabIngestionError):
    """Error during document processing."""
    pass


class DocumentReadError(DocumentProcessingError):
    """Document content could not be read."""
    pass


class StructuringError(DocumentProcessingError):
    """Error from the external document structuring (OCR) service."""
    pass


class StructuringTimeoutError(StructuringError):
    """Submit/poll cycle exceeded its wall-clock budget."""
    def __init__(self, message: str, job_id: str = None, timeout: float = None):
        super().__init__(message)
        self.job_id = job_id
        self.timeout = timeout


class StructuringJobFailedError(StructuringError):
    """Structuring service reported the job as failed."""
    def __init__(self, message: str, job_id: str = None):
        super().__init__(message)
        self.job_id = job_id


class CompletionError(LabIngestionError):
    """Error from a text completion backend."""
    pass


class ConfigurationError(LabIngestionError):
    """Invalid configuration. Requires operator action, never retried."""
    pass


class StoreError(LabIngestionError):
    """Error persisting document state."""
    pass
