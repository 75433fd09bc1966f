# src/lab_ingestion/core/context/__init__.py

from .enums import (
    TestType,
    ParameterCategory,
    URINE_CATEGORIES,
    ValueType,
    ValidationStatus,
    ProcessingPriority,
    QueueItemStatus,
    DocumentStatus,
)
from .lab_parameter import LabParameter
from .extracted_value import RawExtractedValue, StandardizedValue
from .import_group import ImportCandidate, ImportGroup
from .mapping_result import (
    DocumentInfo,
    LabReport,
    LabReportItem,
    MappingResult,
    overall_confidence,
)
from .queue_item import HealthDocument, ProcessingQueueItem

__all__ = [
    "TestType",
    "ParameterCategory",
    "URINE_CATEGORIES",
    "ValueType",
    "ValidationStatus",
    "ProcessingPriority",
    "QueueItemStatus",
    "DocumentStatus",
    "LabParameter",
    "RawExtractedValue",
    "StandardizedValue",
    "ImportCandidate",
    "ImportGroup",
    "DocumentInfo",
    "LabReport",
    "LabReportItem",
    "MappingResult",
    "overall_confidence",
    "HealthDocument",
    "ProcessingQueueItem",
]
