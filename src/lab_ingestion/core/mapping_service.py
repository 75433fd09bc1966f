# ============================================================================
# src/lab_ingestion/core/mapping_service.py
# ============================================================================
"""
Lab Mapping Service

Runs one document's text through the mapping pipeline:

1. Header extraction (test date, laboratory, physician, patient)
2. Lab value extraction (chunked AI completion)
3. Fuzzy mapping onto canonical parameters
4. Grouping into import groups for review

The result is a draft: nothing is selected for import until a reviewer
(or an opt-in policy) does so.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional
import logging
import time

from .context import (
    DocumentInfo,
    LabReport,
    LabReportItem,
    MappingResult,
    overall_confidence,
)
from ..extractors.text_extraction import TextExtractionOrchestrator, clean_response
from ..llm.base import TextCompletionService
from ..llm.prompts import create_document_info_prompt
from ..mapping import FuzzyParameterMatcher, ImportReconciliationBuilder


logger = logging.getLogger(__name__)


DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
)

_HEADER_FIELDS = {
    "TEST_DATE": "test_date",
    "LAB_NAME": "laboratory_name",
    "PHYSICIAN": "ordering_physician",
    "PATIENT": "patient_name",
}

_EMPTY_MARKERS = {"", "unknown", "n/a", "na", "none", "not found", "-"}


def parse_test_date(text: Optional[str]) -> Optional[date]:
    if not text:
        return None
    text = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_document_info(response: str) -> DocumentInfo:
    """
    Parse the header reply ("TEST_DATE: 2024-03-01" style lines).

    Unrecognised lines are ignored; missing fields stay None.
    """
    fields: Dict[str, Any] = {}
    for line in clean_response(response).splitlines():
        label, sep, raw = line.partition(":")
        if not sep:
            continue
        attr = _HEADER_FIELDS.get(label.strip().upper().replace(" ", "_"))
        if attr is None or attr in fields:
            continue
        raw = raw.strip().strip('"\'')
        if raw.lower() in _EMPTY_MARKERS:
            continue
        fields[attr] = parse_test_date(raw) if attr == "test_date" else raw

    return DocumentInfo(**fields)


class LabMappingService:
    """
    Document text -> MappingResult.

    Config options are passed through to the extraction orchestrator and
    the reconciliation builder (chunk_size, default_confidence,
    auto_select_unambiguous, recommended_confidence ...).
    """

    def __init__(
        self,
        completion_service: TextCompletionService,
        matcher: Optional[FuzzyParameterMatcher] = None,
        builder: Optional[ImportReconciliationBuilder] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.config = config or {}
        self.completion_service = completion_service
        self.extractor = TextExtractionOrchestrator(completion_service, self.config)
        self.matcher = matcher or FuzzyParameterMatcher()
        self.builder = builder or ImportReconciliationBuilder(config=self.config)

    async def extract_document_info(self, document_text: str) -> DocumentInfo:
        # Header fields live at the top of the document
        prompt = create_document_info_prompt(document_text[:self.extractor.chunk_size])
        try:
            response = await self.completion_service.complete(prompt)
        except Exception as e:
            # Header is optional; the values still matter
            logger.warning(f"Document info extraction failed: {e}")
            return DocumentInfo()
        return parse_document_info(response)

    async def map_document(self, document_text: str) -> MappingResult:
        start = time.monotonic()

        info = await self.extract_document_info(document_text)
        raw_values = await self.extractor.extract(document_text)
        standardized = self.matcher.map_values(raw_values)
        groups = self.builder.build(standardized)
        confidence = overall_confidence(standardized)

        report = LabReport(
            test_date=info.test_date or date.today(),
            items=[LabReportItem.from_standardized(v) for v in standardized],
            laboratory_name=info.laboratory_name,
            ordering_physician=info.ordering_physician,
            patient_name=info.patient_name,
            metadata={
                "mapping_confidence": f"{confidence:.4f}",
                "ai_model": self.completion_service.model_name,
                "extracted_count": str(len(raw_values)),
            },
        )

        result = MappingResult(
            lab_report=report,
            raw_values=raw_values,
            standardized_values=standardized,
            import_groups=groups,
            confidence=confidence,
            processing_time=time.monotonic() - start,
            ai_model=self.completion_service.model_name,
        )
        logger.info(f"Mapping complete: {result.summary}")
        return result

    def empty_result(self, reason: Optional[str] = None) -> MappingResult:
        """Placeholder draft for a document whose processing never produced values."""
        metadata = {"ai_model": self.completion_service.model_name, "extracted_count": "0"}
        if reason:
            metadata["error"] = reason
        return MappingResult(
            lab_report=LabReport(test_date=date.today(), metadata=metadata),
            raw_values=[],
            standardized_values=[],
            import_groups=[],
            confidence=0.0,
            processing_time=0.0,
            ai_model=self.completion_service.model_name,
        )
