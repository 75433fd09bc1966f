# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from lab_ingestion.constants import get_parameter_catalog
from lab_ingestion.core.context import (
    DocumentStatus,
    HealthDocument,
    LabReport,
    MappingResult,
    ProcessingPriority,
)
from lab_ingestion.core.document_store import DocumentRecordStore
from lab_ingestion.extractors.structuring import DocumentStructuringService, JobStatus
from lab_ingestion.llm.base import TextCompletionService
from lab_ingestion.utils.exceptions import CompletionError


# ----------------------------------------------------------------------------
# Fakes
# ----------------------------------------------------------------------------

Reply = Union[str, Exception]


class FakeCompletionService(TextCompletionService):
    """
    Scripted completion backend.

    `responder` is either a list of replies (consumed in order, the last
    one repeats) or a callable prompt -> reply. An Exception reply is raised.
    """

    def __init__(self, responder: Union[List[Reply], Callable[[str], Reply]] = None):
        super().__init__()
        self.responder = responder if responder is not None else [""]
        self.prompts: List[str] = []

    @property
    def model_name(self) -> str:
        return "fake-model"

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if callable(self.responder):
            reply = self.responder(prompt)
        else:
            index = min(len(self.prompts) - 1, len(self.responder) - 1)
            reply = self.responder[index]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeStructuringService(DocumentStructuringService):
    """
    In-process structuring service.

    Returns `text` for every job. `fail_submits` makes the first N submits
    raise; `statuses` scripts poll replies (the last one repeats).
    """

    def __init__(
        self,
        text: str = "",
        statuses: Optional[List[JobStatus]] = None,
        fail_submits: int = 0,
        error: Optional[Exception] = None,
    ):
        self.text = text
        self.statuses = statuses or [JobStatus.SUCCEEDED]
        self.fail_submits = fail_submits
        self.error = error or CompletionError("structuring backend unavailable")
        self.submitted: List[Tuple[bytes, str]] = []
        self.polls = 0
        self._ids = itertools.count(1)

    async def submit(self, content: bytes, mime_hint: str) -> str:
        self.submitted.append((content, mime_hint))
        if len(self.submitted) <= self.fail_submits:
            raise self.error
        return f"job-{next(self._ids)}"

    async def poll_status(self, job_id: str) -> JobStatus:
        status = self.statuses[min(self.polls, len(self.statuses) - 1)]
        self.polls += 1
        return status

    async def fetch_result(self, job_id: str) -> str:
        return self.text


class InMemoryDocumentStore(DocumentRecordStore):
    """DocumentRecordStore kept in dicts; records every status change."""

    def __init__(self):
        self.documents: Dict[str, Tuple[HealthDocument, ProcessingPriority]] = {}
        self.statuses: Dict[str, DocumentStatus] = {}
        self.errors: Dict[str, Optional[str]] = {}
        self.history: List[Tuple[str, DocumentStatus]] = []
        self.drafts: Dict[str, Dict[str, Any]] = {}
        self.reports: Dict[str, Dict[str, Any]] = {}

    def register_document(self, document, priority=ProcessingPriority.NORMAL):
        self.documents[document.document_id] = (document, priority)
        self.statuses.setdefault(document.document_id, DocumentStatus.PENDING)

    def update_status(self, document_id, status, error=None):
        self.statuses[document_id] = status
        self.errors[document_id] = error
        self.history.append((document_id, status))

    def save_draft_mapping_result(self, document_id, result: MappingResult):
        self.drafts[document_id] = result.to_dict()

    def get_draft_mapping_result(self, document_id):
        return self.drafts.get(document_id)

    def save_lab_report(self, document_id, report: LabReport):
        self.reports[document_id] = report.to_dict()

    def fetch_queued(self):
        return [
            self.documents[doc_id]
            for doc_id, status in self.statuses.items()
            if status in (DocumentStatus.QUEUED, DocumentStatus.PROCESSING)
        ]


# ----------------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------------

@pytest.fixture
def catalog():
    """Packaged parameter catalog"""
    return get_parameter_catalog()


@pytest.fixture
def sample_lab_text():
    """Structured text as returned by the OCR service"""
    return """
    Quest Diagnostics Laboratory Report
    Patient: John Doe
    Date: 2024-01-15

    COMPREHENSIVE METABOLIC PANEL
    Test                Result      Units      Reference Range    Flag
    Glucose             95          mg/dL      70-99
    Sodium              140         mmol/L     136-145
    Hemoglobin A1c      6.1         %          <5.7               H

    URINALYSIS
    Protein             Negative               Negative
    """


@pytest.fixture
def sample_ai_response():
    """Extraction reply matching sample_lab_text"""
    return (
        "TEST_NAME|TEST_TYPE|VALUE|UNIT|REFERENCE_RANGE|ABNORMAL_FLAG\n"
        "Glucose|BLOOD|95|mg/dL|70-99|normal\n"
        "Sodium|BLOOD|140|mmol/L|136-145|normal\n"
        "HbA1c|BLOOD|6.1|%|<5.7|H\n"
        "Protein|URINE|Negative|unknown|Negative|normal\n"
    )


@pytest.fixture
def sample_header_response():
    return (
        "TEST_DATE: 2024-01-15\n"
        "LAB_NAME: Quest Diagnostics\n"
        "PHYSICIAN: unknown\n"
        "PATIENT: John Doe\n"
    )


@pytest.fixture
def make_document(tmp_path):
    """Factory writing a small file and returning its HealthDocument"""
    counter = itertools.count(1)

    def _make(document_id: Optional[str] = None, content: bytes = b"%PDF-1.4 lab report"):
        n = next(counter)
        path = tmp_path / f"report_{n}.pdf"
        path.write_bytes(content)
        return HealthDocument(document_id=document_id or f"doc-{n}", file_path=path)

    return _make


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def fake_completion():
    return FakeCompletionService


@pytest.fixture
def fake_structuring():
    return FakeStructuringService
