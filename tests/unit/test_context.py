# ============================================================================
# FILE: tests/unit/test_context.py
# ============================================================================
"""
Unit tests for the shared record types
"""

from datetime import date
from pathlib import Path

import pytest

from lab_ingestion.core.context import (
    HealthDocument,
    LabReport,
    LabReportItem,
    ParameterCategory,
    ProcessingPriority,
    ProcessingQueueItem,
    QueueItemStatus,
    TestType,
)
from lab_ingestion.utils.exceptions import DocumentReadError


@pytest.mark.parametrize("label,expected", [
    ("blood", TestType.BLOOD),
    (" Serum ", TestType.BLOOD),
    ("UA", TestType.URINE),
    ("urinalysis", TestType.URINE),
])
def test_test_type_parse(label, expected):
    assert TestType.parse(label) == expected


def test_test_type_parse_rejects_unknown():
    with pytest.raises(ValueError):
        TestType.parse("saliva")


def test_category_namespace():
    assert ParameterCategory.URINE_CHEMISTRY.test_type == TestType.URINE
    assert ParameterCategory.LIPID_PANEL.test_type == TestType.BLOOD
    assert ParameterCategory.COMPLETE_BLOOD_COUNT.display_name == "Complete Blood Count (CBC)"
    assert ParameterCategory.LIPID_PANEL.display_name == "Lipid Panel"


def test_priority_ordering():
    assert ProcessingPriority.URGENT > ProcessingPriority.HIGH > ProcessingPriority.NORMAL > ProcessingPriority.LOW


def test_mime_hint():
    assert HealthDocument("d", Path("scan.pdf")).mime_hint == "application/pdf"
    assert HealthDocument("d", Path("scan.png")).mime_hint == "image/png"
    assert HealthDocument("d", Path("scan"), mime_type="image/jpeg").mime_hint == "image/jpeg"
    assert HealthDocument("d", Path("scan")).mime_hint == "application/octet-stream"


def test_read_bytes_missing_and_empty(tmp_path):
    with pytest.raises(DocumentReadError):
        HealthDocument("d", tmp_path / "missing.pdf").read_bytes()

    empty = tmp_path / "empty.pdf"
    empty.write_bytes(b"")
    with pytest.raises(DocumentReadError):
        HealthDocument("d", empty).read_bytes()


def test_queue_item_terminal():
    item = ProcessingQueueItem(HealthDocument("d", Path("a.pdf")))
    assert item.status == QueueItemStatus.QUEUED
    assert not item.is_terminal
    item.status = QueueItemStatus.FAILED
    assert item.is_terminal


def test_lab_report_summary():
    report = LabReport(test_date=date(2024, 1, 15), items=[
        LabReportItem(name="Glucose", value="95"),
        LabReportItem(name="HbA1c", value="6.1", is_abnormal=True),
    ])
    assert report.summary == "2 tests - 1 abnormal"
    assert report.to_dict()["test_date"] == "2024-01-15"
    assert LabReport(test_date=date(2024, 1, 15)).summary == "0 tests - All normal"
