# ============================================================================
# src/lab_ingestion/core/context/mapping_result.py
# ============================================================================
"""
Output of one document's mapping pass
- DocumentInfo: header fields (date, lab, physician, patient)
- LabReport / LabReportItem: the record that becomes authoritative after review
- MappingResult: draft report + audit trail + import groups
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
import uuid

from .enums import ParameterCategory
from .extracted_value import RawExtractedValue, StandardizedValue
from .import_group import ImportGroup


@dataclass(frozen=True)
class DocumentInfo:
    test_date: Optional[date] = None
    laboratory_name: Optional[str] = None
    ordering_physician: Optional[str] = None
    patient_name: Optional[str] = None


@dataclass
class LabReportItem:
    name: str
    value: str
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    is_abnormal: bool = False
    category: Optional[ParameterCategory] = None
    notes: Optional[str] = None

    @classmethod
    def from_standardized(cls, value: StandardizedValue) -> "LabReportItem":
        notes = None
        if value.original_test_name != value.standard_name:
            notes = f"Original name: {value.original_test_name}"
        return cls(
            name=value.standard_name,
            value=value.value,
            unit=value.unit,
            reference_range=value.reference_range,
            is_abnormal=value.is_abnormal,
            category=value.category,
            notes=notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "reference_range": self.reference_range,
            "is_abnormal": self.is_abnormal,
            "category": self.category.value if self.category else None,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LabReportItem":
        category = data.get("category")
        return cls(**{**data, "category": ParameterCategory(category) if category else None})


@dataclass
class LabReport:
    test_date: date
    items: List[LabReportItem] = field(default_factory=list)
    laboratory_name: Optional[str] = None
    ordering_physician: Optional[str] = None
    patient_name: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    report_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def abnormal_items(self) -> List[LabReportItem]:
        return [item for item in self.items if item.is_abnormal]

    @property
    def summary(self) -> str:
        abnormal = len(self.abnormal_items)
        if abnormal == 0:
            return f"{len(self.items)} tests - All normal"
        return f"{len(self.items)} tests - {abnormal} abnormal"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "test_date": self.test_date.isoformat(),
            "laboratory_name": self.laboratory_name,
            "ordering_physician": self.ordering_physician,
            "patient_name": self.patient_name,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LabReport":
        return cls(
            test_date=date.fromisoformat(data["test_date"]),
            items=[LabReportItem.from_dict(item) for item in data.get("items", [])],
            laboratory_name=data.get("laboratory_name"),
            ordering_physician=data.get("ordering_physician"),
            patient_name=data.get("patient_name"),
            metadata=dict(data.get("metadata", {})),
            report_id=data["report_id"],
        )


@dataclass
class MappingResult:
    lab_report: LabReport
    raw_values: List[RawExtractedValue]
    standardized_values: List[StandardizedValue]
    import_groups: List[ImportGroup]
    confidence: float
    processing_time: float
    ai_model: str

    @property
    def needs_review(self) -> bool:
        return len(self.import_groups) > 0

    @property
    def summary(self) -> str:
        return (
            f"{len(self.standardized_values)} values mapped into "
            f"{len(self.import_groups)} groups with {self.confidence:.0%} confidence"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lab_report": self.lab_report.to_dict(),
            "raw_values": [v.to_dict() for v in self.raw_values],
            "standardized_values": [v.to_dict() for v in self.standardized_values],
            "import_groups": [g.to_dict() for g in self.import_groups],
            "confidence": self.confidence,
            "processing_time": self.processing_time,
            "ai_model": self.ai_model,
            "needs_review": self.needs_review,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingResult":
        """Rebuild a stored draft. needs_review is derived, so it is ignored."""
        return cls(
            lab_report=LabReport.from_dict(data["lab_report"]),
            raw_values=[RawExtractedValue.from_dict(v) for v in data.get("raw_values", [])],
            standardized_values=[StandardizedValue.from_dict(v) for v in data.get("standardized_values", [])],
            import_groups=[ImportGroup.from_dict(g) for g in data.get("import_groups", [])],
            confidence=data["confidence"],
            processing_time=data["processing_time"],
            ai_model=data["ai_model"],
        )


def overall_confidence(values: List[StandardizedValue]) -> float:
    """Mean of constituent mapping confidences (0.0 when nothing was mapped)."""
    if not values:
        return 0.0
    return sum(v.confidence for v in values) / len(values)
