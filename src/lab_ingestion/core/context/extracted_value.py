# ============================================================================
# src/lab_ingestion/core/context/extracted_value.py
# ============================================================================
"""
Extracted lab readings
- RawExtractedValue: one candidate reading as read off a document chunk
- StandardizedValue: the same reading mapped onto a canonical parameter
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .enums import ParameterCategory, TestType


@dataclass(frozen=True)
class RawExtractedValue:
    test_name: str
    test_type: TestType
    value: str
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    is_abnormal: bool = False
    abnormal_flag: Optional[str] = None
    confidence: float = 0.8

    # Provenance
    chunk_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["test_type"] = self.test_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawExtractedValue":
        return cls(**{**data, "test_type": TestType(data["test_type"])})


@dataclass(frozen=True)
class StandardizedValue:
    standard_key: str
    standard_name: str
    category: ParameterCategory
    value: str
    test_type: TestType
    original_test_name: str
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    is_abnormal: bool = False
    confidence: float = 0.0

    def __post_init__(self):
        # A urine-only key never backs a blood reading and vice versa
        if self.category.test_type != self.test_type:
            raise ValueError(
                f"{self.standard_key}: category {self.category.value} "
                f"is outside the {self.test_type.value} namespace"
            )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["test_type"] = self.test_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StandardizedValue":
        return cls(**{
            **data,
            "category": ParameterCategory(data["category"]),
            "test_type": TestType(data["test_type"]),
        })
