# ============================================================================
# src/lab_ingestion/core/context/lab_parameter.py
# ============================================================================
"""
Canonical lab parameter (one catalog entry)
"""

from dataclasses import dataclass
from typing import Optional

from .enums import ParameterCategory, TestType, ValueType


@dataclass(frozen=True)
class LabParameter:
    key: str
    name: str
    category: ParameterCategory
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    value_type: ValueType = ValueType.NUMERIC
    allows_negative: bool = False
    description: Optional[str] = None

    @property
    def test_type(self) -> TestType:
        return self.category.test_type

    @property
    def is_numeric(self) -> bool:
        return self.value_type == ValueType.NUMERIC
