# ============================================================================
# src/lab_ingestion/core/context/enums.py
# ============================================================================
"""
Pipeline Enums
- Test-type namespaces and parameter categories
- Validation verdicts
- Queue priorities and statuses
"""

from enum import Enum, IntEnum


class TestType(str, Enum):
    __test__ = False  # keep pytest from collecting it

    BLOOD = "BLOOD"
    URINE = "URINE"

    @classmethod
    def parse(cls, raw: str) -> "TestType":
        """Map loose labels from AI output onto a namespace. Raises ValueError."""
        label = (raw or "").strip().upper()
        if label in ("BLOOD", "SERUM", "PLASMA", "WHOLE BLOOD"):
            return cls.BLOOD
        if label in ("URINE", "URINALYSIS", "UA"):
            return cls.URINE
        raise ValueError(f"Unknown test type: {raw!r}")


class ParameterCategory(str, Enum):
    GENERAL_CHEMISTRY = "general_chemistry"
    COMPLETE_BLOOD_COUNT = "complete_blood_count"
    LIPID_PANEL = "lipid_panel"
    LIVER_FUNCTION = "liver_function"
    KIDNEY_FUNCTION = "kidney_function"
    THYROID_FUNCTION = "thyroid_function"
    DIABETES_MARKERS = "diabetes_markers"
    CARDIAC_MARKERS = "cardiac_markers"
    INFLAMMATORY_MARKERS = "inflammatory_markers"
    COAGULATION = "coagulation"
    VITAMINS_AND_MINERALS = "vitamins_and_minerals"
    HORMONES = "hormones"
    TUMOR_MARKERS = "tumor_markers"
    IMMUNOLOGY = "immunology"
    URINALYSIS = "urinalysis"
    URINE_CHEMISTRY = "urine_chemistry"
    URINE_MICROBIOLOGY = "urine_microbiology"
    OTHER = "other"

    @property
    def test_type(self) -> TestType:
        """Namespace this category belongs to. Everything outside the urine set is blood/serum."""
        return TestType.URINE if self in URINE_CATEGORIES else TestType.BLOOD

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY_NAMES.get(self, self.value.replace("_", " ").title())


URINE_CATEGORIES = frozenset({
    ParameterCategory.URINALYSIS,
    ParameterCategory.URINE_CHEMISTRY,
    ParameterCategory.URINE_MICROBIOLOGY,
})

_CATEGORY_DISPLAY_NAMES = {
    ParameterCategory.COMPLETE_BLOOD_COUNT: "Complete Blood Count (CBC)",
    ParameterCategory.LIVER_FUNCTION: "Liver Function Tests",
    ParameterCategory.KIDNEY_FUNCTION: "Kidney Function Tests",
    ParameterCategory.THYROID_FUNCTION: "Thyroid Function Tests",
    ParameterCategory.COAGULATION: "Coagulation Studies",
    ParameterCategory.VITAMINS_AND_MINERALS: "Vitamins & Minerals",
    ParameterCategory.OTHER: "Other Tests",
}


class ValueType(str, Enum):
    NUMERIC = "numeric"
    QUALITATIVE = "qualitative"


class ValidationStatus(str, Enum):
    VALID = "valid"
    INVALID_TYPE = "invalid_type"
    OUT_OF_RANGE = "out_of_range"
    MISSING_DATA = "missing_data"


class ProcessingPriority(IntEnum):
    LOW = 1
    NORMAL = 2
    HIGH = 3
    URGENT = 4

    @property
    def display_name(self) -> str:
        return self.name.title()


class QueueItemStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"


class DocumentStatus(str, Enum):
    """Persisted document status (DocumentRecordStore)."""
    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
