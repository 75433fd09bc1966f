# ============================================================================
# src/lab_ingestion/core/context/import_group.py
# ============================================================================
"""
Review structures for human reconciliation
- ImportCandidate: a standardized value plus its validation verdict
- ImportGroup: every competing candidate for one canonical parameter
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import uuid

from ...config import pipeline_settings
from .enums import ValidationStatus
from .extracted_value import StandardizedValue


RECOMMENDED_CONFIDENCE = pipeline_settings.REVIEW_RECOMMENDED_CONFIDENCE


@dataclass(frozen=True)
class ImportCandidate:
    value: StandardizedValue
    validation_status: ValidationStatus = ValidationStatus.VALID
    reason: Optional[str] = None
    candidate_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def display_value(self) -> str:
        if self.value.unit:
            return f"{self.value.value} {self.value.unit}"
        return self.value.value

    @property
    def is_valid(self) -> bool:
        return self.validation_status == ValidationStatus.VALID

    @property
    def is_recommended(self) -> bool:
        return self.is_valid and self.value.confidence > RECOMMENDED_CONFIDENCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "validation_status": self.validation_status.value,
            "reason": self.reason,
            "value": self.value.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportCandidate":
        return cls(
            value=StandardizedValue.from_dict(data["value"]),
            validation_status=ValidationStatus(data["validation_status"]),
            reason=data.get("reason"),
            candidate_id=data["candidate_id"],
        )


@dataclass
class ImportGroup:
    standard_key: str
    standard_name: str
    candidates: List[ImportCandidate]
    selected_candidate_id: Optional[str] = None
    group_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if not self.candidates:
            raise ValueError(f"ImportGroup for {self.standard_key} needs at least one candidate")
        if self.selected_candidate_id is not None:
            self._require_member(self.selected_candidate_id)

    def _require_member(self, candidate_id: str):
        if not self.has_candidate(candidate_id):
            raise ValueError(
                f"Candidate {candidate_id} is not part of group {self.standard_key}"
            )

    def has_candidate(self, candidate_id: str) -> bool:
        return any(c.candidate_id == candidate_id for c in self.candidates)

    def select(self, candidate_id: Optional[str]):
        """Record the reviewer's choice. None clears the selection."""
        if candidate_id is not None:
            self._require_member(candidate_id)
        self.selected_candidate_id = candidate_id

    @property
    def selected_candidate(self) -> Optional[ImportCandidate]:
        for candidate in self.candidates:
            if candidate.candidate_id == self.selected_candidate_id:
                return candidate
        return None

    @property
    def has_valid_candidates(self) -> bool:
        return any(c.is_valid for c in self.candidates)

    @property
    def is_duplicate(self) -> bool:
        return len(self.candidates) > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "standard_key": self.standard_key,
            "standard_name": self.standard_name,
            "selected_candidate_id": self.selected_candidate_id,
            "candidates": [c.to_dict() for c in self.candidates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportGroup":
        return cls(
            standard_key=data["standard_key"],
            standard_name=data["standard_name"],
            candidates=[ImportCandidate.from_dict(c) for c in data["candidates"]],
            selected_candidate_id=data.get("selected_candidate_id"),
            group_id=data["group_id"],
        )
