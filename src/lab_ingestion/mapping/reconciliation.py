# ============================================================================
# src/lab_ingestion/mapping/reconciliation.py
# ============================================================================
"""
Import Reconciliation

Groups standardized values by canonical key so a reviewer sees every
competing reading of the same parameter side by side. Each candidate is
validated independently. Nothing is selected unless a policy that the
caller opts into does it.

Policies:
- suggest_best_candidate(): ranking hint for the review screen, never selects
- auto_select_unambiguous: pre-select a group's single valid, recommended candidate
- apply_review(): turn reviewer selections into the authoritative LabReport
"""

import logging
from typing import Dict, List, Optional

from ..config import pipeline_settings
from ..constants import ParameterCatalog, get_parameter_catalog
from ..core.context import (
    ImportCandidate,
    ImportGroup,
    LabReport,
    LabReportItem,
    MappingResult,
    StandardizedValue,
)
from ..validators import ValueValidator


logger = logging.getLogger(__name__)


class ImportReconciliationBuilder:
    """
    Build one ImportGroup per canonical key, in first-seen order.

    Config options:
        auto_select_unambiguous: pre-select lone valid recommended candidates
        recommended_confidence: threshold used by auto-selection
    """

    def __init__(
        self,
        validator: Optional[ValueValidator] = None,
        catalog: Optional[ParameterCatalog] = None,
        config: Optional[dict] = None,
    ):
        self.config = config or {}
        self.validator = validator or ValueValidator(self.config)
        self.catalog = catalog or get_parameter_catalog()
        self.auto_select_unambiguous = self.config.get(
            "auto_select_unambiguous",
            pipeline_settings.REVIEW_AUTO_SELECT_UNAMBIGUOUS,
        )
        self.recommended_confidence = self.config.get(
            "recommended_confidence",
            pipeline_settings.REVIEW_RECOMMENDED_CONFIDENCE,
        )

    def build(self, values: List[StandardizedValue]) -> List[ImportGroup]:
        by_key: Dict[str, List[StandardizedValue]] = {}
        for value in values:
            by_key.setdefault(value.standard_key, []).append(value)

        groups = []
        for key, members in by_key.items():
            candidates = [self._candidate(value) for value in members]
            group = ImportGroup(
                standard_key=key,
                standard_name=members[0].standard_name,
                candidates=candidates,
            )
            if self.auto_select_unambiguous:
                self._auto_select(group)
            groups.append(group)

        duplicates = sum(1 for g in groups if g.is_duplicate)
        logger.info(
            f"Built {len(groups)} import groups from {len(values)} values "
            f"({duplicates} with competing candidates)"
        )
        return groups

    def _candidate(self, value: StandardizedValue) -> ImportCandidate:
        verdict = self.validator.validate(
            value.value,
            value.standard_name,
            value.reference_range,
            self.catalog.lookup(value.standard_key),
        )
        return ImportCandidate(
            value=value,
            validation_status=verdict.status,
            reason=verdict.reason,
        )

    def _auto_select(self, group: ImportGroup):
        if len(group.candidates) != 1:
            return
        candidate = group.candidates[0]
        if candidate.is_valid and candidate.value.confidence > self.recommended_confidence:
            group.select(candidate.candidate_id)
            logger.debug(f"Auto-selected lone candidate for {group.standard_key}")


def suggest_best_candidate(group: ImportGroup) -> Optional[ImportCandidate]:
    """
    Rank a group's candidates for the review screen.

    Valid first, then higher confidence, a unit present, a reference range
    present, and finally the longer original name (usually more specific).
    Returns the top candidate; it does not select it.
    """
    if not group.candidates:
        return None

    def rank(candidate: ImportCandidate):
        value = candidate.value
        return (
            candidate.is_valid,
            value.confidence,
            bool(value.unit),
            bool(value.reference_range),
            len(value.original_test_name or ""),
        )

    return max(group.candidates, key=rank)


def apply_review(result: MappingResult, selections: Dict[str, Optional[str]]) -> LabReport:
    """
    Record reviewer selections and build the authoritative report.

    Args:
        result: Draft mapping result
        selections: {group_id: candidate_id or None}

    Only groups with an explicitly selected candidate contribute an item.

    Raises:
        ValueError: unknown group id, or a candidate outside its group
    """
    groups = {group.group_id: group for group in result.import_groups}

    unknown = [group_id for group_id in selections if group_id not in groups]
    if unknown:
        raise ValueError(f"Unknown import groups: {unknown}")

    # Reject the whole review before any group changes
    foreign = [
        candidate_id for group_id, candidate_id in selections.items()
        if candidate_id is not None and not groups[group_id].has_candidate(candidate_id)
    ]
    if foreign:
        raise ValueError(f"Candidates outside their import group: {foreign}")

    for group_id, candidate_id in selections.items():
        groups[group_id].select(candidate_id)

    items = []
    for group in result.import_groups:
        candidate = group.selected_candidate
        if candidate is not None:
            items.append(LabReportItem.from_standardized(candidate.value))

    draft = result.lab_report
    metadata = dict(draft.metadata)
    metadata["reviewed_count"] = str(len(items))

    report = LabReport(
        test_date=draft.test_date,
        items=items,
        laboratory_name=draft.laboratory_name,
        ordering_physician=draft.ordering_physician,
        patient_name=draft.patient_name,
        metadata=metadata,
    )
    logger.info(f"Review accepted {len(items)} of {len(result.import_groups)} import groups")
    return report
