# ============================================================================
# src/lab_ingestion/validators/value_validator.py
# ============================================================================
"""
Value Validator

Checks one extracted value against its canonical parameter before it is
offered for import. Not a clinical judgement: a value outside the
reference range is still valid. Only values that cannot be real are
flagged.

Example (Glucose, range 70-99 mg/dL):
- "95"      → valid
- "abc"     → invalid_type
- "12-15"   → invalid_type (range in the value column)
- "12000"   → out_of_range (more than 100x the high bound)
"""

import logging
from typing import NamedTuple, Optional

from ..config import pipeline_settings
from ..core.context import LabParameter, ValidationStatus
from ..utils.parsing import (
    is_qualitative_token,
    looks_like_range,
    parse_numeric_value,
    parse_reference_range,
)


logger = logging.getLogger(__name__)


class Verdict(NamedTuple):
    status: ValidationStatus
    reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == ValidationStatus.VALID


VALID = Verdict(ValidationStatus.VALID)


class ValueValidator:
    """
    Classify a value as valid, invalid_type, out_of_range or missing_data.

    validate() never raises: every input, however malformed, gets a verdict.
    """

    def __init__(self, config: dict = None):
        self.config = config or {}
        self.high_multiplier = self.config.get(
            "plausibility_high_multiplier",
            pipeline_settings.PLAUSIBILITY_HIGH_MULTIPLIER,
        )

    def validate(
        self,
        value: Optional[str],
        test_name: str,
        reference_range: Optional[str] = None,
        parameter: Optional[LabParameter] = None,
    ) -> Verdict:
        """
        Args:
            value: Value as extracted ("95", "<0.01", "Negative" ...)
            test_name: Display name used in reason strings
            reference_range: Range as written on the document, if any
            parameter: Canonical parameter; None is treated as numeric

        Returns:
            Verdict(status, reason)
        """
        if not isinstance(value, str) or not value.strip() or value.strip().lower() == "unknown":
            return Verdict(ValidationStatus.MISSING_DATA, f"{test_name}: no value extracted")

        value = value.strip()

        # Qualitative parameters accept any non-empty text
        if parameter is not None and not parameter.is_numeric:
            return VALID

        numeric = parse_numeric_value(value)
        if numeric is None:
            if is_qualitative_token(value):
                return VALID
            if looks_like_range(value):
                reason = f"{test_name}: value '{value}' looks like a range, not a single result"
            else:
                reason = f"{test_name}: value '{value}' contains non-numeric characters"
            logger.debug(reason)
            return Verdict(ValidationStatus.INVALID_TYPE, reason)

        return self._check_plausibility(numeric, test_name, reference_range, parameter)

    def _check_plausibility(
        self,
        numeric: float,
        test_name: str,
        reference_range: Optional[str],
        parameter: Optional[LabParameter],
    ) -> Verdict:
        ref = parse_reference_range(reference_range) if isinstance(reference_range, str) else None
        if ref is None and parameter is not None:
            ref = parse_reference_range(parameter.reference_range)
        if ref is None:
            return VALID

        allows_negative = parameter.allows_negative if parameter is not None else False
        if numeric < 0 and not allows_negative:
            reason = f"{test_name}: value {numeric:g} is below the lower bound 0 (assay is never negative)"
            logger.warning(reason)
            return Verdict(ValidationStatus.OUT_OF_RANGE, reason)

        if ref.high is not None and ref.high > 0:
            ceiling = ref.high * self.high_multiplier
            if numeric > ceiling:
                reason = (
                    f"{test_name}: value {numeric:g} exceeds {self.high_multiplier:g}x "
                    f"the upper bound {ref.high:g}"
                )
                logger.warning(reason)
                return Verdict(ValidationStatus.OUT_OF_RANGE, reason)

        return VALID
