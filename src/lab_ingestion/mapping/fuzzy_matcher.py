# ============================================================================
# src/lab_ingestion/mapping/fuzzy_matcher.py
# ============================================================================
"""
Fuzzy Parameter Matcher

Maps a free-text lab test name plus a blood/urine hint onto a canonical
catalog parameter:

1. Normalize the name (lowercase, separators -> "_")
2. Direct key lookup
3. Curated synonym table: exact synonym first, then containment
4. Substring fallback against catalog keys
5. No match -> None (caller logs and drops the value)

Every step is restricted to the namespace of the test type. A urine
reading is never mapped onto a blood parameter and vice versa.
"""

import logging
import re
from typing import Dict, List, Optional

from ..constants import ParameterCatalog, SynonymTable, get_parameter_catalog, get_synonym_tables
from ..core.context import LabParameter, RawExtractedValue, StandardizedValue, TestType
from ..utils.logging import log_performance


logger = logging.getLogger(__name__)


_SEPARATORS = re.compile(r'[\s\-()]+')
_UNDERSCORES = re.compile(r'_+')

# Shorter names/synonyms only match exactly; "hb" or "pt" as a substring
# would hit half the catalog
MIN_CONTAINMENT_LENGTH = 3


def normalize_test_name(name: str) -> str:
    """
    'Hemoglobin A1c' -> 'hemoglobin_a1c', 'LDL-Cholesterol (Calc)' -> 'ldl_cholesterol_calc'.

    Idempotent: normalize_test_name(normalize_test_name(x)) == normalize_test_name(x)
    """
    normalized = _SEPARATORS.sub('_', (name or '').strip().lower())
    normalized = _UNDERSCORES.sub('_', normalized)
    return normalized.strip('_')


def _contains_either_way(name: str, candidate: str) -> bool:
    if len(candidate) >= MIN_CONTAINMENT_LENGTH and candidate in name:
        return True
    return len(name) >= MIN_CONTAINMENT_LENGTH and name in candidate


def _common_prefix_length(a: str, b: str) -> int:
    length = 0
    for x, y in zip(a, b):
        if x != y:
            break
        length += 1
    return length


def mapping_confidence(original: str, standard: str) -> float:
    """
    How closely the name on the document matches the canonical display name.

    1.0 for the same name, 0.8 when one contains the other, otherwise the
    shared-prefix ratio.
    """
    a = (original or '').lower().replace(' ', '')
    b = (standard or '').lower().replace(' ', '')
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.8
    return _common_prefix_length(a, b) / max(len(a), len(b))


class FuzzyParameterMatcher:
    """
    Namespace-aware lookup of canonical lab parameters.

    Catalog and synonym tables default to the packaged knowledge files;
    tests may inject their own.
    """

    def __init__(
        self,
        catalog: Optional[ParameterCatalog] = None,
        synonym_tables: Optional[Dict[TestType, SynonymTable]] = None,
    ):
        self.catalog = catalog or get_parameter_catalog()
        self.synonym_tables = synonym_tables if synonym_tables is not None else get_synonym_tables()
        self._namespace_keys: Dict[TestType, List[str]] = {
            test_type: self.catalog.keys_for(test_type) for test_type in TestType
        }

    def match(self, test_name: str, test_type: TestType) -> Optional[LabParameter]:
        normalized = normalize_test_name(test_name)
        if not normalized:
            return None

        key = (
            self._direct_match(normalized, test_type)
            or self._synonym_match(normalized, test_type)
            or self._substring_match(normalized, test_type)
        )
        if key is None:
            return None

        parameter = self.catalog.lookup(key)
        if parameter is None or parameter.test_type != test_type:
            logger.warning(
                f"Discarding cross-namespace match {test_name!r} -> {key} "
                f"for {test_type.value}"
            )
            return None

        return parameter

    def _direct_match(self, normalized: str, test_type: TestType) -> Optional[str]:
        parameter = self.catalog.lookup(normalized)
        if parameter is not None and parameter.test_type == test_type:
            return normalized
        return None

    def _synonym_match(self, normalized: str, test_type: TestType) -> Optional[str]:
        table = self.synonym_tables.get(test_type, [])

        for key, synonyms in table:
            if normalized in synonyms:
                return key

        # Tables are ordered most-specific-first, so the first hit wins
        for key, synonyms in table:
            if any(_contains_either_way(normalized, s) for s in synonyms):
                return key

        return None

    def _substring_match(self, normalized: str, test_type: TestType) -> Optional[str]:
        for key in self._namespace_keys[test_type]:
            if _contains_either_way(normalized, key):
                return key
        return None

    def map_value(self, raw: RawExtractedValue) -> Optional[StandardizedValue]:
        """
        Map a raw reading onto its canonical parameter.

        Unit and reference range fall back to the parameter defaults.
        Confidence is name similarity scaled by extraction confidence.
        """
        parameter = self.match(raw.test_name, raw.test_type)
        if parameter is None:
            logger.info(f"No {raw.test_type.value} parameter for {raw.test_name!r}; value dropped")
            return None

        confidence = mapping_confidence(raw.test_name, parameter.name) * raw.confidence

        return StandardizedValue(
            standard_key=parameter.key,
            standard_name=parameter.name,
            category=parameter.category,
            value=raw.value,
            test_type=raw.test_type,
            original_test_name=raw.test_name,
            unit=raw.unit or parameter.unit,
            reference_range=raw.reference_range or parameter.reference_range,
            is_abnormal=raw.is_abnormal,
            confidence=round(min(max(confidence, 0.0), 1.0), 4),
        )

    @log_performance(logger, "Map extracted values")
    def map_values(self, raw_values: List[RawExtractedValue]) -> List[StandardizedValue]:
        mapped = []
        for raw in raw_values:
            value = self.map_value(raw)
            if value is not None:
                mapped.append(value)
        logger.info(f"Mapped {len(mapped)}/{len(raw_values)} extracted values to catalog parameters")
        return mapped
