# ============================================================================
# FILE: tests/unit/test_fuzzy_matcher.py
# ============================================================================
"""
Unit tests for namespace-aware parameter matching
"""

import pytest

from lab_ingestion.constants import ParameterCatalog
from lab_ingestion.core.context import (
    LabParameter,
    ParameterCategory,
    RawExtractedValue,
    TestType,
)
from lab_ingestion.mapping import (
    FuzzyParameterMatcher,
    mapping_confidence,
    normalize_test_name,
)


@pytest.fixture
def matcher():
    return FuzzyParameterMatcher()


@pytest.mark.parametrize("name, expected", [
    ("Hemoglobin A1c", "hemoglobin_a1c"),
    ("LDL-Cholesterol (Calc)", "ldl_cholesterol_calc"),
    ("  WBC  ", "wbc"),
    ("Free  T4", "free_t4"),
    ("--", ""),
])
def test_normalize_test_name(name, expected):
    assert normalize_test_name(name) == expected


@pytest.mark.parametrize("name", [
    "Hemoglobin A1c", "LDL-Cholesterol (Calc)", "__a__b__", "  (x) - (y)  ", "", "Vitamin D, 25-OH",
])
def test_normalize_is_idempotent(name):
    once = normalize_test_name(name)
    assert normalize_test_name(once) == once


@pytest.mark.parametrize("name, test_type, key", [
    ("HbA1c", TestType.BLOOD, "hemoglobin_a1c"),
    ("Hemoglobin A1c", TestType.BLOOD, "hemoglobin_a1c"),
    ("Glycosylated Hemoglobin", TestType.BLOOD, "hemoglobin_a1c"),
    ("Glycated Hemoglobin (HbA1c)", TestType.BLOOD, "hemoglobin_a1c"),
    ("Glucose", TestType.BLOOD, "glucose"),
    ("Glucose", TestType.URINE, "urine_glucose"),
    ("Protein", TestType.BLOOD, "total_protein"),
    ("Protein", TestType.URINE, "urine_protein"),
    ("Creatinine", TestType.BLOOD, "creatinine"),
    ("Creatinine", TestType.URINE, "urine_creatinine"),
    ("WBC", TestType.URINE, "urine_wbc"),
    ("LDL Cholesterol", TestType.BLOOD, "ldl_cholesterol"),
    ("Total Cholesterol", TestType.BLOOD, "cholesterol_total"),
    ("Hgb", TestType.BLOOD, "hemoglobin"),
])
def test_match(matcher, name, test_type, key):
    parameter = matcher.match(name, test_type)
    assert parameter is not None
    assert parameter.key == key


def test_no_match(matcher):
    assert matcher.match("Xyzzy Plugh", TestType.BLOOD) is None
    assert matcher.match("", TestType.BLOOD) is None


@pytest.mark.parametrize("name", [
    "Glucose", "Protein", "Creatinine", "WBC", "RBC", "Bilirubin", "Hemoglobin",
    "Specific Gravity", "pH", "Ketones", "Albumin", "Sodium", "Blood",
])
@pytest.mark.parametrize("test_type", list(TestType))
def test_namespace_isolation(matcher, name, test_type):
    """Test a match never leaves the requested namespace"""
    parameter = matcher.match(name, test_type)
    if parameter is not None:
        assert parameter.test_type == test_type


def test_cross_namespace_synonym_is_discarded():
    """Test the final namespace re-check with a hand-built table"""
    catalog = ParameterCatalog([
        LabParameter("urine_protein", "Urine Protein", ParameterCategory.URINALYSIS),
    ])
    tables = {
        TestType.BLOOD: [("urine_protein", ["protein"])],
        TestType.URINE: [],
    }
    matcher = FuzzyParameterMatcher(catalog=catalog, synonym_tables=tables)
    assert matcher.match("Protein", TestType.BLOOD) is None


def test_short_synonyms_only_match_exactly():
    """Test 'hb' does not claim every name containing those letters"""
    catalog = ParameterCatalog([
        LabParameter("hemoglobin", "Hemoglobin", ParameterCategory.COMPLETE_BLOOD_COUNT),
    ])
    tables = {TestType.BLOOD: [("hemoglobin", ["hb"])], TestType.URINE: []}
    matcher = FuzzyParameterMatcher(catalog=catalog, synonym_tables=tables)

    assert matcher.match("Hb", TestType.BLOOD).key == "hemoglobin"
    assert matcher.match("Thb Level", TestType.BLOOD) is None


def test_mapping_confidence():
    assert mapping_confidence("Glucose", "Glucose") == 1.0
    assert mapping_confidence("glucose", "Glucose") == 1.0
    assert mapping_confidence("Glucose Serum", "Glucose") == 0.8
    assert mapping_confidence("", "Glucose") == 0.0
    assert 0.0 <= mapping_confidence("HbA1c", "Hemoglobin A1c") < 0.8


def test_map_value_fills_catalog_defaults(matcher):
    raw = RawExtractedValue(test_name="Glucose", test_type=TestType.BLOOD, value="95")
    value = matcher.map_value(raw)

    assert value.standard_key == "glucose"
    assert value.standard_name == "Glucose"
    assert value.unit == "mg/dL"
    assert value.reference_range == "70-99"
    assert value.original_test_name == "Glucose"
    assert value.confidence == pytest.approx(0.8)
    assert value.test_type == TestType.BLOOD


def test_map_value_keeps_document_unit(matcher):
    raw = RawExtractedValue(
        test_name="Glucose", test_type=TestType.BLOOD, value="5.3",
        unit="mmol/L", reference_range="3.9-5.5", confidence=1.0,
    )
    value = matcher.map_value(raw)
    assert value.unit == "mmol/L"
    assert value.reference_range == "3.9-5.5"
    assert value.confidence == 1.0


def test_map_values_drops_unmatched(matcher):
    raws = [
        RawExtractedValue(test_name="Glucose", test_type=TestType.BLOOD, value="95"),
        RawExtractedValue(test_name="Xyzzy", test_type=TestType.BLOOD, value="1"),
        RawExtractedValue(test_name="Protein", test_type=TestType.URINE, value="Negative"),
    ]
    mapped = matcher.map_values(raws)
    assert [v.standard_key for v in mapped] == ["glucose", "urine_protein"]
