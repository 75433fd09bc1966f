# ============================================================================
# FILE: tests/unit/test_catalog.py
# ============================================================================
"""
Unit tests for the parameter catalog, synonym tables and namespace enums
"""

import json

import pytest

from lab_ingestion.constants import (
    ParameterCatalog,
    get_synonym_tables,
    load_synonym_tables,
)
from lab_ingestion.core.context import (
    LabParameter,
    ParameterCategory,
    TestType,
)
from lab_ingestion.utils.exceptions import ConfigurationError


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_catalog_loads_packaged_parameters(catalog):
    """Test the packaged catalog has the core chemistry entries"""
    glucose = catalog.lookup("glucose")
    assert glucose is not None
    assert glucose.name == "Glucose"
    assert glucose.unit == "mg/dL"
    assert glucose.test_type == TestType.BLOOD
    assert "hemoglobin_a1c" in catalog
    assert len(catalog) > 100


def test_catalog_special_entries(catalog):
    """Test negative-allowed and qualitative parameters"""
    assert catalog.lookup("base_excess").allows_negative
    assert not catalog.lookup("glucose").allows_negative
    assert not catalog.lookup("abo_blood_type").is_numeric
    assert catalog.lookup("sodium").is_numeric


def test_urine_namespace_is_prefixed(catalog):
    """Test every urine key lives in a urine category"""
    urine_keys = catalog.keys_for(TestType.URINE)
    assert urine_keys
    assert all(key.startswith("urine_") for key in urine_keys)
    assert not set(urine_keys) & set(catalog.keys_for(TestType.BLOOD))


def test_synonym_tables_reference_catalog_keys(catalog):
    """Test every synonym target exists and sits in its table's namespace"""
    tables = get_synonym_tables()
    for test_type, table in tables.items():
        for key, synonyms in table:
            assert catalog.lookup(key).test_type == test_type
            assert all(s == s.lower() for s in synonyms)


def test_catalog_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ParameterCatalog.from_file(tmp_path / "missing.json")


def test_catalog_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ParameterCatalog.from_file(path)


def test_catalog_empty(tmp_path):
    path = _write(tmp_path / "empty.json", {"version": 1, "parameters": []})
    with pytest.raises(ConfigurationError):
        ParameterCatalog.from_file(path)


def test_catalog_bad_category(tmp_path):
    path = _write(tmp_path / "bad.json", {
        "parameters": [{"key": "x", "name": "X", "category": "not_a_category"}]
    })
    with pytest.raises(ConfigurationError):
        ParameterCatalog.from_file(path)


def test_catalog_duplicate_keys():
    param = LabParameter("glucose", "Glucose", ParameterCategory.GENERAL_CHEMISTRY)
    with pytest.raises(ConfigurationError):
        ParameterCatalog([param, param])


def test_synonyms_unknown_key(tmp_path, catalog):
    path = _write(tmp_path / "syn.json", {"BLOOD": [{"key": "no_such_key", "synonyms": ["x"]}]})
    with pytest.raises(ConfigurationError):
        load_synonym_tables(path, catalog)


def test_synonyms_cross_namespace_key(tmp_path, catalog):
    """Test a urine key listed under BLOOD is rejected"""
    path = _write(tmp_path / "syn.json", {"BLOOD": [{"key": "urine_protein", "synonyms": ["protein"]}]})
    with pytest.raises(ConfigurationError):
        load_synonym_tables(path, catalog)


@pytest.mark.parametrize("label, expected", [
    ("BLOOD", TestType.BLOOD),
    ("serum", TestType.BLOOD),
    ("Plasma", TestType.BLOOD),
    ("urine", TestType.URINE),
    ("UA", TestType.URINE),
])
def test_test_type_parse(label, expected):
    assert TestType.parse(label) == expected


def test_test_type_parse_unknown():
    with pytest.raises(ValueError):
        TestType.parse("STOOL")


def test_category_namespaces():
    assert ParameterCategory.URINALYSIS.test_type == TestType.URINE
    assert ParameterCategory.URINE_MICROBIOLOGY.test_type == TestType.URINE
    assert ParameterCategory.LIPID_PANEL.test_type == TestType.BLOOD
    assert ParameterCategory.OTHER.test_type == TestType.BLOOD
