# ============================================================================
# src/lab_ingestion/constants/lab_parameters.py
# ============================================================================
"""
Standard Lab Parameter Catalog.

Canonical parameters and the curated synonym tables are JSON data assets
under knowledge/. Both are loaded once and shared read-only.

Keys are partitioned into two namespaces by category: urinalysis,
urine chemistry and urine microbiology form the urine namespace, every
other category is blood/serum.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..config import base_settings
from ..core.context import LabParameter, ParameterCategory, TestType, ValueType
from ..utils.exceptions import ConfigurationError
from ..utils.logging import log_performance

logger = logging.getLogger(__name__)


CATALOG_FILE = "lab_parameters.json"
SYNONYMS_FILE = "parameter_synonyms.json"

# (canonical key, synonyms) in match order
SynonymTable = List[Tuple[str, List[str]]]


def _read_json(path: Path) -> dict:
    if not path.exists():
        raise ConfigurationError(f"Knowledge file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot load knowledge file {path}: {e}") from e


class ParameterCatalog:
    """
    Read-only catalog of canonical lab parameters.

    Iteration and keys_for() keep the file order, which is the order the
    matcher's substring fallback walks.
    """

    def __init__(self, parameters: List[LabParameter]):
        self._parameters: Dict[str, LabParameter] = {}
        for parameter in parameters:
            if parameter.key in self._parameters:
                raise ConfigurationError(f"Duplicate parameter key: {parameter.key}")
            self._parameters[parameter.key] = parameter

    @classmethod
    @log_performance(logger, "Load parameter catalog")
    def from_file(cls, path: Path) -> "ParameterCatalog":
        data = _read_json(path)
        parameters = []
        for entry in data.get("parameters", []):
            try:
                parameters.append(LabParameter(
                    key=entry["key"],
                    name=entry["name"],
                    category=ParameterCategory(entry["category"]),
                    unit=entry.get("unit"),
                    reference_range=entry.get("reference_range"),
                    value_type=ValueType(entry.get("value_type", ValueType.NUMERIC.value)),
                    allows_negative=bool(entry.get("allows_negative", False)),
                    description=entry.get("description"),
                ))
            except (KeyError, ValueError) as e:
                raise ConfigurationError(f"Invalid parameter entry {entry!r} in {path}: {e}") from e

        if not parameters:
            raise ConfigurationError(f"Parameter catalog is empty: {path}")

        logger.info(f"Loaded {len(parameters)} lab parameters from {path.name}")
        return cls(parameters)

    def lookup(self, key: str) -> Optional[LabParameter]:
        return self._parameters.get(key)

    def all_keys(self) -> Set[str]:
        return set(self._parameters)

    def keys_for(self, test_type: TestType) -> List[str]:
        """Keys in the given namespace, in catalog order."""
        return [
            key for key, parameter in self._parameters.items()
            if parameter.test_type == test_type
        ]

    def __contains__(self, key: str) -> bool:
        return key in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self) -> Iterator[LabParameter]:
        return iter(self._parameters.values())


def load_synonym_tables(path: Path, catalog: ParameterCatalog) -> Dict[TestType, SynonymTable]:
    """
    Load the per-namespace synonym tables.

    Every canonical key must exist in the catalog and live in the
    namespace of the table that lists it.
    """
    data = _read_json(path)
    tables: Dict[TestType, SynonymTable] = {}

    for test_type in TestType:
        table: SynonymTable = []
        for entry in data.get(test_type.value, []):
            key = entry.get("key")
            parameter = catalog.lookup(key)
            if parameter is None:
                raise ConfigurationError(f"Synonym table references unknown key: {key}")
            if parameter.test_type != test_type:
                raise ConfigurationError(
                    f"Synonym key {key} is listed under {test_type.value} "
                    f"but belongs to {parameter.test_type.value}"
                )
            table.append((key, [s.lower() for s in entry.get("synonyms", [])]))
        tables[test_type] = table

    logger.debug(
        f"Loaded synonym tables: "
        + ", ".join(f"{t.value}={len(rows)}" for t, rows in tables.items())
    )
    return tables


@lru_cache(maxsize=1)
def get_parameter_catalog() -> ParameterCatalog:
    """Shared catalog loaded from the packaged knowledge file."""
    return ParameterCatalog.from_file(base_settings.KNOWLEDGE_DIR / CATALOG_FILE)


@lru_cache(maxsize=1)
def get_synonym_tables() -> Dict[TestType, SynonymTable]:
    """Shared synonym tables, validated against the shared catalog."""
    return load_synonym_tables(base_settings.KNOWLEDGE_DIR / SYNONYMS_FILE, get_parameter_catalog())
