# ============================================================================
# src/lab_ingestion/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .lab_parameters import (
    ParameterCatalog,
    SynonymTable,
    get_parameter_catalog,
    get_synonym_tables,
    load_synonym_tables,
)
