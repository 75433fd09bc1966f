# ============================================================================
# src/lab_ingestion/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings
from .llm_config import llm_settings
from .structuring_config import structuring_settings
from .pipeline_config import pipeline_settings
from .logging_config import logging_settings
