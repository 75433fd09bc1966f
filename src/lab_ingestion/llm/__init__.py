# ============================================================================
# src/lab_ingestion/llm/__init__.py
# ============================================================================
"""
Text completion backends used for lab value extraction.
"""

from .base import TextCompletionService, BackendType
from .ollama_client import OllamaCompletionClient
from .client import create_client
from .prompts import (
    LabPrompts,
    PromptTemplate,
    PromptTask,
    EXTRACTION_HEADER,
    create_extraction_prompt,
    create_document_info_prompt,
)

__all__ = [
    "TextCompletionService",
    "BackendType",
    "OllamaCompletionClient",
    "create_client",
    "LabPrompts",
    "PromptTemplate",
    "PromptTask",
    "EXTRACTION_HEADER",
    "create_extraction_prompt",
    "create_document_info_prompt",
]
