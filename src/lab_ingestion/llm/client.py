# ============================================================================
# src/lab_ingestion/llm/client.py
# ============================================================================
"""
Completion Client Factory

Usage:
    from lab_ingestion.llm.client import create_client

    client = create_client({'backend': 'ollama'})
    text = await client.complete("...")
"""

from typing import Dict, Any, Optional
import logging

from .base import TextCompletionService, BackendType
from .ollama_client import OllamaCompletionClient
from ..config import llm_settings
from ..utils.exceptions import ConfigurationError


_logger = logging.getLogger(__name__)


def create_client(config: Optional[Dict[str, Any]] = None) -> TextCompletionService:
    """
    Create the configured completion backend.

    Passed config values take precedence over LLM_* settings.

    Raises:
        ConfigurationError: backend missing or not supported
    """
    config = dict(config or {})
    backend = config.get('backend', llm_settings.LLM_BACKEND)

    if not backend:
        raise ConfigurationError("No completion backend configured (LLM_BACKEND is empty)")

    backend = backend.lower()

    if backend == BackendType.OLLAMA.value:
        client = OllamaCompletionClient(config)
    else:
        raise ConfigurationError(
            f"Unknown completion backend: {backend}. "
            f"Supported backends: {', '.join(b.value for b in BackendType)}"
        )

    _logger.info(f"Created {backend} completion client ({client.model_name})")
    return client
