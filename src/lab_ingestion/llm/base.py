# ============================================================================
# src/lab_ingestion/llm/base.py
# ============================================================================
"""
Base Text Completion Interface

Defines the abstract interface every completion backend implements.
The extraction pipeline depends only on this interface; the concrete
backend is injected.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from enum import Enum
import logging


class BackendType(Enum):
    """Supported completion backends."""
    OLLAMA = "ollama"    # Ollama server


class TextCompletionService(ABC):
    """
    Abstract base class for text completion backends.

    All backends must implement:
    - complete(): Async prompt -> text
    - model_name: identifier recorded on every MappingResult
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        # Common statistics
        self._inference_count = 0
        self._total_inference_time = 0.0

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Return the raw completion text for a prompt.

        Raises:
            CompletionError: backend unreachable, non-200 reply or timeout
        """
        pass

    async def close(self):
        """Release network resources. Default: nothing to release."""
        return None

    def get_statistics(self) -> Dict[str, Any]:
        """Get inference statistics."""
        avg_time = (
            self._total_inference_time / self._inference_count
            if self._inference_count > 0
            else 0.0
        )
        return {
            "model": self.model_name,
            "inference_count": self._inference_count,
            "total_inference_time": self._total_inference_time,
            "avg_inference_time": avg_time,
        }
