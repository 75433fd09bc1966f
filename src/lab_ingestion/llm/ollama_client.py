# ============================================================================
# src/lab_ingestion/llm/ollama_client.py
# ============================================================================
"""
Ollama Completion Client

Uses a local Ollama server for extraction prompts. Each call is capped
by a per-request timeout so one slow chunk cannot stall a document.

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull model: ollama pull llama3.2:3b
    3. Start server: ollama serve (or it runs automatically)
"""

import aiohttp
import asyncio
from typing import Dict, Any, Optional
from datetime import datetime

from .base import TextCompletionService, BackendType
from ..config import llm_settings
from ..utils.exceptions import CompletionError


class OllamaCompletionClient(TextCompletionService):
    """
    Ollama-based completion client.

    Config options:
        ollama_host: Ollama server URL
        ollama_model: Model name
        max_tokens: Max tokens per completion
        temperature: Sampling temperature
        request_timeout: Seconds allowed for one completion call
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.host = self.config.get('ollama_host', llm_settings.OLLAMA_HOST).rstrip('/')
        self._model_name = self.config.get('ollama_model', llm_settings.OLLAMA_MODEL)

        self.max_tokens = self.config.get('max_tokens', llm_settings.LLM_MAX_TOKENS)
        self.temperature = self.config.get('temperature', llm_settings.LLM_TEMPERATURE)
        self.request_timeout = self.config.get('request_timeout', llm_settings.LLM_REQUEST_TIMEOUT)

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama client: {self.host} / {self._model_name}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return self._model_name

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()

            timeout = aiohttp.ClientTimeout(
                total=None,       # bounded per request by asyncio.wait_for
                sock_connect=30,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def complete(self, prompt: str) -> str:
        start_time = datetime.now()
        session = await self._get_session()

        payload = {
            "model": self._model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            }
        }

        async def _do_request():
            async with session.post(f"{self.host}/api/generate", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise CompletionError(f"Ollama error ({response.status}): {error_text}")
                return await response.json()

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            self.logger.error(
                f"Ollama request timed out after {self.request_timeout}s "
                f"(model={self._model_name})"
            )
            raise CompletionError(
                f"Completion timed out after {self.request_timeout}s"
            ) from e
        except aiohttp.ClientConnectorError as e:
            raise CompletionError(
                f"Cannot connect to Ollama at {self.host}. "
                "Make sure Ollama is running: ollama serve"
            ) from e
        except aiohttp.ClientError as e:
            raise CompletionError(f"Ollama request failed: {e}") from e

        inference_time = (datetime.now() - start_time).total_seconds()
        self._inference_count += 1
        self._total_inference_time += inference_time

        self.logger.debug(
            f"Generated {data.get('eval_count', 0)} tokens in {inference_time:.2f}s"
        )
        return data.get('response', '')

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats["backend"] = self.backend_type.value
        stats["ollama_host"] = self.host
        return stats
