# ============================================================================
# src/lab_ingestion/config/llm_config.py
# ============================================================================
"""
Text Completion Backend Configuration
- Backend selection
- Ollama connection
- Sampling parameters
- Per-request timeout
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    LLM_BACKEND: str = Field(
        default="ollama",
        description="Completion backend used for lab value extraction"
    )
    OLLAMA_HOST: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    OLLAMA_MODEL: str = Field(
        default="llama3.2:3b",
        description="Model used for extraction prompts"
    )
    LLM_MAX_TOKENS: int = Field(
        default=2000,
        description="Maximum tokens generated per chunk"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.1,
        ge=0.0, le=2.0,
        description="Sampling temperature (low = deterministic line output)"
    )
    LLM_REQUEST_TIMEOUT: int = Field(
        default=120,
        description="Maximum seconds for a single completion call. A timeout only drops the chunk."
    )


llm_settings = LLMSettings()
