# ============================================================================
# src/lab_ingestion/config/pipeline_config.py
# ============================================================================
"""
Pipeline Settings
- Queue concurrency and retry policy
- Chunking budget for extraction prompts
- Review policy thresholds
- Plausibility envelope
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    QUEUE_MAX_CONCURRENT: int = Field(
        default=3,
        ge=1,
        description="Maximum documents processed simultaneously"
    )
    QUEUE_MAX_RETRIES: int = Field(
        default=3,
        ge=1,
        description="Attempts per document before it is marked failed"
    )
    QUEUE_BACKOFF_BASE: float = Field(
        default=2.0,
        gt=0,
        description="Retry delay is QUEUE_BACKOFF_BASE ** retry_count seconds"
    )
    QUEUE_FAILED_HISTORY: int = Field(
        default=100,
        ge=0,
        description="Permanently failed items the queue remembers for inspection"
    )
    EXTRACTION_CHUNK_SIZE: int = Field(
        default=4000,
        ge=200,
        description="Maximum characters per extraction chunk (on-device LLM safe)"
    )
    EXTRACTION_DEFAULT_CONFIDENCE: float = Field(
        default=0.8,
        ge=0.0, le=1.0,
        description="Confidence assigned to each parsed AI line"
    )
    REVIEW_RECOMMENDED_CONFIDENCE: float = Field(
        default=0.7,
        ge=0.0, le=1.0,
        description="Valid candidates above this confidence are flagged as recommended"
    )
    REVIEW_AUTO_SELECT_UNAMBIGUOUS: bool = Field(
        default=False,
        description="Pre-select a group's only candidate when it is valid and recommended. Off = always review."
    )
    PLAUSIBILITY_HIGH_MULTIPLIER: float = Field(
        default=100.0,
        gt=1.0,
        description="Values above this multiple of the upper reference bound are rejected"
    )


pipeline_settings = PipelineSettings()
