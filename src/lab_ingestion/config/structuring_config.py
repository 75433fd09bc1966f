# ============================================================================
# src/lab_ingestion/config/structuring_config.py
# ============================================================================
"""
Document Structuring (OCR) Service Configuration
- Service endpoint
- Submit/poll wall-clock budget
- Poll interval
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StructuringSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DOCLING_HOST: str = Field(
        default="http://localhost:8080",
        description="Base URL of the document structuring service"
    )
    STRUCTURING_TIMEOUT: float = Field(
        default=600.0,
        gt=0,
        description="Total seconds allowed for one submit/poll/fetch cycle (large documents)"
    )
    STRUCTURING_POLL_INTERVAL: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between status polls"
    )
    STRUCTURING_REQUEST_TIMEOUT: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for each individual HTTP request"
    )


structuring_settings = StructuringSettings()
