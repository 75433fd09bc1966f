# ============================================================================
# src/lab_ingestion/config/base_config.py
# ============================================================================
"""
Base Configuration
- Project root
- Data directory and document database
- Knowledge assets (parameter catalog, synonym tables)
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseSettingsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Root project directory
    PROJECT_ROOT: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent.parent,
        description="Root directory of the project"
    )

    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Directory for local databases"
    )

    # Status durability + draft mapping results
    DOCUMENT_DB_PATH: Path = Field(
        default=Path("data/documents.db"),
        description="SQLite database holding document status and draft mapping results"
    )

    # Packaged data assets
    KNOWLEDGE_DIR: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent / "knowledge",
        description="Parameter catalog and synonym tables (JSON)"
    )

    def create_directories(self):
        """Create all necessary directories if they don't exist"""
        dirs = [
            self.DATA_DIR,
            self.DOCUMENT_DB_PATH.parent,
        ]
        for directory in dirs:
            directory.mkdir(parents=True, exist_ok=True)


# Global instance
base_settings = BaseSettingsConfig()
