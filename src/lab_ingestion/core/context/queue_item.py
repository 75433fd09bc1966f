# ============================================================================
# src/lab_ingestion/core/context/queue_item.py
# ============================================================================
"""
Queue-side records
- HealthDocument: the document reference handed to the queue
- ProcessingQueueItem: one document's journey through the queue
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional
import mimetypes

from .enums import ProcessingPriority, QueueItemStatus
from ...utils.exceptions import DocumentReadError


@dataclass(frozen=True)
class HealthDocument:
    document_id: str
    file_path: Path
    mime_type: Optional[str] = None

    @property
    def file_name(self) -> str:
        return self.file_path.name

    @property
    def mime_hint(self) -> str:
        if self.mime_type:
            return self.mime_type
        guessed, _ = mimetypes.guess_type(self.file_path.name)
        return guessed or "application/octet-stream"

    def read_bytes(self) -> bytes:
        try:
            content = self.file_path.read_bytes()
        except OSError as e:
            raise DocumentReadError(f"Cannot read {self.file_path}: {e}") from e
        if not content:
            raise DocumentReadError(f"Document is empty: {self.file_path}")
        return content


@dataclass
class ProcessingQueueItem:
    document: HealthDocument
    priority: ProcessingPriority = ProcessingPriority.NORMAL
    added_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: QueueItemStatus = QueueItemStatus.QUEUED
    retry_count: int = 0
    last_error: Optional[str] = None

    @property
    def document_id(self) -> str:
        return self.document.document_id

    @property
    def is_terminal(self) -> bool:
        return self.status in (QueueItemStatus.COMPLETED, QueueItemStatus.FAILED)
