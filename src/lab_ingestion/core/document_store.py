# ============================================================================
# src/lab_ingestion/core/document_store.py
# ============================================================================
"""
Document Store

Persists document status, draft mapping results and reviewed lab reports
to SQLite so queue state survives restarts. Raw sqlite3, JSON for complex
fields, last write wins.
"""

from abc import ABC, abstractmethod
import sqlite3
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from datetime import datetime

from ..config import base_settings
from .context import (
    DocumentStatus,
    HealthDocument,
    LabReport,
    MappingResult,
    ProcessingPriority,
)
from ..mapping.reconciliation import apply_review
from ..utils.exceptions import StoreError

logger = logging.getLogger(__name__)


class DocumentRecordStore(ABC):
    """Status durability and crash recovery for the processing queue."""

    @abstractmethod
    def register_document(
        self,
        document: HealthDocument,
        priority: ProcessingPriority = ProcessingPriority.NORMAL,
    ) -> None:
        """Insert or refresh the document row (path, mime type, priority)."""
        pass

    @abstractmethod
    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    def save_draft_mapping_result(self, document_id: str, result: MappingResult) -> None:
        pass

    @abstractmethod
    def get_draft_mapping_result(self, document_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def save_lab_report(self, document_id: str, report: LabReport) -> None:
        pass

    @abstractmethod
    def fetch_queued(self) -> List[Tuple[HealthDocument, ProcessingPriority]]:
        """Documents that were queued or mid-processing when the process stopped."""
        pass

    def complete_review(self, document_id: str, selections: Dict[str, Optional[str]]) -> LabReport:
        """
        Apply reviewer selections to the stored draft and persist the
        resulting lab report as the authoritative record.

        Args:
            document_id: Document whose draft is reviewed
            selections: {group_id: candidate_id or None}

        Raises:
            StoreError: no draft stored for the document
            ValueError: selection outside the draft's import groups
        """
        data = self.get_draft_mapping_result(document_id)
        if data is None:
            raise StoreError(f"No draft mapping result for {document_id}")

        draft = MappingResult.from_dict(data)
        report = apply_review(draft, selections)

        # Draft keeps the recorded selections for a later re-review
        self.save_draft_mapping_result(document_id, draft)
        self.save_lab_report(document_id, report)
        return report


class SQLiteDocumentStore(DocumentRecordStore):
    """
    SQLite-backed document record store.

    One row per document; the draft MappingResult and the reviewed
    LabReport are stored as JSON.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or base_settings.DOCUMENT_DB_PATH)
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open document store {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Document store operation failed: {e}") from e
        finally:
            conn.close()

    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    document_id     TEXT PRIMARY KEY,
                    file_name       TEXT NOT NULL,
                    file_path       TEXT NOT NULL,
                    mime_type       TEXT,
                    priority        INTEGER NOT NULL DEFAULT 2,
                    status          TEXT NOT NULL DEFAULT 'pending',
                    last_error      TEXT,
                    created_at      TEXT NOT NULL,
                    updated_at      TEXT NOT NULL,
                    -- MappingResult.to_dict() awaiting review
                    draft_result    TEXT,
                    -- LabReport.to_dict() after review
                    lab_report      TEXT
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_status
                ON documents (status)
            """)
        logger.info(f"Document store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def register_document(
        self,
        document: HealthDocument,
        priority: ProcessingPriority = ProcessingPriority.NORMAL,
    ) -> None:
        now = datetime.now().isoformat()
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO documents
                    (document_id, file_name, file_path, mime_type, priority,
                     status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(document_id) DO UPDATE SET
                    file_name = excluded.file_name,
                    file_path = excluded.file_path,
                    mime_type = excluded.mime_type,
                    priority = excluded.priority,
                    updated_at = excluded.updated_at
            """, (
                document.document_id,
                document.file_name,
                str(document.file_path),
                document.mime_type,
                int(priority),
                DocumentStatus.PENDING.value,
                now,
                now,
            ))

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error: Optional[str] = None,
    ) -> None:
        with self._connect() as conn:
            cur = conn.execute("""
                UPDATE documents
                SET status = ?, last_error = ?, updated_at = ?
                WHERE document_id = ?
            """, (status.value, error, datetime.now().isoformat(), document_id))
            if cur.rowcount == 0:
                raise StoreError(f"Unknown document: {document_id}")
        logger.debug(f"Document {document_id} -> {status.value}")

    def save_draft_mapping_result(self, document_id: str, result: MappingResult) -> None:
        self._save_json(document_id, "draft_result", result.to_dict())
        logger.info(f"Saved draft mapping result for {document_id}: {result.summary}")

    def save_lab_report(self, document_id: str, report: LabReport) -> None:
        self._save_json(document_id, "lab_report", report.to_dict())
        logger.info(f"Saved reviewed lab report for {document_id}: {report.summary}")

    def _save_json(self, document_id: str, column: str, payload: Dict[str, Any]):
        # column is one of two fixed names, never user input
        with self._connect() as conn:
            cur = conn.execute(
                f"UPDATE documents SET {column} = ?, updated_at = ? WHERE document_id = ?",
                (json.dumps(payload, default=str), datetime.now().isoformat(), document_id),
            )
            if cur.rowcount == 0:
                raise StoreError(f"Unknown document: {document_id}")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get_status(self, document_id: str) -> Optional[Tuple[DocumentStatus, Optional[str]]]:
        """(status, last_error) or None for an unknown document."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT status, last_error FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        if row is None:
            return None
        return DocumentStatus(row[0]), row[1]

    def get_draft_mapping_result(self, document_id: str) -> Optional[Dict[str, Any]]:
        return self._load_json(document_id, "draft_result")

    def get_lab_report(self, document_id: str) -> Optional[Dict[str, Any]]:
        return self._load_json(document_id, "lab_report")

    def _load_json(self, document_id: str, column: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {column} FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        if row is None or row[0] is None:
            return None
        return json.loads(row[0])

    def fetch_queued(self) -> List[Tuple[HealthDocument, ProcessingPriority]]:
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT document_id, file_path, mime_type, priority
                FROM documents
                WHERE status IN (?, ?)
                ORDER BY priority DESC, created_at ASC
            """, (DocumentStatus.QUEUED.value, DocumentStatus.PROCESSING.value)).fetchall()

        return [
            (
                HealthDocument(document_id=row[0], file_path=Path(row[1]), mime_type=row[2]),
                ProcessingPriority(row[3]),
            )
            for row in rows
        ]
