# ============================================================================
# src/lab_ingestion/core/processing_queue.py
# ============================================================================
"""
Document Processing Queue

Priority queue that drives documents through structuring and mapping
with bounded concurrency.

Per document:
    queued -> processing -> structure_document -> map_document
           -> save draft -> completed

Failures are retried with exponential backoff (base ** retry_count
seconds) by a delayed re-insertion task owned by the queue. After
max_retries failures the item is failed and its last error persisted.
ConfigurationError is fatal and never retried.

All queue state (ordered list, item map, in-flight tasks, retry tasks)
is mutated under a single asyncio.Lock.
"""

import asyncio
import dataclasses
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import pipeline_settings, structuring_settings
from ..extractors.structuring import DocumentStructuringService, structure_document
from ..utils.exceptions import ConfigurationError, StoreError
from .context import (
    DocumentStatus,
    HealthDocument,
    MappingResult,
    ProcessingPriority,
    ProcessingQueueItem,
    QueueItemStatus,
)
from .document_store import DocumentRecordStore
from .mapping_service import LabMappingService


logger = logging.getLogger(__name__)


class DocumentProcessingQueue:
    """
    Bounded-concurrency priority queue for document processing.

    Config options:
        max_concurrent: Documents processed at the same time
        max_retries: Failures before an item is marked failed
        backoff_base: Retry delay is backoff_base ** retry_count seconds
        structuring_timeout: Wall-clock budget for one structuring job
        poll_interval: Seconds between structuring status polls
        failed_history: Failed items kept for failed_items() and get_item()
    """

    def __init__(
        self,
        structuring_service: DocumentStructuringService,
        mapping_service: LabMappingService,
        store: DocumentRecordStore,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.config = config or {}
        self.structuring_service = structuring_service
        self.mapping_service = mapping_service
        self.store = store

        self.max_concurrent = self.config.get('max_concurrent', pipeline_settings.QUEUE_MAX_CONCURRENT)
        self.max_retries = self.config.get('max_retries', pipeline_settings.QUEUE_MAX_RETRIES)
        self.backoff_base = self.config.get('backoff_base', pipeline_settings.QUEUE_BACKOFF_BASE)
        self.structuring_timeout = self.config.get(
            'structuring_timeout', structuring_settings.STRUCTURING_TIMEOUT
        )
        self.poll_interval = self.config.get(
            'poll_interval', structuring_settings.STRUCTURING_POLL_INTERVAL
        )
        self.failed_history = self.config.get('failed_history', pipeline_settings.QUEUE_FAILED_HISTORY)

        self._lock = asyncio.Lock()
        self._queue: List[ProcessingQueueItem] = []
        # Active items only; completed ones are dropped once persisted
        self._items: Dict[str, ProcessingQueueItem] = {}
        self._failed: "OrderedDict[str, ProcessingQueueItem]" = OrderedDict()
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._retries: Dict[str, asyncio.Task] = {}
        self._running = False
        self._idle = asyncio.Event()
        self._idle.set()

        logger.info(
            f"Processing queue initialized (max_concurrent={self.max_concurrent}, "
            f"max_retries={self.max_retries})"
        )

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    async def add(
        self,
        document: HealthDocument,
        priority: ProcessingPriority = ProcessingPriority.NORMAL,
    ) -> ProcessingQueueItem:
        """
        Enqueue a document.

        Adding a document that is already queued, processing or waiting
        for a retry is a no-op and returns the existing item.
        """
        async with self._lock:
            existing = self._items.get(document.document_id)
            if existing is not None:
                logger.info(f"Document {document.document_id} already in queue ({existing.status.value})")
                return dataclasses.replace(existing)

            self._failed.pop(document.document_id, None)
            item = ProcessingQueueItem(document=document, priority=priority)
            self._items[item.document_id] = item
            self._insert(item)

            try:
                self.store.register_document(document, priority)
                self.store.update_status(item.document_id, DocumentStatus.QUEUED)
            except StoreError as e:
                logger.error(f"Could not persist queued status for {item.document_id}: {e}")

            logger.info(
                f"Queued {document.file_name} ({item.document_id}) "
                f"priority={priority.name}, position={self._queue.index(item) + 1}"
            )
            self._dispatch()
            self._update_idle()
            return dataclasses.replace(item)

    async def add_batch(
        self,
        documents: List[HealthDocument],
        priority: ProcessingPriority = ProcessingPriority.NORMAL,
    ) -> List[ProcessingQueueItem]:
        return [await self.add(document, priority) for document in documents]

    async def remove(self, document_id: str) -> bool:
        """
        Drop a document from the queue, cancelling in-flight work and any
        pending retry. Its persisted status goes back to pending.

        A permanently failed document is only forgotten; its persisted
        failure stays.
        """
        async with self._lock:
            if self._failed.pop(document_id, None) is not None:
                logger.info(f"Dropped failed item {document_id} from history")
                return True

            item = self._items.get(document_id)
            if item is None:
                return False

            self._cancel(document_id)
            self._queue = [q for q in self._queue if q.document_id != document_id]
            del self._items[document_id]
            self._persist_status(document_id, DocumentStatus.PENDING)

            logger.info(f"Removed {document_id} from queue")
            self._dispatch()
            self._update_idle()
            return True

    async def clear(self) -> int:
        """
        Cancel all work and reset every queued document to pending. Also
        forgets the failed-item history. Returns the number of active
        documents cleared.
        """
        async with self._lock:
            active = list(self._items)
            for document_id in active:
                self._cancel(document_id)
                self._persist_status(document_id, DocumentStatus.PENDING)
            self._items.clear()
            self._failed.clear()
            self._queue.clear()

            logger.info(f"Cleared {len(active)} documents from queue")
            self._update_idle()
            return len(active)

    async def start(self):
        async with self._lock:
            self._running = True
            logger.info(f"Processing queue started ({len(self._queue)} waiting)")
            self._dispatch()
            self._update_idle()

    async def stop(self):
        """Stop dispatching new work. In-flight documents run to completion."""
        async with self._lock:
            self._running = False
            logger.info("Processing queue stopped")
            self._update_idle()

    async def join(self):
        """Wait until no work is in flight and nothing dispatchable remains."""
        await self._idle.wait()

    async def recover(self) -> int:
        """Re-enqueue documents persisted as queued or processing."""
        documents = self.store.fetch_queued()
        for document, priority in documents:
            await self.add(document, priority)
        logger.info(f"Recovered {len(documents)} documents from the store")
        return len(documents)

    async def process_immediately(self, document: HealthDocument) -> MappingResult:
        """
        Process one document outside the queue (no concurrency slot, no retry).

        Raises whatever the pipeline raises, after persisting the failure.
        """
        self.store.register_document(document, ProcessingPriority.URGENT)
        self.store.update_status(document.document_id, DocumentStatus.PROCESSING)
        try:
            result = await self._process(document)
        except Exception as e:
            self._persist_status(document.document_id, DocumentStatus.FAILED, _describe(e))
            raise
        self._persist_status(document.document_id, DocumentStatus.COMPLETED)
        return result

    def snapshot(self) -> List[ProcessingQueueItem]:
        """Copies of all active items: processing, then queued in order, then retrying."""
        processing = [i for i in self._items.values() if i.status == QueueItemStatus.PROCESSING]
        retrying = [i for i in self._items.values() if i.status == QueueItemStatus.RETRYING]
        return [dataclasses.replace(i) for i in processing + self._queue + retrying]

    def get_item(self, document_id: str) -> Optional[ProcessingQueueItem]:
        """Copy of an active or recently failed item. Completed items are not kept."""
        item = self._items.get(document_id) or self._failed.get(document_id)
        return dataclasses.replace(item) if item is not None else None

    def failed_items(self) -> List[ProcessingQueueItem]:
        """Most recent permanent failures, oldest first."""
        return [dataclasses.replace(i) for i in self._failed.values()]

    @property
    def is_running(self) -> bool:
        return self._running

    # ========================================================================
    # SCHEDULING (callers hold the lock)
    # ========================================================================

    def _insert(self, item: ProcessingQueueItem):
        # Before the first lower-priority item: FIFO among equals
        index = next(
            (i for i, queued in enumerate(self._queue) if queued.priority < item.priority),
            len(self._queue),
        )
        self._queue.insert(index, item)

    def _dispatch(self):
        if not self._running:
            return
        while self._queue and len(self._in_flight) < self.max_concurrent:
            item = self._queue.pop(0)
            item.status = QueueItemStatus.PROCESSING
            item.started_at = datetime.now()
            self._in_flight[item.document_id] = asyncio.create_task(self._run(item))

    def _cancel(self, document_id: str):
        task = self._in_flight.pop(document_id, None)
        if task is not None:
            task.cancel()
        retry = self._retries.pop(document_id, None)
        if retry is not None:
            retry.cancel()

    def _update_idle(self):
        busy = self._in_flight or self._retries or (self._queue and self._running)
        if busy:
            self._idle.clear()
        else:
            self._idle.set()

    def _owns(self, registry: Dict[str, asyncio.Task], document_id: str) -> bool:
        return registry.get(document_id) is asyncio.current_task()

    def _persist_status(self, document_id: str, status: DocumentStatus, error: Optional[str] = None):
        # In-memory queue state stays authoritative when the store is unavailable
        try:
            self.store.update_status(document_id, status, error)
        except StoreError as e:
            logger.error(f"Could not persist status {status.value} for {document_id}: {e}")

    # ========================================================================
    # WORKERS
    # ========================================================================

    async def _run(self, item: ProcessingQueueItem):
        document_id = item.document_id
        try:
            self._persist_status(document_id, DocumentStatus.PROCESSING)
            logger.info(
                f"Processing {item.document.file_name} (attempt {item.retry_count + 1})",
                extra={"document_id": document_id},
            )
            await self._process(item.document)
        except asyncio.CancelledError:
            logger.info(f"Processing of {document_id} cancelled")
            raise
        except Exception as e:
            async with self._lock:
                if self._owns(self._in_flight, document_id):
                    self._handle_failure(item, e)
        else:
            async with self._lock:
                if self._owns(self._in_flight, document_id):
                    item.status = QueueItemStatus.COMPLETED
                    item.completed_at = datetime.now()
                    item.last_error = None
                    self._persist_status(document_id, DocumentStatus.COMPLETED)
                    del self._items[document_id]
                    logger.info(
                        f"Completed {item.document.file_name} ({document_id})",
                        extra={"document_id": document_id},
                    )
        finally:
            async with self._lock:
                if self._owns(self._in_flight, document_id):
                    del self._in_flight[document_id]
                self._dispatch()
                self._update_idle()

    async def _process(self, document: HealthDocument) -> MappingResult:
        content = document.read_bytes()
        text = await structure_document(
            self.structuring_service,
            content,
            document.mime_hint,
            timeout=self.structuring_timeout,
            poll_interval=self.poll_interval,
        )
        result = await self.mapping_service.map_document(text)
        self.store.save_draft_mapping_result(document.document_id, result)
        return result

    def _handle_failure(self, item: ProcessingQueueItem, error: Exception):
        item.retry_count += 1
        item.last_error = _describe(error)
        fatal = isinstance(error, ConfigurationError)

        if not fatal and item.retry_count < self.max_retries:
            delay = self.backoff_base ** item.retry_count
            item.status = QueueItemStatus.RETRYING
            # Persisted as queued so a restart picks it up again
            self._persist_status(item.document_id, DocumentStatus.QUEUED, item.last_error)
            self._retries[item.document_id] = asyncio.create_task(self._retry_after(item, delay))
            logger.warning(
                f"Processing {item.document_id} failed ({item.last_error}); "
                f"retry {item.retry_count}/{self.max_retries - 1} in {delay:g}s",
                extra={"document_id": item.document_id},
            )
            return

        item.status = QueueItemStatus.FAILED
        item.completed_at = datetime.now()
        self._persist_status(item.document_id, DocumentStatus.FAILED, item.last_error)
        self._keep_draft(item)
        self._remember_failure(item)
        logger.error(
            f"Processing {item.document_id} failed permanently after "
            f"{item.retry_count} attempts: {item.last_error}",
            extra={"document_id": item.document_id},
        )

    def _keep_draft(self, item: ProcessingQueueItem):
        # A failed document still gets a (possibly empty) draft for review
        try:
            if self.store.get_draft_mapping_result(item.document_id) is None:
                self.store.save_draft_mapping_result(
                    item.document_id, self.mapping_service.empty_result(item.last_error)
                )
        except StoreError as e:
            logger.error(f"Could not save placeholder draft for {item.document_id}: {e}")

    def _remember_failure(self, item: ProcessingQueueItem):
        del self._items[item.document_id]
        if self.failed_history <= 0:
            return
        self._failed[item.document_id] = item
        while len(self._failed) > self.failed_history:
            self._failed.popitem(last=False)

    async def _retry_after(self, item: ProcessingQueueItem, delay: float):
        await asyncio.sleep(delay)
        async with self._lock:
            if not self._owns(self._retries, item.document_id):
                return
            del self._retries[item.document_id]
            item.status = QueueItemStatus.QUEUED
            self._insert(item)
            self._dispatch()
            self._update_idle()


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
