# ============================================================================
# src/lab_ingestion/extractors/structuring.py
# ============================================================================
"""
Document Structuring (OCR) Interface

External services turn a PDF or image into text through an asynchronous
job: submit -> poll status -> fetch result. structure_document() drives
that cycle under one wall-clock budget.
"""

from abc import ABC, abstractmethod
from enum import Enum
import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from ..utils.exceptions import StructuringJobFailedError, StructuringTimeoutError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DocumentStructuringService(ABC):
    """Submit/poll/fetch contract for OCR and layout services."""

    @abstractmethod
    async def submit(self, content: bytes, mime_hint: str) -> str:
        """Start a job and return its id."""
        pass

    @abstractmethod
    async def poll_status(self, job_id: str) -> JobStatus:
        pass

    @abstractmethod
    async def fetch_result(self, job_id: str) -> str:
        """Return the structured document text of a succeeded job."""
        pass

    async def close(self):
        return None


async def structure_document(
    service: DocumentStructuringService,
    content: bytes,
    mime_hint: str,
    timeout: float,
    poll_interval: float,
) -> str:
    """
    Run one submit/poll/fetch cycle.

    Every service call is bounded by what is left of `timeout`, so a hung
    request cannot outlive the budget.

    Raises:
        StructuringTimeoutError: the job did not finish within `timeout` seconds
        StructuringJobFailedError: the service reported the job as failed
    """
    started = time.monotonic()
    deadline = started + timeout
    job_id = None

    async def bounded(call: Callable[[], Awaitable[T]]) -> T:
        remaining = deadline - time.monotonic()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError()
            return await asyncio.wait_for(call(), remaining)
        except asyncio.TimeoutError as e:
            raise StructuringTimeoutError(
                f"Structuring job {job_id or '(unsubmitted)'} did not finish within {timeout:g}s",
                job_id=job_id,
                timeout=timeout,
            ) from e

    job_id = await bounded(lambda: service.submit(content, mime_hint))
    logger.info(f"Structuring job {job_id} submitted ({len(content)} bytes, {mime_hint})")

    while True:
        status = await bounded(lambda: service.poll_status(job_id))

        if status == JobStatus.SUCCEEDED:
            text = await bounded(lambda: service.fetch_result(job_id))
            logger.info(
                f"Structuring job {job_id} finished in {time.monotonic() - started:.1f}s "
                f"({len(text)} characters)"
            )
            return text

        if status == JobStatus.FAILED:
            raise StructuringJobFailedError(f"Structuring job {job_id} failed", job_id=job_id)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise StructuringTimeoutError(
                f"Structuring job {job_id} did not finish within {timeout:g}s",
                job_id=job_id,
                timeout=timeout,
            )

        await asyncio.sleep(min(poll_interval, remaining))
