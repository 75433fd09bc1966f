# ============================================================================
# src/lab_ingestion/extractors/docling_client.py
# ============================================================================
"""
Docling Structuring Client

HTTP client for a Docling document-conversion server:
    POST api/v1/submit          multipart upload -> {"job_id": ...}
    GET  api/v1/status/{job_id} -> {"status": "pending|processing|completed|failed"}
    GET  api/v1/result/{job_id} -> {"extracted_text": ...}
"""

import aiohttp
import asyncio
from typing import Dict, Any, Optional
import logging

from .structuring import DocumentStructuringService, JobStatus
from ..config import structuring_settings
from ..utils.exceptions import StructuringError


_STATUS_MAP = {
    "pending": JobStatus.PENDING,
    "queued": JobStatus.PENDING,
    "processing": JobStatus.PENDING,
    "running": JobStatus.PENDING,
    "completed": JobStatus.SUCCEEDED,
    "succeeded": JobStatus.SUCCEEDED,
    "success": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}


class DoclingClient(DocumentStructuringService):
    """
    Config options:
        docling_host: Server URL
        request_timeout: Seconds allowed for each HTTP request
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self.host = self.config.get('docling_host', structuring_settings.DOCLING_HOST).rstrip('/')
        self.request_timeout = self.config.get(
            'request_timeout', structuring_settings.STRUCTURING_REQUEST_TIMEOUT
        )

        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        current_loop = asyncio.get_running_loop()
        if self._session is None or self._session.closed or self._session_loop is not current_loop:
            if self._session is not None and not self._session.closed:
                await self._session.close()
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
            self._session_loop = current_loop
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def _request_json(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        session = await self._get_session()
        url = f"{self.host}/{path}"
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status == 404:
                    raise StructuringError(f"Docling job not found: {url}")
                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    raise StructuringError(f"Docling error ({response.status}) for {path}: {error_text}")
                return await response.json()
        except asyncio.TimeoutError as e:
            raise StructuringError(f"Docling request timed out after {self.request_timeout}s: {path}") from e
        except aiohttp.ClientConnectorError as e:
            raise StructuringError(f"Cannot connect to Docling at {self.host}") from e
        except aiohttp.ClientError as e:
            raise StructuringError(f"Docling request failed for {path}: {e}") from e

    async def submit(self, content: bytes, mime_hint: str) -> str:
        form = aiohttp.FormData()
        form.add_field('file', content, filename='document', content_type=mime_hint)

        data = await self._request_json('POST', 'api/v1/submit', data=form)
        job_id = data.get('job_id')
        if not job_id:
            raise StructuringError(f"Docling submit returned no job id: {data}")
        return job_id

    async def poll_status(self, job_id: str) -> JobStatus:
        data = await self._request_json('GET', f'api/v1/status/{job_id}')
        raw_status = str(data.get('status', '')).lower()
        status = _STATUS_MAP.get(raw_status)
        if status is None:
            self.logger.warning(f"Unrecognized Docling status {raw_status!r} for job {job_id}; still waiting")
            return JobStatus.PENDING
        return status

    async def fetch_result(self, job_id: str) -> str:
        data = await self._request_json('GET', f'api/v1/result/{job_id}')
        text = data.get('extracted_text')
        if text is None:
            raise StructuringError(f"Docling result for job {job_id} has no extracted_text")
        return text
