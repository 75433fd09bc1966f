# ============================================================================
# FILE: tests/unit/test_structuring.py
# ============================================================================
"""
Unit tests for structuring job polling and the Docling HTTP client
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from lab_ingestion.extractors import DoclingClient, JobStatus, structure_document
from lab_ingestion.utils.exceptions import (
    StructuringError,
    StructuringJobFailedError,
    StructuringTimeoutError,
)

from conftest import FakeStructuringService


# ----------------------------------------------------------------------------
# structure_document
# ----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_structure_document_success():
    service = FakeStructuringService(
        text="Glucose 95 mg/dL",
        statuses=[JobStatus.PENDING, JobStatus.PENDING, JobStatus.SUCCEEDED],
    )
    text = await structure_document(service, b"pdf", "application/pdf", timeout=5, poll_interval=0.001)

    assert text == "Glucose 95 mg/dL"
    assert service.polls == 3
    assert service.submitted == [(b"pdf", "application/pdf")]


@pytest.mark.asyncio
async def test_structure_document_job_failed():
    service = FakeStructuringService(statuses=[JobStatus.PENDING, JobStatus.FAILED])
    with pytest.raises(StructuringJobFailedError) as exc_info:
        await structure_document(service, b"pdf", "application/pdf", timeout=5, poll_interval=0.001)
    assert exc_info.value.job_id == "job-1"


@pytest.mark.asyncio
async def test_structure_document_timeout():
    service = FakeStructuringService(statuses=[JobStatus.PENDING])
    with pytest.raises(StructuringTimeoutError) as exc_info:
        await structure_document(service, b"pdf", "application/pdf", timeout=0.05, poll_interval=0.01)
    assert exc_info.value.timeout == 0.05
    assert service.polls >= 2


class HangingStructuringService(FakeStructuringService):
    """Never answers the given call."""

    def __init__(self, hang_on, **kwargs):
        super().__init__(**kwargs)
        self.hang_on = hang_on

    async def _hang(self):
        await asyncio.sleep(3600)

    async def submit(self, content, mime_hint):
        if self.hang_on == "submit":
            await self._hang()
        return await super().submit(content, mime_hint)

    async def poll_status(self, job_id):
        if self.hang_on == "poll_status":
            await self._hang()
        return await super().poll_status(job_id)

    async def fetch_result(self, job_id):
        if self.hang_on == "fetch_result":
            await self._hang()
        return await super().fetch_result(job_id)


@pytest.mark.asyncio
@pytest.mark.parametrize("hang_on", ["submit", "poll_status", "fetch_result"])
async def test_structure_document_bounds_hung_calls(hang_on):
    """Test a call that never returns still ends at the wall-clock limit"""
    service = HangingStructuringService(hang_on, text="Glucose 95")
    with pytest.raises(StructuringTimeoutError):
        await asyncio.wait_for(
            structure_document(service, b"pdf", "application/pdf", timeout=0.05, poll_interval=0.01),
            timeout=2,
        )


# ----------------------------------------------------------------------------
# DoclingClient against a local aiohttp server
# ----------------------------------------------------------------------------

def _docling_app(statuses):
    jobs = {"polls": 0, "uploads": []}

    async def submit(request):
        form = await request.post()
        upload = form["file"]
        jobs["uploads"].append((upload.file.read(), upload.content_type))
        return web.json_response({"job_id": "abc123"})

    async def status(request):
        index = min(jobs["polls"], len(statuses) - 1)
        jobs["polls"] += 1
        return web.json_response({"job_id": request.match_info["job_id"], "status": statuses[index]})

    async def result(request):
        if request.match_info["job_id"] != "abc123":
            return web.json_response({"detail": "not found"}, status=404)
        return web.json_response({"extracted_text": "Sodium 140 mmol/L"})

    app = web.Application()
    app["jobs"] = jobs
    app.router.add_post("/api/v1/submit", submit)
    app.router.add_get("/api/v1/status/{job_id}", status)
    app.router.add_get("/api/v1/result/{job_id}", result)
    return app


@pytest.mark.asyncio
async def test_docling_round_trip():
    app = _docling_app(["queued", "processing", "completed"])
    async with test_utils.TestServer(app) as server:
        client = DoclingClient({"docling_host": f"http://{server.host}:{server.port}/"})
        try:
            text = await structure_document(client, b"%PDF", "application/pdf", timeout=5, poll_interval=0.001)
        finally:
            await client.close()

    assert text == "Sodium 140 mmol/L"
    assert app["jobs"]["uploads"] == [(b"%PDF", "application/pdf")]
    assert app["jobs"]["polls"] == 3


@pytest.mark.asyncio
async def test_docling_status_mapping():
    app = _docling_app(["error"])
    async with test_utils.TestServer(app) as server:
        client = DoclingClient({"docling_host": f"http://{server.host}:{server.port}"})
        try:
            assert await client.poll_status("abc123") == JobStatus.FAILED
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_docling_unknown_status_is_pending():
    app = _docling_app(["warming_up"])
    async with test_utils.TestServer(app) as server:
        client = DoclingClient({"docling_host": f"http://{server.host}:{server.port}"})
        try:
            assert await client.poll_status("abc123") == JobStatus.PENDING
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_docling_missing_job():
    app = _docling_app(["completed"])
    async with test_utils.TestServer(app) as server:
        client = DoclingClient({"docling_host": f"http://{server.host}:{server.port}"})
        try:
            with pytest.raises(StructuringError):
                await client.fetch_result("nope")
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_docling_unreachable():
    client = DoclingClient({"docling_host": "http://127.0.0.1:1", "request_timeout": 2})
    try:
        with pytest.raises(StructuringError):
            await client.submit(b"%PDF", "application/pdf")
    finally:
        await client.close()
