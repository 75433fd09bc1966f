# ============================================================================
# FILE: tests/unit/test_llm_client.py
# ============================================================================
"""
Unit tests for the completion backend factory, prompts and Ollama client
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from lab_ingestion.llm import (
    EXTRACTION_HEADER,
    LabPrompts,
    OllamaCompletionClient,
    create_client,
    create_document_info_prompt,
    create_extraction_prompt,
)
from lab_ingestion.utils.exceptions import CompletionError, ConfigurationError


def test_create_client_ollama():
    client = create_client({"backend": "ollama", "ollama_model": "llama3.2:3b"})
    assert isinstance(client, OllamaCompletionClient)
    assert client.model_name == "llama3.2:3b"


@pytest.mark.parametrize("backend", ["", "openai-magic"])
def test_create_client_rejects_bad_backend(backend):
    with pytest.raises(ConfigurationError):
        create_client({"backend": backend})


def test_extraction_prompt_chunk_context():
    single = create_extraction_prompt("Glucose 95", 0, 1)
    multi = create_extraction_prompt("Glucose 95", 1, 3)

    assert "Chunk" not in single
    assert "(Chunk 2 of 3)" in multi
    assert EXTRACTION_HEADER in single
    assert "ONLY ONCE" in single


def test_document_info_prompt():
    prompt = create_document_info_prompt("Quest Diagnostics")
    assert "Quest Diagnostics" in prompt
    assert "TEST_DATE:" in prompt


def test_prompt_template_requires_fields():
    with pytest.raises(ValueError):
        LabPrompts.LAB_VALUE_EXTRACTION_TEMPLATE.format(chunk_context="")


def _ollama_app(reply=None, status=200, delay=0.0):
    seen = []

    async def generate(request):
        seen.append(await request.json())
        if delay:
            await asyncio.sleep(delay)
        if status != 200:
            return web.Response(status=status, text="model not loaded")
        return web.json_response(reply or {"response": "Glucose|BLOOD|95|mg/dL|70-99|normal", "eval_count": 12})

    app = web.Application()
    app["seen"] = seen
    app.router.add_post("/api/generate", generate)
    return app


@pytest.mark.asyncio
async def test_ollama_complete():
    app = _ollama_app()
    async with test_utils.TestServer(app) as server:
        client = OllamaCompletionClient({
            "ollama_host": f"http://{server.host}:{server.port}",
            "ollama_model": "test-model",
            "max_tokens": 256,
        })
        try:
            text = await client.complete("extract please")
        finally:
            await client.close()

    assert text.startswith("Glucose|BLOOD|95")
    payload = app["seen"][0]
    assert payload["model"] == "test-model"
    assert payload["stream"] is False
    assert payload["options"]["num_predict"] == 256
    assert client.get_statistics()["inference_count"] == 1


@pytest.mark.asyncio
async def test_ollama_http_error():
    app = _ollama_app(status=500)
    async with test_utils.TestServer(app) as server:
        client = OllamaCompletionClient({"ollama_host": f"http://{server.host}:{server.port}"})
        try:
            with pytest.raises(CompletionError):
                await client.complete("x")
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_ollama_timeout():
    app = _ollama_app(delay=1.0)
    async with test_utils.TestServer(app) as server:
        client = OllamaCompletionClient({
            "ollama_host": f"http://{server.host}:{server.port}",
            "request_timeout": 0.05,
        })
        try:
            with pytest.raises(CompletionError):
                await client.complete("x")
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_ollama_unreachable():
    client = OllamaCompletionClient({"ollama_host": "http://127.0.0.1:1"})
    try:
        with pytest.raises(CompletionError):
            await client.complete("x")
    finally:
        await client.close()
