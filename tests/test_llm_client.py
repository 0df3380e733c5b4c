import json

import httpx
import pytest

from askstream.models import Message, ModelInfo
from askstream.provider.client import create_llm_client, validate_api_key
from askstream.provider.dialects import ChatCompletionsDialect, ResponsesDialect
from askstream.settings import settings


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_direct_chat_uses_responses_dialect():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"output": [{"type": "message", "content": [{"type": "output_text", "text": "Hi!"}]}]},
        )

    async with _client(handler) as http_client:
        llm = create_llm_client(
            ModelInfo(provider="openai", model="gpt-4.1", apiKey="sk-abc"),
            http_client=http_client,
            temperature=0.7,
            max_tokens=4096,
        )
        response = await llm.chat([Message(role="user", content="hello")])

    assert isinstance(llm.dialect, ResponsesDialect)
    assert response.text == "Hi!"
    assert captured["url"].endswith("/responses")
    assert captured["body"]["max_output_tokens"] == 4096
    assert "stream" not in captured["body"]


@pytest.mark.asyncio
async def test_relay_provider_streams_chat_completions():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=b'data: {"choices":[{"delta":{"content":"x"}}]}\n')

    async with _client(handler) as http_client:
        llm = create_llm_client(
            ModelInfo(provider=settings.relay_provider_id, model="gpt-5", api_key="vk-1"),
            http_client=http_client,
            temperature=0.7,
            max_tokens=8192,
            reasoning_effort="high",
        )
        stream = await llm.stream_chat([Message(role="user", content="hello")])
        await stream.aclose()

    assert isinstance(llm.dialect, ChatCompletionsDialect)
    assert captured["url"].endswith("/chat/completions")
    assert captured["headers"]["x-portkey-virtual-key"] == "vk-1"
    assert captured["headers"]["accept"] == "text/event-stream"
    assert captured["body"]["max_tokens"] == 8192
    assert "reasoning" not in captured["body"]


@pytest.mark.asyncio
async def test_validate_api_key_rejects_bad_format_without_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(handler) as http_client:
        result = await validate_api_key("pk-123", http_client=http_client)

    assert result.success is False
    assert result.error == "Invalid OpenAI API key format."


@pytest.mark.asyncio
async def test_validate_api_key_success_and_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/models")
        if request.headers["Authorization"] == "Bearer sk-good":
            return httpx.Response(200, json={"data": []})
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

    async with _client(handler) as http_client:
        ok = await validate_api_key("sk-good", http_client=http_client)
        bad = await validate_api_key("sk-bad", http_client=http_client)

    assert ok.success is True
    assert bad.success is False
    assert bad.error == "Incorrect API key provided"


@pytest.mark.asyncio
async def test_validate_api_key_status_and_network_fallbacks():
    def status_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    def network_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    async with _client(status_handler) as http_client:
        status = await validate_api_key("sk-x", http_client=http_client)
    async with _client(network_handler) as http_client:
        network = await validate_api_key("sk-x", http_client=http_client)

    assert status.error == "Validation failed with status: 503"
    assert network.error == "A network error occurred during validation."
