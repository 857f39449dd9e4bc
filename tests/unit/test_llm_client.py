"""Unit tests for OllamaClient."""
import json

import httpx
import pytest

from ragcore.llm_client import OllamaClient


def make_client(handler) -> OllamaClient:
    return OllamaClient(base_url="http://ollama.test/", transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestOllamaClient:
    """Test suite for OllamaClient."""

    def test_base_url_trailing_slash_removed(self):
        assert make_client(lambda r: httpx.Response(200)).base_url == "http://ollama.test"

    @pytest.mark.asyncio
    async def test_chat_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"content": "hi"}})

        data = await make_client(handler).chat([{"role": "user", "content": "hello"}], model="m")

        assert data["message"]["content"] == "hi"
        assert seen["url"] == "http://ollama.test/api/chat"
        assert seen["payload"] == {
            "model": "m",
            "messages": [{"role": "user", "content": "hello"}],
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_embeddings_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embeddings"
            return httpx.Response(200, json={"embedding": [1.0, 2.0]})

        assert (await make_client(handler).embeddings("text", model="e"))["embedding"] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "model not found"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.chat([{"role": "user", "content": "hello"}])

        with pytest.raises(httpx.HTTPStatusError):
            await client.embeddings("text")

    @pytest.mark.asyncio
    async def test_connection_error_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError):
            await make_client(handler).chat([{"role": "user", "content": "hello"}])
