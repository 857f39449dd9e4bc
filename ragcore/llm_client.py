"""Ollama API access for the embedder and generator.

A client instance carries its own base URL, timeout and transport; callers
create one and inject it wherever it is needed.
"""
import httpx
from typing import Any, Dict, List, Optional
import structlog

from ragcore import config

logger = structlog.get_logger()


class OllamaClient:
    """Async client for the Ollama chat and embeddings endpoints."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Ollama API base URL (default from config)
            timeout: Request timeout in seconds (default from config)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.timeout = timeout or config.OLLAMA_TIMEOUT
        self.transport = transport

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict:
        """POST a JSON payload and return the decoded response.

        Raises:
            httpx.ConnectError: If Ollama is unreachable
            httpx.HTTPError: On any other transport or status error
        """
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error(
                "ollama_request_failed",
                endpoint=endpoint,
                model=payload.get("model"),
                error=str(e),
            )
            raise

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
    ) -> Dict:
        """Non-streaming chat completion.

        Args:
            messages: Message dicts with 'role' and 'content'
            model: Chat model (default from config)
            temperature: Sampling temperature, server default if None

        Returns:
            Response dict with 'message' containing 'content'
        """
        payload: Dict[str, Any] = {
            "model": model or config.CHAT_MODEL,
            "messages": messages,
            "stream": False,
        }
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        logger.info("ollama_chat_request", model=payload["model"], message_count=len(messages))
        data = await self._post("/api/chat", payload)
        logger.info(
            "ollama_chat_response",
            model=payload["model"],
            response_length=len(data.get("message", {}).get("content", "")),
        )
        return data

    async def embeddings(self, prompt: str, model: str = None) -> Dict:
        """Embed one prompt.

        Returns:
            Response dict with an 'embedding' list
        """
        payload = {"model": model or config.EMBEDDING_MODEL, "prompt": prompt}

        data = await self._post("/api/embeddings", payload)
        logger.debug(
            "ollama_embedding_response",
            model=payload["model"],
            prompt_length=len(prompt),
            dimension=len(data.get("embedding", [])),
        )
        return data
