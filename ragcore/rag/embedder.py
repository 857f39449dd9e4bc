"""Embedding capability and its implementations.

Every embedder exposes a single ``embed(text)`` coroutine. The same embedder
must be used for chunks and queries so both live in one vector space.
"""
from typing import List, Optional, Protocol, runtime_checkable
import numpy as np
import structlog

from ragcore import config
from ragcore.errors import ConfigError
from ragcore.llm_client import OllamaClient

logger = structlog.get_logger()


@runtime_checkable
class Embedder(Protocol):
    """Maps text to a fixed-length vector."""

    async def embed(self, text: str) -> List[float]:
        ...


class PlaceholderEmbedder:
    """Deterministic, non-semantic embedder for tests and offline use.

    Each character's code point is accumulated into slot ``position % D``,
    scaled by ``ordinal + 1``, and the vector is L2-normalized. The scale is
    uniform, so it cancels under normalization: a query and any chunk of
    the same text map to the same vector.
    """

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = config.EMBEDDING_DIMENSION if dimension is None else dimension
        if self.dimension <= 0:
            raise ConfigError(f"Embedding dimension must be positive, got {self.dimension}")

    def vectorize(self, text: str, ordinal: int = 0) -> List[float]:
        """Compute the placeholder vector for ``text``.

        Args:
            text: Text to embed
            ordinal: Chunk ordinal (0 for queries)

        Returns:
            Unit vector of length ``dimension``, or the zero vector
        """
        if not text:
            return [0.0] * self.dimension

        codes = np.fromiter(map(ord, text), dtype=np.float64, count=len(text))
        slots = np.arange(codes.size) % self.dimension
        vector = np.bincount(slots, weights=codes, minlength=self.dimension)
        vector *= ordinal + 1

        magnitude = np.linalg.norm(vector)
        if magnitude == 0:
            return [0.0] * self.dimension

        return (vector / magnitude).tolist()

    async def embed(self, text: str) -> List[float]:
        return self.vectorize(text)


class OllamaEmbedder:
    """Embedder backed by an Ollama embedding model."""

    def __init__(self, client: OllamaClient, model: str = None):
        """Initialize the embedder.

        Args:
            client: Ollama client to send requests through
            model: Embedding model name (default from config)
        """
        self.client = client
        self.model = model or config.EMBEDDING_MODEL

    async def embed(self, text: str) -> List[float]:
        """Embed text with the configured model.

        Raises:
            RuntimeError: If Ollama returns an empty embedding
            httpx.HTTPError: On API errors
        """
        response = await self.client.embeddings(prompt=text, model=self.model)
        embedding = response.get("embedding", [])

        if not embedding:
            logger.error("empty_embedding_returned", model=self.model)
            raise RuntimeError(f"Empty embedding returned from {self.model}")

        return [float(x) for x in embedding]
