"""Pytest configuration and fixtures for unit tests."""
import asyncio
from typing import Dict, List

import pytest

from ragcore.rag.chunker import TextChunker
from ragcore.rag.document import Chunk
from ragcore.rag.embedder import PlaceholderEmbedder
from ragcore.rag.vector_index import VectorIndex


SAMPLE_TEXT = (
    "Retrieval-augmented generation pairs a search step with a text generator. "
    "Documents are split into overlapping chunks before indexing. "
    "Each chunk is embedded into a vector. "
    "At query time the query is embedded with the same function! "
    "Does the nearest chunk always win? "
    "Ties are broken by insertion order so results stay deterministic.\n"
    "A second paragraph follows after a newline. It has two sentences."
)


class KeyedEmbedder:
    """Returns fixed vectors for known texts and a default vector otherwise."""

    def __init__(self, vectors: Dict[str, List[float]], default: List[float]):
        self.vectors = vectors
        self.default = default
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


class FailingEmbedder:
    """Embeds normally until it sees a text containing ``trigger``."""

    def __init__(self, trigger: str, dimension: int = 8):
        self.trigger = trigger
        self.inner = PlaceholderEmbedder(dimension)

    async def embed(self, text: str) -> List[float]:
        if self.trigger in text:
            raise RuntimeError("embedding service unavailable")
        return await self.inner.embed(text)


class SlowEmbedder:
    """Sleeps before every embedding and tracks peak concurrency."""

    def __init__(self, delay: float, dimension: int = 8):
        self.delay = delay
        self.inner = PlaceholderEmbedder(dimension)
        self.in_flight = 0
        self.peak = 0

    async def embed(self, text: str) -> List[float]:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await self.inner.embed(text)
        finally:
            self.in_flight -= 1


@pytest.fixture
def sample_text() -> str:
    """Multi-sentence text with a newline."""
    return SAMPLE_TEXT


@pytest.fixture
def small_chunker() -> TextChunker:
    """Chunker with a small window so sample text yields several chunks."""
    return TextChunker(chunk_size=80, chunk_overlap=20)


@pytest.fixture
def embedder() -> PlaceholderEmbedder:
    """Placeholder embedder with a small dimension."""
    return PlaceholderEmbedder(dimension=8)


@pytest.fixture
def index() -> VectorIndex:
    """Empty index fixed at dimension 3."""
    return VectorIndex(dimension=3)


@pytest.fixture
def make_chunk():
    """Factory for chunks with sensible defaults."""

    def _make(document_id: str = "doc-1", chunk_index: int = 0, content: str = None):
        return Chunk(
            document_id=document_id,
            content=content or f"{document_id} chunk {chunk_index}",
            start_index=chunk_index * 10,
            end_index=chunk_index * 10 + 10,
            chunk_index=chunk_index,
        )

    return _make


@pytest.fixture
def keyed_embedder():
    """Factory for KeyedEmbedder instances."""
    return KeyedEmbedder


@pytest.fixture
def failing_embedder():
    """Factory for FailingEmbedder instances."""
    return FailingEmbedder


@pytest.fixture
def slow_embedder():
    """Factory for SlowEmbedder instances."""
    return SlowEmbedder
