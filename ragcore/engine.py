"""RAG engine: ingestion, retrieval and generation hand-off in one place."""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol
import structlog

from ragcore import config
from ragcore.db import ChunkRepository
from ragcore.llm_client import OllamaClient
from ragcore.rag.chunker import TextChunker
from ragcore.rag.context import ContextAssembler
from ragcore.rag.document import RetrievalResult
from ragcore.rag.embedder import Embedder, PlaceholderEmbedder
from ragcore.rag.extractors import ExtractorRegistry
from ragcore.rag.ingest import IngestPipeline
from ragcore.rag.retriever import Retriever
from ragcore.rag.vector_index import VectorIndex

logger = structlog.get_logger()


class Generator(Protocol):
    """Produces an answer from an assembled context and the original query."""

    async def generate(self, context: str, query: str) -> str:
        ...


class OllamaGenerator:
    """Generator backed by an Ollama chat model."""

    SYSTEM_PROMPT = "You are a helpful assistant. Be concise and accurate."

    def __init__(
        self,
        client: OllamaClient,
        model: str = None,
        temperature: Optional[float] = None,
    ):
        self.client = client
        self.model = model or config.CHAT_MODEL
        self.temperature = temperature

    async def generate(self, context: str, query: str) -> str:
        """Ask the chat model, with the context when there is one.

        The assembled context already ends with the query, so it replaces the
        user message; an empty context falls back to the bare query.
        """
        messages = [
            {"role": "system", "content": self.SYSTEM_PROMPT},
            {"role": "user", "content": context or query},
        ]

        response = await self.client.chat(
            messages, model=self.model, temperature=self.temperature
        )
        answer = response.get("message", {}).get("content", "")

        if not answer:
            logger.error("empty_generator_response", model=self.model)
            raise RuntimeError("Empty response from LLM")

        return answer


@dataclass(frozen=True)
class Answer:
    """Generated answer plus the retrieval that informed it."""

    text: str
    context: str
    sources: List[RetrievalResult] = field(default_factory=list)

    @property
    def augmented(self) -> bool:
        return bool(self.context)


class RagEngine:
    """Wires the pipeline, index, retriever and assembler together."""

    def __init__(
        self,
        embedder: Optional[Embedder] = None,
        index: Optional[VectorIndex] = None,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        embedding_dimension: Optional[int] = None,
        top_k: Optional[int] = None,
        max_context_chars: Optional[int] = None,
        repository: Optional[ChunkRepository] = None,
        extractors: Optional[ExtractorRegistry] = None,
        embed_concurrency: Optional[int] = None,
        embed_timeout: Optional[float] = None,
    ):
        """Initialize the engine.

        Args:
            embedder: Embedding capability (default: PlaceholderEmbedder)
            index: Vector index (default: empty index of ``embedding_dimension``)
            chunk_size: Chunk size in characters (default from config)
            chunk_overlap: Chunk overlap in characters (default from config)
            embedding_dimension: Index dimension (default from config)
            top_k: Results per query (default from config)
            max_context_chars: Source budget for assembled context (default from config)
            repository: Chunk persistence (default: in-memory)
            extractors: Format-to-extractor registry (default: txt and md)
            embed_concurrency: Maximum embeddings in flight (default from config)
            embed_timeout: Seconds allowed to embed one document (default from config)

        Raises:
            ConfigError: If the chunking parameters are invalid
        """
        # Validate chunking first so bad config fails before anything else
        chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)

        # A caller-supplied embedder fixes the dimension on first insertion
        # unless one is given explicitly
        dimension = embedding_dimension
        if dimension is None and embedder is None:
            dimension = config.EMBEDDING_DIMENSION
        self.embedder = embedder or PlaceholderEmbedder(dimension)
        self.index = index if index is not None else VectorIndex(dimension)
        self.assembler = ContextAssembler(max_chars=max_context_chars)

        self.pipeline = IngestPipeline(
            embedder=self.embedder,
            index=self.index,
            chunker=chunker,
            repository=repository,
            extractors=extractors,
            embed_concurrency=embed_concurrency,
            embed_timeout=embed_timeout,
        )
        self.retriever = Retriever(
            index=self.index,
            embedder=self.embedder,
            top_k=top_k,
            assembler=self.assembler,
        )

        logger.info(
            "rag_engine_initialized",
            dimension=self.index.dimension,
            chunk_size=chunker.chunk_size,
            chunk_overlap=chunker.chunk_overlap,
            top_k=self.retriever.top_k,
        )

    async def ingest_text(self, document_id: str, text: str, fmt="txt", metadata=None):
        return await self.pipeline.ingest_text(document_id, text, fmt, metadata)

    async def ingest_bytes(self, document_id: str, data: bytes, fmt, metadata=None):
        return await self.pipeline.ingest_bytes(document_id, data, fmt, metadata)

    def remove(self, document_id: str) -> int:
        return self.pipeline.remove(document_id)

    async def search(
        self,
        query: str,
        top_k: Optional[int] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> List[RetrievalResult]:
        return await self.retriever.retrieve(query, top_k=top_k, document_ids=document_ids)

    async def build_context(
        self,
        query: str,
        top_k: Optional[int] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> str:
        return await self.retriever.retrieve_context(
            query, top_k=top_k, document_ids=document_ids
        )

    async def answer(
        self,
        query: str,
        generator: Generator,
        top_k: Optional[int] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> Answer:
        """Retrieve context for a query and hand both to the generator.

        Args:
            query: User query text
            generator: Generation capability for this call
            top_k: Number of results to retrieve
            document_ids: Optional restriction to these documents

        Returns:
            Answer with the generated text, context and sources

        Raises:
            EmptyQuery: If the query is blank
        """
        sources = await self.retriever.retrieve(query, top_k=top_k, document_ids=document_ids)
        context = self.assembler.assemble(sources, query)

        if not context:
            logger.info("no_relevant_context_found")

        text = await generator.generate(context, query)

        logger.info(
            "answer_generated",
            used_rag=bool(context),
            num_sources=len(sources),
            response_length=len(text),
        )

        return Answer(text=text, context=context, sources=sources)

    def get_stats(self) -> dict:
        return {
            "index": self.index.get_stats(),
            "ingestion": dict(self.pipeline.stats),
        }
