"""Ingest pipeline for indexing documents.

Orchestrates:
- Format check and extraction
- Normalization
- Text chunking
- Concurrent embedding generation
- Persistence and atomic index replacement

A document is ingested completely or not at all: nothing reaches the
repository or the index until every chunk has been embedded.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union
import structlog

from ragcore import config
from ragcore.db import ChunkRepository, InMemoryChunkRepository
from ragcore.errors import (
    ConfigError,
    DimensionMismatch,
    ProcessingFailed,
    UnsupportedFormatError,
)
from ragcore.rag.chunker import TextChunker
from ragcore.rag.document import Chunk, Document, DocumentFormat, DocumentMetadata
from ragcore.rag.embedder import Embedder
from ragcore.rag.extractors import ExtractorRegistry, format_key
from ragcore.rag.normalizer import normalize, text_stats
from ragcore.rag.vector_index import VectorIndex

logger = structlog.get_logger()


@dataclass(frozen=True)
class IngestResult:
    """Outcome of ingesting one document."""

    document_id: str
    status: str
    chunk_count: int = 0
    metadata: Optional[DocumentMetadata] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


class IngestPipeline:
    """Pipeline for ingesting documents into the RAG index."""

    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        chunker: Optional[TextChunker] = None,
        repository: Optional[ChunkRepository] = None,
        extractors: Optional[ExtractorRegistry] = None,
        embed_concurrency: Optional[int] = None,
        embed_timeout: Optional[float] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Embedding capability shared with the retriever
            index: Vector index that receives the chunk sets
            chunker: Text chunker (default from config)
            repository: Chunk persistence (default: in-memory)
            extractors: Format-to-extractor registry (default: txt and md)
            embed_concurrency: Maximum embeddings in flight (default from config)
            embed_timeout: Seconds allowed to embed one document (default from config)

        Raises:
            ConfigError: If concurrency or timeout is not positive
        """
        self.embedder = embedder
        self.index = index
        self.chunker = chunker or TextChunker()
        self.repository = repository if repository is not None else InMemoryChunkRepository()
        self.extractors = extractors or ExtractorRegistry()
        self.embed_concurrency = (
            config.EMBED_CONCURRENCY if embed_concurrency is None else embed_concurrency
        )
        self.embed_timeout = config.EMBED_TIMEOUT if embed_timeout is None else embed_timeout
        if self.embed_concurrency <= 0 or self.embed_timeout <= 0:
            raise ConfigError(
                f"Embedding concurrency ({self.embed_concurrency}) and timeout "
                f"({self.embed_timeout}) must be positive"
            )

        self.stats = {
            "documents_processed": 0,
            "documents_failed": 0,
            "chunks_created": 0,
            "embeddings_generated": 0,
        }

        logger.info(
            "ingest_pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            embed_concurrency=self.embed_concurrency,
            formats=list(self.extractors.formats),
        )

    async def generate_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed texts concurrently, bounded by ``embed_concurrency``.

        Any failure or the timeout cancels embeddings still in flight.

        Args:
            texts: Texts to embed

        Returns:
            Embedding vectors in input order

        Raises:
            TimeoutError: If the whole batch exceeds ``embed_timeout``
            Exception: Whatever the embedder raised first
        """
        if not texts:
            return []

        semaphore = asyncio.Semaphore(self.embed_concurrency)

        async def embed_one(text: str) -> List[float]:
            async with semaphore:
                return await self.embedder.embed(text)

        tasks = [asyncio.ensure_future(embed_one(text)) for text in texts]
        try:
            async with asyncio.timeout(self.embed_timeout):
                embeddings = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        self.stats["embeddings_generated"] += len(embeddings)
        return list(embeddings)

    async def ingest_bytes(
        self,
        document_id: str,
        data: bytes,
        fmt: Union[str, DocumentFormat],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IngestResult:
        """Extract and ingest a raw document.

        Args:
            document_id: Id of the document (replaces any previous version)
            data: Raw document bytes
            fmt: Declared format
            metadata: Caller metadata, overriding extracted values

        Raises:
            UnsupportedFormatError: If no extractor is registered for ``fmt``
            ProcessingFailed: If extraction or processing fails
        """
        try:
            extracted = self.extractors.extract(fmt, data)
        except UnsupportedFormatError:
            logger.warning("unsupported_format", document_id=document_id, format=format_key(fmt))
            self.stats["documents_failed"] += 1
            raise
        except Exception as e:
            self.stats["documents_failed"] += 1
            logger.error(
                "document_extraction_failed",
                document_id=document_id,
                format=format_key(fmt),
                error=str(e),
            )
            raise ProcessingFailed(str(e), document_id) from e

        merged = {**extracted.metadata, **(metadata or {})}
        return await self.ingest_text(document_id, extracted.text, fmt, merged)

    async def ingest_text(
        self,
        document_id: str,
        text: str,
        fmt: Union[str, DocumentFormat] = DocumentFormat.TXT,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IngestResult:
        """Ingest already-extracted text.

        Args:
            document_id: Id of the document (replaces any previous version)
            text: Extracted text
            fmt: Declared format; must have a registered extractor
            metadata: Extraction metadata (title, author, page_count, ...)

        Returns:
            IngestResult for the completed ingestion

        Raises:
            UnsupportedFormatError: If no extractor is registered for ``fmt``
            ProcessingFailed: If normalization, chunking or embedding fails
        """
        if not self.extractors.supports(fmt):
            logger.warning("unsupported_format", document_id=document_id, format=format_key(fmt))
            self.stats["documents_failed"] += 1
            raise UnsupportedFormatError(format_key(fmt))

        logger.info("ingesting_document", document_id=document_id, format=format_key(fmt))

        try:
            content = normalize(text)
            chunks = self.chunker.chunk_text(content)
            embeddings = await self.generate_embeddings([c.content for c in chunks])

            indexed = [
                Chunk(
                    document_id=document_id,
                    content=chunk.content,
                    start_index=chunk.start_index,
                    end_index=chunk.end_index,
                    chunk_index=chunk.chunk_index,
                ).with_embedding(embedding)
                for chunk, embedding in zip(chunks, embeddings)
            ]

            document = Document(
                document_id=document_id,
                content=content,
                format=format_key(fmt),
                metadata=DocumentMetadata(
                    **{
                        **(metadata or {}),
                        **text_stats(content),
                        "chunk_count": len(indexed),
                    }
                ),
            )

            self._commit(document_id, indexed)

        except asyncio.CancelledError:
            logger.warning("document_ingestion_cancelled", document_id=document_id)
            raise
        except ProcessingFailed:
            self.stats["documents_failed"] += 1
            raise
        except TimeoutError as e:
            self.stats["documents_failed"] += 1
            logger.error(
                "document_ingestion_timeout",
                document_id=document_id,
                timeout=self.embed_timeout,
            )
            raise ProcessingFailed(
                f"embedding timed out after {self.embed_timeout}s", document_id
            ) from e
        except Exception as e:
            self.stats["documents_failed"] += 1
            logger.error(
                "document_ingestion_failed",
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProcessingFailed(str(e), document_id) from e

        self.stats["documents_processed"] += 1
        self.stats["chunks_created"] += len(indexed)

        logger.info(
            "document_ingested",
            document_id=document_id,
            chunks_created=len(indexed),
            word_count=document.metadata.word_count,
        )

        return IngestResult(
            document_id=document_id,
            status="completed",
            chunk_count=len(indexed),
            metadata=document.metadata,
        )

    async def ingest_many(
        self, documents: Sequence[Dict[str, Any]], progress_callback=None
    ) -> List[IngestResult]:
        """Ingest several documents; a failure only affects its own document.

        Args:
            documents: Dicts with ``document_id``, ``text`` and optional
                ``format`` and ``metadata``
            progress_callback: Optional callback function(current, total, document_id)

        Returns:
            One IngestResult per document, failed ones included
        """
        results = []

        for idx, doc in enumerate(documents, 1):
            document_id = doc["document_id"]
            if progress_callback:
                progress_callback(idx, len(documents), document_id)

            try:
                result = await self.ingest_text(
                    document_id,
                    doc["text"],
                    doc.get("format", DocumentFormat.TXT),
                    doc.get("metadata"),
                )
            except (UnsupportedFormatError, ProcessingFailed) as e:
                result = IngestResult(document_id=document_id, status="failed", error=str(e))

            results.append(result)

        return results

    async def reembed(self, document_id: str) -> int:
        """Recompute embeddings for a persisted chunk set and swap it in.

        Returns:
            Number of chunks re-embedded

        Raises:
            ProcessingFailed: If embedding fails
        """
        stored = self.repository.load(document_id)

        try:
            embeddings = await self.generate_embeddings([c.content for c in stored])
            updated = [c.with_embedding(e) for c, e in zip(stored, embeddings)]
            self._commit(document_id, updated)
        except asyncio.CancelledError:
            raise
        except TimeoutError as e:
            raise ProcessingFailed(
                f"embedding timed out after {self.embed_timeout}s", document_id
            ) from e
        except Exception as e:
            logger.error("document_reembed_failed", document_id=document_id, error=str(e))
            raise ProcessingFailed(str(e), document_id) from e

        logger.info("document_reembedded", document_id=document_id, chunk_count=len(updated))
        return len(updated)

    def restore(self, document_id: str) -> int:
        """Load a persisted chunk set into the index.

        Raises:
            DimensionMismatch: If the stored embeddings don't fit the index
        """
        stored = self.repository.load(document_id)
        count = self.index.replace_document(
            document_id, [(c, c.embedding) for c in stored]
        )
        logger.info("document_restored", document_id=document_id, chunk_count=count)
        return count

    def remove(self, document_id: str) -> int:
        """Remove a document from the index and the repository.

        Returns:
            Number of chunks removed from the index
        """
        removed = self.index.remove_document(document_id)
        self.repository.delete(document_id)
        return removed

    def _commit(self, document_id: str, chunks: List[Chunk]) -> None:
        """Persist and publish a complete chunk set.

        The index validates dimensions before anything is written, and the
        repository is only written once the chunk set is known to fit.
        """
        dimension = self.index.dimension
        for chunk in chunks:
            if dimension is not None and len(chunk.embedding) != dimension:
                raise DimensionMismatch(dimension, len(chunk.embedding))
            dimension = dimension or len(chunk.embedding)

        self.repository.save(document_id, chunks)
        self.index.replace_document(document_id, [(c, c.embedding) for c in chunks])
