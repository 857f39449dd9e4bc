"""Retriever for similarity search over indexed documents.

Handles:
- Query validation
- Query embedding generation
- Vector index search
- Context formatting
"""
import asyncio
from typing import Iterable, List, Optional
import structlog

from ragcore import config
from ragcore.errors import ConfigError, EmptyQuery
from ragcore.rag.context import ContextAssembler
from ragcore.rag.document import RetrievalResult
from ragcore.rag.embedder import Embedder
from ragcore.rag.vector_index import VectorIndex

logger = structlog.get_logger()


class Retriever:
    """Similarity retriever for RAG pipeline."""

    def __init__(
        self,
        index: VectorIndex,
        embedder: Embedder,
        top_k: Optional[int] = None,
        assembler: Optional[ContextAssembler] = None,
        query_timeout: Optional[float] = None,
    ):
        """Initialize the retriever.

        Args:
            index: Vector index to search
            embedder: Same embedder the documents were indexed with
            top_k: Number of results to retrieve (default from config)
            assembler: Context assembler (default from config)
            query_timeout: Seconds allowed to embed a query (default from config)

        Raises:
            ConfigError: If the query timeout is not positive
        """
        self.index = index
        self.embedder = embedder
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k
        self.assembler = assembler or ContextAssembler()
        self.query_timeout = config.QUERY_TIMEOUT if query_timeout is None else query_timeout
        if self.query_timeout <= 0:
            raise ConfigError(f"Query timeout must be positive, got {self.query_timeout}")

        logger.debug("retriever_initialized", top_k=self.top_k)

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> List[RetrievalResult]:
        """Retrieve relevant chunks for a query.

        Args:
            query: User query text
            top_k: Number of results to return (overrides default)
            document_ids: Optional restriction to these documents

        Returns:
            List of RetrievalResult objects, best first

        Raises:
            EmptyQuery: If the query is blank
            DimensionMismatch: If the query embedding doesn't fit the index
            TimeoutError: If embedding the query exceeds ``query_timeout``
        """
        if not query or not query.strip():
            logger.warning("empty_query_provided")
            raise EmptyQuery("Query text must not be empty")

        top_k = self.top_k if top_k is None else top_k

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        if len(self.index) == 0 or top_k <= 0:
            logger.info("no_results_possible", index_size=len(self.index), top_k=top_k)
            return []

        try:
            async with asyncio.timeout(self.query_timeout):
                query_embedding = await self.embedder.embed(query)
        except TimeoutError:
            logger.error("query_embedding_timeout", timeout=self.query_timeout)
            raise

        results = self.index.query(query_embedding, top_k, document_ids=document_ids)

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )

        return results

    async def retrieve_context(
        self,
        query: str,
        top_k: Optional[int] = None,
        document_ids: Optional[Iterable[str]] = None,
    ) -> str:
        """Retrieve and format context for LLM prompt.

        Returns:
            Formatted context string, or "" when nothing was retrieved
        """
        results = await self.retrieve(query, top_k=top_k, document_ids=document_ids)
        return self.assembler.assemble(results, query)
