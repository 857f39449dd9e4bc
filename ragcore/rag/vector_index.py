"""In-memory vector index for cosine-similarity search.

Handles:
- Dimension fixing (constructor or first insertion)
- Per-document chunk sets with atomic replacement
- Exact top-k search by linear scan

Readers always work on an immutable snapshot; writers build a new snapshot
and publish it with a single attribute assignment. Queries cost O(N * D).
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np
import structlog

from ragcore.errors import DimensionMismatch
from ragcore.rag.document import Chunk, RetrievalResult

logger = structlog.get_logger()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 if either has zero magnitude.

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatch(va.size, vb.size)

    norm_product = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm_product == 0:
        return 0.0

    return float(np.clip(np.dot(va, vb) / norm_product, -1.0, 1.0))


@dataclass(frozen=True)
class _Snapshot:
    """Immutable view of the index contents, in insertion order."""

    dimension: Optional[int]
    chunks: Tuple[Chunk, ...]
    matrix: np.ndarray
    norms: np.ndarray


def _empty_snapshot(dimension: Optional[int]) -> _Snapshot:
    width = dimension or 0
    matrix = np.zeros((0, width), dtype=np.float64)
    norms = np.zeros(0, dtype=np.float64)
    matrix.flags.writeable = False
    norms.flags.writeable = False
    return _Snapshot(dimension=dimension, chunks=(), matrix=matrix, norms=norms)


class VectorIndex:
    """Exact cosine-similarity index over (chunk, embedding) pairs."""

    def __init__(self, dimension: Optional[int] = None):
        """Initialize an empty index.

        Args:
            dimension: Embedding dimension; fixed by the first insertion if None
        """
        if dimension is not None and dimension <= 0:
            raise ValueError(f"Dimension must be positive, got {dimension}")
        self._snapshot = _empty_snapshot(dimension)

        logger.debug("vector_index_initialized", dimension=dimension)

    @property
    def dimension(self) -> Optional[int]:
        return self._snapshot.dimension

    def __len__(self) -> int:
        return len(self._snapshot.chunks)

    def document_ids(self) -> List[str]:
        """Ids of documents with at least one indexed chunk, in insertion order."""
        seen: Dict[str, None] = {}
        for chunk in self._snapshot.chunks:
            seen.setdefault(chunk.document_id, None)
        return list(seen)

    def chunks_for(self, document_id: str) -> List[Chunk]:
        """Indexed chunks of one document, in insertion order."""
        return [c for c in self._snapshot.chunks if c.document_id == document_id]

    def _as_vector(self, embedding: Sequence[float], dimension: Optional[int]) -> np.ndarray:
        vector = np.asarray(embedding, dtype=np.float64)
        if vector.ndim != 1:
            raise ValueError(f"Embedding must be one-dimensional, got shape {vector.shape}")
        if dimension is not None and vector.size != dimension:
            raise DimensionMismatch(dimension, vector.size)
        return vector

    def _publish(
        self,
        dimension: int,
        keep: np.ndarray,
        new_chunks: List[Chunk],
        new_vectors: List[np.ndarray],
    ) -> None:
        current = self._snapshot
        chunks = [c for c, k in zip(current.chunks, keep) if k] + list(new_chunks)

        if new_vectors:
            added = np.vstack(new_vectors)
        else:
            added = np.zeros((0, dimension), dtype=np.float64)

        if current.matrix.shape[1] == dimension:
            matrix = np.vstack([current.matrix[keep], added])
        else:
            # Dimension was unset until now; nothing kept
            matrix = added
        norms = np.linalg.norm(matrix, axis=1)

        matrix.flags.writeable = False
        norms.flags.writeable = False
        self._snapshot = _Snapshot(
            dimension=dimension,
            chunks=tuple(chunks),
            matrix=matrix,
            norms=norms,
        )

    def insert(self, chunk: Chunk, embedding: Optional[Sequence[float]] = None) -> None:
        """Insert a single chunk.

        Args:
            chunk: Chunk to index
            embedding: Vector for the chunk (defaults to ``chunk.embedding``)

        Raises:
            DimensionMismatch: If the vector length disagrees with the index
        """
        if embedding is None:
            embedding = chunk.embedding
        vector = self._as_vector(embedding, self.dimension)
        dimension = self.dimension or vector.size

        keep = np.ones(len(self._snapshot.chunks), dtype=bool)
        self._publish(dimension, keep, [chunk], [vector])

    def replace_document(
        self,
        document_id: str,
        pairs: Iterable[Tuple[Chunk, Sequence[float]]],
    ) -> int:
        """Atomically replace every chunk of a document.

        All vectors are validated before anything is published, so a failure
        leaves the previous chunk set in place.

        Args:
            document_id: Document whose chunk set is replaced
            pairs: (chunk, embedding) pairs for the new chunk set

        Returns:
            Number of chunks now indexed for the document

        Raises:
            DimensionMismatch: If any vector length disagrees with the index
            ValueError: If a chunk belongs to a different document
        """
        dimension = self.dimension
        new_chunks: List[Chunk] = []
        new_vectors: List[np.ndarray] = []

        for chunk, embedding in pairs:
            if chunk.document_id != document_id:
                raise ValueError(
                    f"Chunk belongs to {chunk.document_id}, not {document_id}"
                )
            vector = self._as_vector(embedding, dimension)
            dimension = dimension or vector.size
            new_chunks.append(chunk)
            new_vectors.append(vector)

        current = self._snapshot
        keep = np.array(
            [c.document_id != document_id for c in current.chunks], dtype=bool
        )

        if dimension is None:
            # Empty index, empty replacement: nothing to publish
            return 0

        self._publish(dimension, keep, new_chunks, new_vectors)

        logger.info(
            "document_replaced",
            document_id=document_id,
            chunk_count=len(new_chunks),
            removed=int((~keep).sum()),
            total_vectors=len(self),
        )

        return len(new_chunks)

    def remove_document(self, document_id: str) -> int:
        """Remove every chunk of a document.

        Returns:
            Number of chunks removed
        """
        current = self._snapshot
        keep = np.array(
            [c.document_id != document_id for c in current.chunks], dtype=bool
        )
        removed = int((~keep).sum())

        if removed:
            self._publish(current.dimension, keep, [], [])
            logger.info("document_removed", document_id=document_id, removed=removed)

        return removed

    def query(
        self,
        query_embedding: Sequence[float],
        k: int,
        document_ids: Optional[Iterable[str]] = None,
    ) -> List[RetrievalResult]:
        """Return the ``k`` chunks most similar to the query vector.

        Results are sorted by descending cosine similarity; equal scores keep
        insertion order.

        Args:
            query_embedding: Query vector
            k: Maximum number of results; ``k <= 0`` returns nothing
            document_ids: Optional restriction to these documents

        Returns:
            Ordered list of RetrievalResult

        Raises:
            DimensionMismatch: If the query length disagrees with the index
        """
        snapshot = self._snapshot
        query_vector = self._as_vector(query_embedding, snapshot.dimension)

        if k <= 0 or not snapshot.chunks:
            return []

        candidates = np.arange(len(snapshot.chunks))
        if document_ids is not None:
            wanted = set(document_ids)
            mask = np.array(
                [c.document_id in wanted for c in snapshot.chunks], dtype=bool
            )
            candidates = candidates[mask]
            if candidates.size == 0:
                return []

        scores = np.zeros(candidates.size, dtype=np.float64)
        denominators = snapshot.norms[candidates] * np.linalg.norm(query_vector)
        nonzero = denominators > 0
        if nonzero.any():
            rows = snapshot.matrix[candidates[nonzero]]
            scores[nonzero] = np.clip(
                rows @ query_vector / denominators[nonzero], -1.0, 1.0
            )

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]

        results = [
            RetrievalResult(
                chunk=snapshot.chunks[candidates[i]],
                score=float(scores[i]),
            )
            for i in order
        ]

        logger.debug(
            "vector_search_completed",
            top_k=k,
            candidates=int(candidates.size),
            results_found=len(results),
        )

        return results

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the index.

        Returns:
            Dictionary with index statistics
        """
        return {
            "vector_count": len(self),
            "document_count": len(self.document_ids()),
            "dimension": self.dimension,
        }
