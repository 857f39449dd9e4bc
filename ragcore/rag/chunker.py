"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking that prefers sentence and paragraph
boundaries and always makes forward progress.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from ragcore import config
from ragcore.errors import ConfigError

logger = structlog.get_logger()

SENTENCE_ENDINGS = (". ", "! ", "? ", ".\n", "!\n", "?\n")
PARAGRAPH_BREAKS = ("\n\n", "\r\n\r\n")


@dataclass(frozen=True)
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    start_index: int
    end_index: int
    chunk_index: int


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            ConfigError: If either value is non-positive or overlap >= size
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = (
            config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        )

        if self.chunk_size <= 0 or self.chunk_overlap <= 0:
            raise ConfigError(
                f"Chunk size ({self.chunk_size}) and overlap "
                f"({self.chunk_overlap}) must be positive"
            )
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Offsets refer to ``text`` as given; callers pass normalized text.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects in document order
        """
        if not text:
            return []

        text_length = len(text)
        chunks: List[TextChunk] = []
        start = 0

        while start < text_length:
            naive_end = min(start + self.chunk_size, text_length)

            # The final window always runs to the end of the text
            if naive_end < text_length:
                end = self._find_break_point(text, start, naive_end)
            else:
                end = text_length

            content = text[start:end].strip()
            if content:
                chunks.append(
                    TextChunk(
                        content=content,
                        start_index=start,
                        end_index=end,
                        chunk_index=len(chunks),
                    )
                )

            if end >= text_length:
                break

            # +1 floor guarantees progress when the break lands near start
            start = max(end - self.chunk_overlap, start + 1)

        logger.debug(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
        )

        return chunks

    def _find_break_point(self, text: str, start: int, naive_end: int) -> int:
        """Find the nearest boundary at or before ``naive_end``.

        Sentence endings win over paragraph breaks; a boundary only counts
        when the whole pattern lies inside ``[start, naive_end]``.

        Args:
            text: Full text being chunked
            start: Window start position
            naive_end: Window end position before adjustment

        Returns:
            Adjusted end position, or ``naive_end`` for a hard cut
        """
        for patterns in (SENTENCE_ENDINGS, PARAGRAPH_BREAKS):
            for position in range(naive_end, start, -1):
                for pattern in patterns:
                    begin = position - len(pattern)
                    if begin >= start and text.startswith(pattern, begin):
                        return position

        return naive_end

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Size summary of a chunk list, with the overlap it was made with."""
        sizes = [len(c.content) for c in chunks] or [0]
        return {
            "chunk_count": len(chunks),
            "total_chars": sum(sizes),
            "avg_chunk_size": sum(sizes) / max(len(chunks), 1),
            "min_chunk_size": min(sizes),
            "max_chunk_size": max(sizes),
            "overlap": self.chunk_overlap,
        }
