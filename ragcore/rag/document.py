"""Document and chunk data model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class DocumentFormat(str, Enum):
    """Declared source format of a document."""

    PDF = "pdf"
    DOCX = "docx"
    DOC = "doc"
    TXT = "txt"
    MD = "md"


class DocumentMetadata(BaseModel):
    """Extraction metadata plus statistics computed during ingestion.

    Extractors may attach additional keys (tags, dates, ...); they are kept.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    title: str = ""
    author: str = ""
    subject: str = ""
    page_count: Optional[int] = None
    word_count: int = 0
    character_count: int = 0
    chunk_count: int = 0


@dataclass(frozen=True)
class Document:
    """An ingested document: normalized text, format key and metadata."""

    document_id: str
    content: str
    format: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)


@dataclass(frozen=True)
class Chunk:
    """A chunk of a document with its embedding."""

    document_id: str
    content: str
    start_index: int
    end_index: int
    chunk_index: int
    embedding: Tuple[float, ...] = ()

    def __post_init__(self):
        if not 0 <= self.start_index < self.end_index:
            raise ValueError(
                f"Invalid chunk offsets: [{self.start_index}, {self.end_index})"
            )

    def with_embedding(self, embedding) -> "Chunk":
        """Return a copy of this chunk carrying ``embedding``."""
        return Chunk(
            document_id=self.document_id,
            content=self.content,
            start_index=self.start_index,
            end_index=self.end_index,
            chunk_index=self.chunk_index,
            embedding=tuple(float(x) for x in embedding),
        )


@dataclass(frozen=True)
class RetrievalResult:
    """A single retrieved chunk with its similarity score."""

    chunk: Chunk
    score: float

    @property
    def content(self) -> str:
        return self.chunk.content

    @property
    def source(self) -> str:
        """Get a formatted source string for display."""
        return f"{self.chunk.document_id}#{self.chunk.chunk_index}"
