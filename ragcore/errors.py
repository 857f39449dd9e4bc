"""Exception hierarchy for the indexing and retrieval engine."""
from typing import Optional


class RagError(Exception):
    """Base class for all engine errors."""


class ConfigError(RagError):
    """Invalid engine or chunking configuration."""


class UnsupportedFormatError(RagError):
    """No extractor is registered for a declared document format."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported document format: {fmt}")


class ProcessingFailed(RagError):
    """Normalization, chunking or embedding failed for a document.

    Raised after all partial state has been discarded, so the index and
    repository still hold whatever they held before the attempt.
    """

    def __init__(self, message: str, document_id: Optional[str] = None):
        self.document_id = document_id
        if document_id is not None:
            message = f"Failed to process document {document_id}: {message}"
        super().__init__(message)


class DimensionMismatch(RagError, ValueError):
    """Embedding length disagrees with the index dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )


class EmptyQuery(RagError, ValueError):
    """Query text is empty or whitespace-only."""
