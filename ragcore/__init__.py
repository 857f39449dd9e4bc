"""Document indexing and retrieval core for retrieval-augmented generation."""
from ragcore.engine import Answer, Generator, OllamaGenerator, RagEngine
from ragcore.errors import (
    ConfigError,
    DimensionMismatch,
    EmptyQuery,
    ProcessingFailed,
    RagError,
    UnsupportedFormatError,
)

__all__ = [
    "Answer",
    "ConfigError",
    "DimensionMismatch",
    "EmptyQuery",
    "Generator",
    "OllamaGenerator",
    "ProcessingFailed",
    "RagEngine",
    "RagError",
    "UnsupportedFormatError",
]
