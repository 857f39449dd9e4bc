"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction per document format
- Whitespace normalization
- Document chunking with overlap
- Embedding generation
- In-memory vector search
- Context assembly
"""
