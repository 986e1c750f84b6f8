"""
Common building blocks shared across the retrieval engine.

This package provides small, widely-used primitives (document and chunk
schemas, canonical call shapes, and the error taxonomy) intended to be
imported by multiple layers of the system.

Classes
-------
Document
    Canonical Markdown document container.
DocumentChunk
    Heading-anchored chunk of a document, before embedding.
IndexedChunk
    Embedded chunk as stored in the index.
RankedResult
    Per-query score of one indexed chunk.
CanonicalSearchCall, CanonicalFetchCall
    Normalised call shapes consumed by the retrieval service.
RetrievalError
    Tagged caller/collaborator failure.
ConfigurationError
    Setup error raised at build or start time.
"""
from __future__ import annotations

from .schemas import (
    CanonicalFetchCall,
    CanonicalSearchCall,
    Document,
    DocumentChunk,
    IndexedChunk,
    RankedResult,
)
from .errors import ConfigurationError, RetrievalError

__all__ = [
    "CanonicalFetchCall",
    "CanonicalSearchCall",
    "Document",
    "DocumentChunk",
    "IndexedChunk",
    "RankedResult",
    "RetrievalError",
    "ConfigurationError",
]
