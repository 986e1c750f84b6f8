"""citerag.common.schemas

Core data schemas shared across the retrieval engine.

These lightweight dataclasses describe the canonical shapes for source
documents, their chunked derivatives, embedded index entries, and the
normalised call shapes consumed by the retrieval service.

Classes
-------
Document
    Represents a full, un-split Markdown source document.
DocumentChunk
    A heading-anchored chunk produced from a :class:`Document`, prior to
    embedding.
IndexedChunk
    An immutable, embedded chunk as stored in the index.
RankedResult
    A per-query scoring of one :class:`IndexedChunk`.
CanonicalSearchCall
    Validated arguments for a search.
CanonicalFetchCall
    Validated arguments for a fetch.

Notes
-----
Chunk identity is derived from ``(source, heading, part_index)`` via
:func:`make_chunk_id` so that ids are stable across rebuilds as long as the
source, heading and chunk split do not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

DEFAULT_TOP_K = 8
MIN_TOP_K = 1
MAX_TOP_K = 20


def make_chunk_id(source: str, heading: str, part_index: int) -> str:
    """Return the deterministic chunk id for ``(source, heading, part_index)``."""
    return f"{source}::{heading}::{part_index}"


def compose_title(heading: str, source: str) -> str:
    """Return the display title of a chunk, ``"{heading} ({source})"``."""
    return f"{heading} ({source})"


@dataclass
class Document:
    """Container for a raw Markdown source document.

    Attributes
    ----------
    text : str
        Full textual content of the document, prior to chunking.
    source : str
        Identifier of the document, typically a POSIX relative path such as
        ``"docs/api.md"``.
    metadata : Dict[str, Any]
        Arbitrary metadata associated with the document. Defaults to an
        empty dict.
    """
    text: str
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentChunk:
    """A bounded span of a :class:`Document` anchored to a heading.

    Attributes
    ----------
    source : str
        Identifier of the originating document.
    heading : str
        Nearest enclosing section title at the time of splitting.
    part_index : int
        Zero-based position of this chunk within its heading's content.
    text : str
        Literal chunk content.
    """
    source: str
    heading: str
    part_index: int
    text: str

    @property
    def id(self) -> str:
        return make_chunk_id(self.source, self.heading, self.part_index)


@dataclass(frozen=True)
class IndexedChunk:
    """An embedded chunk, the atomic unit of retrieval and citation.

    Attributes
    ----------
    id : str
        Unique, deterministic identifier (see :func:`make_chunk_id`).
    text : str
        Literal chunk content, non-empty.
    source : str
        Identifier of the originating document.
    heading : str
        Nearest enclosing section title; used for ranking and display.
    part_index : int
        Zero-based position within the heading's content.
    embedding : tuple[float, ...]
        Vector produced by the embedding model recorded in the owning index.
    """
    id: str
    text: str
    source: str
    heading: str
    part_index: int
    embedding: Tuple[float, ...]

    @classmethod
    def from_chunk(cls, chunk: DocumentChunk, embedding) -> "IndexedChunk":
        return cls(
            id=chunk.id,
            text=chunk.text,
            source=chunk.source,
            heading=chunk.heading,
            part_index=chunk.part_index,
            embedding=tuple(float(x) for x in embedding),
        )

    @property
    def title(self) -> str:
        return compose_title(self.heading, self.source)

    @property
    def meta(self) -> Dict[str, Any]:
        """Return the raw metadata mapping as persisted in the index file."""
        return {"source": self.source, "heading": self.heading, "part": self.part_index}

    def to_record(self) -> Dict[str, Any]:
        """Return the persisted JSON record for this chunk."""
        return {
            "id": self.id,
            "text": self.text,
            "meta": self.meta,
            "embedding": list(self.embedding),
        }


@dataclass(frozen=True)
class RankedResult:
    """Scoring of one chunk against one query.

    ``weighted_score`` is an ordering key only; it is unbounded and must not
    be read as a probability.
    """
    chunk: IndexedChunk
    raw_score: float
    weighted_score: float


@dataclass(frozen=True)
class CanonicalSearchCall:
    query: str
    top_k: int = DEFAULT_TOP_K


@dataclass(frozen=True)
class CanonicalFetchCall:
    id: str
