"""citerag.retrieval.text_splitter

Text splitting and chunking utilities for the retrieval layer.

This module converts Markdown :class:`~citerag.common.schemas.Document`
objects into :class:`~citerag.common.schemas.DocumentChunk` objects suitable
for embedding and retrieval. Text is first grouped under headings; any
heading block that exceeds the character budget is then cut into
overlapping windows.

Classes
-------
HeadingBlock
    Text grouped under a single Markdown heading.
MarkdownHeadingSplitter
    Deterministic heading-anchored, sliding-window chunker.

Functions
---------
normalise_block_text
    Collapse runs of blank lines and trim a block before measuring it.
get_chunks_from_documents
    Convert a list of documents into chunks with a shared splitter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List

from citerag.common import Document, DocumentChunk
from citerag.common.errors import ConfigurationError

DEFAULT_CHUNK_SIZE = 1500
DEFAULT_OVERLAP = 150
LEADING_HEADING = "(leading)"

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_LINE_BREAK_RE = re.compile(r"\r?\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class HeadingBlock:
    """Content found under one heading.

    Attributes
    ----------
    heading : str
        Heading text with the ``#`` markers removed, or ``"(leading)"`` for
        content preceding the first heading.
    content : str
        Trimmed block content, never empty.
    """
    heading: str
    content: str


def normalise_block_text(text: str) -> str:
    """Collapse 3+ consecutive newlines into a blank line and trim."""
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


class MarkdownHeadingSplitter:
    """Split Markdown into heading-anchored chunks.

    Blocks whose normalised content fits in ``chunk_size`` characters are
    emitted whole. Longer blocks are cut into windows of ``chunk_size``
    characters, each starting ``overlap`` characters before the end of the
    previous one, until a window reaches the end of the block.

    Parameters
    ----------
    chunk_size : int, optional
        Maximum characters per chunk. Defaults to ``1500``.
    overlap : int, optional
        Characters shared between consecutive windows. Defaults to ``150``.

    Raises
    ------
    ConfigurationError
        If ``chunk_size`` is not positive, ``overlap`` is negative, or
        ``overlap >= chunk_size`` (no forward progress).
    """

    def __init__(
            self,
            chunk_size: int = DEFAULT_CHUNK_SIZE,
            overlap: int = DEFAULT_OVERLAP,
        ):
        chunk_size = int(chunk_size)
        overlap = int(overlap)
        if chunk_size <= 0:
            raise ConfigurationError("'chunk_size' must be a positive integer.")
        if overlap < 0:
            raise ConfigurationError("'overlap' must be zero or a positive integer.")
        if overlap >= chunk_size:
            raise ConfigurationError(
                f"'overlap' ({overlap}) must be smaller than 'chunk_size' ({chunk_size})."
            )
        self.chunk_size = chunk_size
        self.overlap = overlap

    @classmethod
    def from_config_dict(cls, config: dict | None) -> "MarkdownHeadingSplitter":
        """Create a splitter from the ``chunking`` configuration section."""
        cfg = dict(config or {})
        return cls(
            chunk_size=cfg.get("max_chars", DEFAULT_CHUNK_SIZE),
            overlap=cfg.get("overlap_chars", DEFAULT_OVERLAP),
        )

    def split_blocks(self, text: str) -> List[HeadingBlock]:
        """Group lines of ``text`` under their nearest preceding heading.

        Parameters
        ----------
        text : str
            Raw Markdown text.

        Returns
        -------
        list[HeadingBlock]
            Blocks in document order. Blocks without any non-whitespace
            content are dropped.
        """
        blocks: List[HeadingBlock] = []
        heading = LEADING_HEADING
        buffer: List[str] = []

        def flush() -> None:
            content = "\n".join(buffer).strip()
            if content:
                blocks.append(HeadingBlock(heading=heading, content=content))

        for line in _LINE_BREAK_RE.split(text):
            match = _HEADING_RE.match(line)
            if match:
                flush()
                buffer = []
                heading = match.group(2).strip()
            else:
                buffer.append(line)
        flush()
        return blocks

    def split_text(self, text: str) -> List[str]:
        """Cut one block of text into overlapping windows.

        Parameters
        ----------
        text : str
            Block content.

        Returns
        -------
        list[str]
            Windows in order; empty when ``text`` has no non-whitespace
            content. The last window always ends at the end of the block.
        """
        normalised = normalise_block_text(text)
        if not normalised:
            return []
        if len(normalised) <= self.chunk_size:
            return [normalised]

        windows: List[str] = []
        start = 0
        length = len(normalised)
        while start < length:
            end = min(length, start + self.chunk_size)
            windows.append(normalised[start:end])
            if end == length:
                break
            start = end - self.overlap
        return windows

    def split_document(self, document: Document) -> List[DocumentChunk]:
        """Chunk a single document.

        Parameters
        ----------
        document : Document
            Markdown document to split.

        Returns
        -------
        list[DocumentChunk]
            Chunks in document order. Parts are numbered per heading and the
            numbering continues when a heading repeats, so ids stay unique.
        """
        chunks: List[DocumentChunk] = []
        next_part: Dict[str, int] = {}
        for block in self.split_blocks(document.text):
            start = next_part.get(block.heading, 0)
            windows = self.split_text(block.content)
            next_part[block.heading] = start + len(windows)
            for part_index, window in enumerate(windows, start=start):
                chunks.append(
                    DocumentChunk(
                        source=document.source,
                        heading=block.heading,
                        part_index=part_index,
                        text=window,
                    )
                )
        return chunks


def get_chunks_from_documents(
        documents: Iterable[Document],
        splitter: MarkdownHeadingSplitter | None = None,
    ) -> List[DocumentChunk]:
    """Convert documents to chunks.

    Parameters
    ----------
    documents : Iterable[Document]
        Documents to split, in the order their chunks should appear.
    splitter : MarkdownHeadingSplitter or None, optional
        Splitter to use. Defaults to one with default parameters.

    Returns
    -------
    list[DocumentChunk]
        All chunks from all documents.
    """
    splitter = splitter or MarkdownHeadingSplitter()
    chunks: List[DocumentChunk] = []
    for document in documents:
        chunks.extend(splitter.split_document(document))
    return chunks


__all__ = [
    "HeadingBlock",
    "MarkdownHeadingSplitter",
    "normalise_block_text",
    "get_chunks_from_documents",
]
