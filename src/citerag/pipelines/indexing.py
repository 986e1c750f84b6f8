"""citerag.pipelines.indexing

Offline index build: documents → chunks → embeddings → :class:`IndexStore`.

Chunk texts are embedded in fixed-size batches. With ``max_concurrency``
above one, several batches are in flight at once; results are always
re-paired with their input chunks by position, never by completion order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence

from citerag.common import Document, DocumentChunk, IndexedChunk
from citerag.common.errors import ConfigurationError
from citerag.retrieval.embedder import BaseEmbedder, EmbeddingError
from citerag.retrieval.index_store import IndexStore
from citerag.retrieval.text_splitter import MarkdownHeadingSplitter, get_chunks_from_documents

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 64
DEFAULT_MAX_CONCURRENCY = 1


def batched(items: Sequence, batch_size: int) -> list[Sequence]:
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


class IndexBuilder:
    """Build an :class:`IndexStore` from Markdown documents.

    Parameters
    ----------
    embedder : BaseEmbedder
        Embedder whose model is recorded in the built index.
    splitter : MarkdownHeadingSplitter or None, optional
        Chunker. Defaults to one with default parameters.
    batch_size : int, optional
        Chunks per embedding request. Defaults to ``64``.
    max_concurrency : int, optional
        Maximum embedding requests in flight. Defaults to ``1``.
    """

    def __init__(
            self,
            embedder: BaseEmbedder,
            splitter: MarkdownHeadingSplitter | None = None,
            *,
            batch_size: int = DEFAULT_BATCH_SIZE,
            max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        ):
        if int(batch_size) < 1:
            raise ConfigurationError("'batch_size' must be >= 1.")
        if int(max_concurrency) < 1:
            raise ConfigurationError("'max_concurrency' must be >= 1.")
        self.embedder = embedder
        self.splitter = splitter or MarkdownHeadingSplitter()
        self.batch_size = int(batch_size)
        self.max_concurrency = int(max_concurrency)

    def build(self, documents: Iterable[Document]) -> IndexStore:
        """Chunk and embed ``documents``.

        Returns
        -------
        IndexStore
            Index for :attr:`embedder`'s model, chunks in document order.
        """
        chunks = get_chunks_from_documents(documents, self.splitter)
        logger.info("chunks: %d", len(chunks))

        if self.max_concurrency > 1:
            vectors = asyncio.run(self.aembed_chunks(chunks))
        else:
            vectors = self.embed_chunks(chunks)

        indexed = [IndexedChunk.from_chunk(c, v) for c, v in zip(chunks, vectors)]
        return IndexStore(model=self.embedder.model_name, chunks=indexed)

    def _check_batch(self, batch: Sequence[DocumentChunk], vectors: list) -> list:
        if len(vectors) != len(batch):
            raise EmbeddingError(
                f"Expected {len(batch)} vectors for batch, got {len(vectors)}."
            )
        return vectors

    def embed_chunks(self, chunks: Sequence[DocumentChunk]) -> list[list[float]]:
        """Embed chunk texts batch by batch, sequentially."""
        vectors: list[list[float]] = []
        for batch in batched(chunks, self.batch_size):
            result = self.embedder.embed([c.text for c in batch], self.embedder.model_name)
            vectors.extend(self._check_batch(batch, result))
            logger.info("embedded: %d/%d", len(vectors), len(chunks))
        return vectors

    async def aembed_chunks(self, chunks: Sequence[DocumentChunk]) -> list[list[float]]:
        """Embed chunk texts with up to :attr:`max_concurrency` batches in flight."""
        semaphore = asyncio.Semaphore(self.max_concurrency)
        batches = batched(chunks, self.batch_size)
        done = 0

        async def run(batch: Sequence[DocumentChunk]) -> list:
            nonlocal done
            async with semaphore:
                result = await self.embedder.aembed(
                    [c.text for c in batch], self.embedder.model_name
                )
            done += len(batch)
            logger.info("embedded: %d/%d", done, len(chunks))
            return self._check_batch(batch, result)

        # gather returns results in submission order
        results = await asyncio.gather(*(run(batch) for batch in batches))
        return [vector for batch_vectors in results for vector in batch_vectors]


__all__ = ["IndexBuilder", "batched"]
