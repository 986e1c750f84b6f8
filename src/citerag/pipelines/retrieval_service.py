"""citerag.pipelines.retrieval_service

Query-time façade over the loaded index.

:class:`RetrievalService` composes argument normalisation, query embedding,
weighted ranking and result formatting into the two operations exposed to
transport adapters: ``search`` and ``fetch``.

The service holds only immutable state (the loaded
:class:`~citerag.retrieval.index_store.IndexStore`, the ranker and the
embedder), so concurrent calls need no locking. Each ``search`` issues
exactly one embedding request.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from citerag.common import CanonicalSearchCall, IndexedChunk, RankedResult
from citerag.common.errors import (
    FETCH_FAILED,
    INVALID_QUERY,
    SEARCH_FAILED,
    ConfigurationError,
    EmbeddingModelMismatchError,
    RetrievalError,
)
from citerag.common.schemas import DEFAULT_TOP_K
from citerag.pipelines.arguments import normalize_fetch, normalize_search
from citerag.retrieval.embedder import BaseEmbedder
from citerag.retrieval.index_store import IndexStore
from citerag.retrieval.reranker import WeightedRanker

logger = logging.getLogger(__name__)

NOT_FOUND_TITLE = "NOT_FOUND"


def _normalise_base_url(base_url: str) -> str:
    base_url = base_url or ""
    if base_url and not base_url.endswith("/"):
        base_url += "/"
    return base_url


class RetrievalService:
    """Search and fetch over a read-only index.

    Parameters
    ----------
    index : IndexStore
        Loaded index. Owned by the service for the lifetime of the process.
    embedder : BaseEmbedder
        Embedder bound to the index's model.
    ranker : WeightedRanker or None, optional
        Ranker applying the weight policy. Defaults to a neutral ranker.
    doc_base_url : str, optional
        Prefix joined with a chunk's source to form its citation URL.
    default_top_k : int, optional
        Result count used when the caller gives none. Defaults to ``8``.

    Raises
    ------
    EmbeddingModelMismatchError
        If the embedder's model differs from the index's model.
    """

    def __init__(
            self,
            index: IndexStore,
            embedder: BaseEmbedder,
            ranker: WeightedRanker | None = None,
            *,
            doc_base_url: str = "",
            default_top_k: int = DEFAULT_TOP_K,
        ):
        if embedder.model_name != index.model:
            raise EmbeddingModelMismatchError(
                f"Index was built with {index.model!r} but the embedder uses "
                f"{embedder.model_name!r}."
            )
        self.index = index
        self.embedder = embedder
        self.ranker = ranker or WeightedRanker()
        self.doc_base_url = _normalise_base_url(doc_base_url)
        self.default_top_k = default_top_k

    def url_for(self, chunk: IndexedChunk) -> str:
        return f"{self.doc_base_url}{chunk.source}"

    def _embed_query(self, query: str) -> list[float]:
        try:
            vector = self.embedder.embed_query(query, self.index.model)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception("Embedding request failed for search")
            raise RetrievalError(SEARCH_FAILED, str(e) or type(e).__name__) from e

        if self.index.dimension is not None and len(vector) != self.index.dimension:
            raise ConfigurationError(
                f"Query vector has length {len(vector)} but the index stores "
                f"vectors of length {self.index.dimension}."
            )
        return vector

    def rank(self, call: CanonicalSearchCall) -> list[RankedResult]:
        """Embed the query of ``call`` and rank the index against it.

        Parameters
        ----------
        call : CanonicalSearchCall
            Normalised search arguments.

        Returns
        -------
        list[RankedResult]
            At most ``call.top_k`` results, best first.

        Raises
        ------
        RetrievalError
            ``invalid_query`` for a blank query; ``search_failed`` when the
            embedding provider fails.
        ConfigurationError
            If the query vector length differs from the index's.
        """
        query = call.query.strip()
        if not query:
            raise RetrievalError(INVALID_QUERY, "Query must not be empty.")

        vector = self._embed_query(query)
        return self.ranker.rank(vector, self.index.chunks, query, call.top_k)

    def search(self, payload: Any) -> dict[str, Any]:
        """Run a search for a loosely-shaped payload.

        Returns
        -------
        dict
            ``{"results": [{"id", "title", "url"}, ...]}`` best first.

        Raises
        ------
        RetrievalError
            ``invalid_query`` or ``search_failed``.
        """
        call = normalize_search(payload, self.default_top_k)
        results = self.rank(call)
        return {"results": self.format_results(results)}

    def format_results(self, results: Sequence[RankedResult]) -> list[dict[str, str]]:
        return [
            {
                "id": result.chunk.id,
                "title": result.chunk.title,
                "url": self.url_for(result.chunk),
            }
            for result in results
        ]

    def fetch(self, payload: Any) -> dict[str, Any]:
        """Return the full chunk addressed by a loosely-shaped payload.

        A miss is a normal outcome and yields the structured not-found
        record with ``metadata["error"] == "not_found"``.

        Raises
        ------
        RetrievalError
            ``invalid_id`` or ``fetch_failed``.
        """
        call = normalize_fetch(payload)
        try:
            chunk = self.index.get(call.id)
            if chunk is None:
                return self.not_found(call.id)
            return {
                "id": chunk.id,
                "title": chunk.title,
                "text": chunk.text,
                "url": self.url_for(chunk),
                "metadata": chunk.meta,
            }
        except Exception as e:
            logger.exception("Fetch failed for id %r", call.id)
            raise RetrievalError(FETCH_FAILED, str(e) or type(e).__name__) from e

    def not_found(self, chunk_id: str) -> dict[str, Any]:
        return {
            "id": chunk_id,
            "title": NOT_FOUND_TITLE,
            "text": "",
            "url": self.doc_base_url,
            "metadata": {"error": "not_found"},
        }


__all__ = ["RetrievalService", "NOT_FOUND_TITLE"]
