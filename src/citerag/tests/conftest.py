from typing import Iterable, Sequence

import pytest

from citerag.common import IndexedChunk
from citerag.pipelines.retrieval_service import RetrievalService
from citerag.retrieval.embedder import BaseEmbedder
from citerag.retrieval.index_store import IndexStore
from citerag.retrieval.reranker import RankingPolicy, WeightedRanker


class KeywordEmbedder(BaseEmbedder):
    """
    Deterministic offline embedder for tests.

    Each vector component counts occurrences of one vocabulary word in the
    lower-cased text, so texts sharing words point in similar directions.
    """

    VOCAB = ("retry", "auth", "order", "refund", "event", "status")

    def __init__(self, model_name: str = "keyword-test", vocab: Sequence[str] = VOCAB, fail_with=None):
        self.model_name = model_name
        self.vocab = tuple(vocab)
        self.fail_with = fail_with
        self.calls: list[list[str]] = []

    def get_embedder(self):
        return None

    @classmethod
    def from_config_dict(cls, config):
        return cls(model_name=config.get("model_name", "keyword-test"))

    def embed_documents(self, documents: list[str]) -> list[list[float]]:
        self.calls.append(list(documents))
        if self.fail_with is not None:
            raise self.fail_with
        return [[float(doc.lower().count(w)) for w in self.vocab] for doc in documents]


def make_chunk(source: str, heading: str, text: str, embedding: Iterable[float], part: int = 0) -> IndexedChunk:
    """Build an IndexedChunk with a derived id."""
    return IndexedChunk(
        id=f"{source}::{heading}::{part}",
        text=text,
        source=source,
        heading=heading,
        part_index=part,
        embedding=tuple(float(x) for x in embedding),
    )


@pytest.fixture
def keyword_embedder():
    return KeywordEmbedder()


@pytest.fixture
def chunk_factory():
    return make_chunk


@pytest.fixture
def sample_index(keyword_embedder):
    """Small index embedded with the keyword embedder."""
    rows = [
        ("docs/api.md", "POST /v1/orders", "Create an order. Clients retry on 503."),
        ("docs/api.md", "Retry policy", "Retry with exponential backoff. Retry at most 3 times."),
        ("docs/faq.md", "Q. Can I refund an order?", "Refunds require the refund role."),
        ("docs/architecture.md", "Events", "Order events are published on status change."),
    ]
    vectors = keyword_embedder.embed([text for _, _, text in rows])
    keyword_embedder.calls.clear()
    chunks = [make_chunk(src, head, text, vec) for (src, head, text), vec in zip(rows, vectors)]
    return IndexStore(model=keyword_embedder.model_name, chunks=chunks)


@pytest.fixture
def sample_service(sample_index, keyword_embedder):
    return RetrievalService(
        index=sample_index,
        embedder=keyword_embedder,
        ranker=WeightedRanker(RankingPolicy.default()),
        doc_base_url="https://example.com/blob/main",
    )
