"""
Retrieval layer of the engine.

This package covers everything needed to turn Markdown sources into
searchable vectors and to rank the most relevant chunks for a query. It
includes a document loader, a heading-anchored text splitter, embedding
model wrappers, the in-memory index store, the similarity function and the
weighted ranker.

Submodules
----------
document_loader
    Discovers and reads Markdown files.
text_splitter
    Splits documents into heading-anchored, overlapping chunks.
embedder
    Embedding model wrappers bound to one model identifier.
index_store
    Read-only collection of embedded chunks and its JSON persistence.
similarity
    Cosine similarity.
reranker
    Ranking policy tables and the weighted ranker.
"""
