"""citerag.pipelines

Pipeline orchestration components for the retrieval engine.

This package contains the high-level flows that coordinate the retrieval
layer. Pipelines are stateless beyond their configured, read-only
components, making them safe to reuse across requests and execution
contexts.

Modules
-------
arguments
    Canonicalisation of loosely-shaped search/fetch payloads.
retrieval_service
    Query-time façade: normalise → embed → rank → format.
indexing
    Offline index build: chunk → embed in batches → IndexStore.
"""
