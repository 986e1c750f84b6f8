"""citerag

Citation-grade retrieval over a small Markdown documentation corpus.

This package contains the building blocks of a retrieval engine that answers
``search`` and ``fetch`` calls with stable chunk ids, titles and citation
URLs: configuration, Markdown chunking, embedding, the persisted index,
weighted ranking, and the thin HTTP/MCP adapters that expose them.

Attributes
----------
__version__ : str
    Package version string. Defaults to ``"0.0.0-dev"`` when package metadata is
    unavailable.

Modules
-------
config
    Global configuration loader and cached accessors.
app
    Composition root and transport adapters.
pipelines
    Argument normalisation, the retrieval service and the index builder.
retrieval
    Document loading, chunking, embedding, index storage and ranking.
evaluation
    Question-set evaluation reports.
common
    Shared schemas and the error taxonomy.

Exports
-------
GlobalConfig
    Global configuration loader and accessor.
CiteragContainer
    Cached runtime component container for applications.
build_container
    Factory function to construct a configured :class:`~citerag.app.container.CiteragContainer`.
RetrievalService
    Search/fetch façade over a loaded index.
Document
    Canonical document container schema.
DocumentChunk
    Chunk schema derived from a parent document.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("citerag")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from .config import GlobalConfig
from .app.container import CiteragContainer, build_container
from .pipelines.retrieval_service import RetrievalService
from .common import Document, DocumentChunk

__all__ = [
    "__version__",
    "GlobalConfig",
    "CiteragContainer",
    "build_container",
    "RetrievalService",
    "Document",
    "DocumentChunk",
]
