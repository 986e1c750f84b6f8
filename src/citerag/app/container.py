"""citerag.app.container

Composition root for the retrieval engine.

This module is the single place where concrete implementations are wired
together from configuration (embedder, chunker, ranker, index store, the
retrieval service and the index builder). Components are constructed lazily
and cached on first access to avoid repeated expensive initialisation.

Notes
-----
- Keep this module importable with minimal side effects:
  - do not perform network calls at import time
  - do not read files at import time
  - construct expensive objects lazily (cached on first access)

- Relative paths in the configuration (index file, docs directory, ranking
  policy) are resolved against the loaded config file's directory, not the
  current working directory.

Examples
--------
>>> from citerag.config import GlobalConfig
>>> from citerag.app.container import build_container
>>> cfg = GlobalConfig.load("config/config.yaml")
>>> c = build_container(cfg)
>>> c.service.search({"query": "retry policy", "topK": 3})
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Mapping


@dataclass(frozen=True)
class CiteragContainer:
    """Holds the configured, cached runtime components for the application.

    Parameters
    ----------
    config : Any
        Loaded global configuration object (typically :class:`citerag.config.GlobalConfig`).
    """

    config: Any

    @cached_property
    def embedder(self) -> Any:
        """Return the embedding client.

        Returns
        -------
        BaseEmbedder
            Configured embedder used for document and query vectors.
        """
        from citerag.retrieval.embedder import create_embedder

        section = _as_mapping(self.config.embedder)
        return create_embedder(section)

    @cached_property
    def splitter(self) -> Any:
        """Return the Markdown chunker configured from ``chunking``."""
        from citerag.retrieval.text_splitter import MarkdownHeadingSplitter

        return MarkdownHeadingSplitter.from_config_dict(dict(_as_mapping(self.config.chunking)))

    @cached_property
    def ranker(self) -> Any:
        """Return the weighted ranker.

        The ranking policy path, when configured, is resolved against the
        config file directory.
        """
        from citerag.retrieval.reranker import create_ranker

        section = _as_mapping(self.config.ranking)
        return create_ranker(section, base_dir=self.config.base_dir)

    @cached_property
    def index(self) -> Any:
        """Return the loaded, read-only index.

        Returns
        -------
        IndexStore
            Index loaded from ``index.path``.

        Raises
        ------
        FileNotFoundError
            If the index file does not exist.
        IndexFormatError
            If the index file is malformed.
        """
        from citerag.retrieval.index_store import IndexStore

        return IndexStore.load(self.config.index_path)

    @cached_property
    def service(self) -> Any:
        """Return the fully wired retrieval service.

        Returns
        -------
        RetrievalService
            Façade over the loaded index.

        Raises
        ------
        EmbeddingModelMismatchError
            If the configured embedder model differs from the index model.
        """
        from citerag.pipelines.retrieval_service import RetrievalService

        section = _as_mapping(self.config.service)
        return RetrievalService(
            index=self.index,
            embedder=self.embedder,
            ranker=self.ranker,
            doc_base_url=section.get("doc_base_url", ""),
            default_top_k=section.get("default_top_k", 8),
        )

    @cached_property
    def index_builder(self) -> Any:
        """Return the offline index builder configured from ``indexing``."""
        from citerag.pipelines.indexing import IndexBuilder

        section = _as_mapping(self.config.indexing)
        return IndexBuilder(
            embedder=self.embedder,
            splitter=self.splitter,
            batch_size=section.get("batch_size", 64),
            max_concurrency=section.get("max_concurrency", 1),
        )


def build_container(config: Any) -> CiteragContainer:
    """Create a :class:`~citerag.app.container.CiteragContainer`.

    This function is intentionally small so it can serve as a single entry point
    for the HTTP and MCP adapters, CLI scripts, and tests.

    Parameters
    ----------
    config : Any
        Loaded global configuration object (typically :class:`citerag.config.GlobalConfig`).

    Returns
    -------
    CiteragContainer
        Container instance with cached component accessors.
    """

    return CiteragContainer(config=config)


def _as_mapping(obj: Any) -> Mapping[str, Any]:
    """Coerce an object into a mapping.

    Parameters
    ----------
    obj : Any
        Object to interpret as a mapping. If ``obj`` is already a mapping it is
        returned as-is. If it has a ``__dict__``, that dictionary is returned.

    Returns
    -------
    Mapping[str, Any]
        A dictionary-like view of ``obj``.

    Raises
    ------
    TypeError
        If ``obj`` cannot be interpreted as a mapping.
    """
    if isinstance(obj, Mapping):
        return obj

    if hasattr(obj, "__dict__"):
        return dict(vars(obj))

    raise TypeError(f"Expected mapping type but got {type(obj)}")


__all__ = ["CiteragContainer", "build_container"]
