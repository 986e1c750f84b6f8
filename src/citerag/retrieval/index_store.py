"""citerag.retrieval.index_store

In-memory index of embedded chunks and its persisted JSON form.

An :class:`IndexStore` is built once by the indexing pipeline, written to
disk, and loaded read-only by the serving side. All chunks share one
embedding model and one vector length; both are checked on construction.

Persisted shape::

    {"model": "<model id>",
     "chunks": [{"id": ..., "text": ...,
                 "meta": {"source": ..., "heading": ..., "part": 0},
                 "embedding": [0.1, ...]}]}

Classes
-------
IndexStore
    Immutable, ordered collection of :class:`~citerag.common.schemas.IndexedChunk`.
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from citerag.common import IndexedChunk
from citerag.common.errors import IndexFormatError

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _chunk_from_record(record: Any, position: int) -> IndexedChunk:
    where = f"chunks[{position}]"
    if not isinstance(record, Mapping):
        raise IndexFormatError(f"{where} must be an object.")

    chunk_id = record.get("id")
    text = record.get("text")
    meta = record.get("meta")
    embedding = record.get("embedding")

    if not isinstance(chunk_id, str) or not chunk_id:
        raise IndexFormatError(f"{where}.id must be a non-empty string.")
    if not isinstance(text, str) or not text:
        raise IndexFormatError(f"{where}.text must be a non-empty string.")
    if not isinstance(meta, Mapping):
        raise IndexFormatError(f"{where}.meta must be an object.")
    source = meta.get("source")
    heading = meta.get("heading")
    part = meta.get("part")
    if not isinstance(source, str) or not isinstance(heading, str):
        raise IndexFormatError(f"{where}.meta.source and meta.heading must be strings.")
    if not isinstance(part, int) or isinstance(part, bool) or part < 0:
        raise IndexFormatError(f"{where}.meta.part must be a non-negative integer.")
    if not isinstance(embedding, list) or not embedding or not all(_is_number(x) for x in embedding):
        raise IndexFormatError(f"{where}.embedding must be a non-empty list of finite numbers.")

    return IndexedChunk(
        id=chunk_id,
        text=text,
        source=source,
        heading=heading,
        part_index=part,
        embedding=tuple(float(x) for x in embedding),
    )


class IndexStore:
    """Read-only collection of embedded chunks for one embedding model.

    Parameters
    ----------
    model : str
        Identifier of the embedding model every chunk was embedded with.
    chunks : Iterable[IndexedChunk]
        Chunks in index order.

    Raises
    ------
    IndexFormatError
        If ``model`` is empty, vector lengths differ, or ids repeat.
    """

    def __init__(self, model: str, chunks: Iterable[IndexedChunk]):
        if not isinstance(model, str) or not model:
            raise IndexFormatError("Index 'model' must be a non-empty string.")

        chunk_tuple = tuple(chunks)
        dimensions = {len(c.embedding) for c in chunk_tuple}
        if len(dimensions) > 1:
            raise IndexFormatError(
                f"Index mixes embedding lengths {sorted(dimensions)}; expected exactly one."
            )

        by_id: dict[str, IndexedChunk] = {}
        for chunk in chunk_tuple:
            if chunk.id in by_id:
                raise IndexFormatError(f"Duplicate chunk id {chunk.id!r} in index.")
            by_id[chunk.id] = chunk

        self._model = model
        self._chunks = chunk_tuple
        self._by_id = MappingProxyType(by_id)
        self._dimension = dimensions.pop() if dimensions else None

    @property
    def model(self) -> str:
        return self._model

    @property
    def chunks(self) -> tuple[IndexedChunk, ...]:
        return self._chunks

    @property
    def dimension(self) -> int | None:
        """Shared vector length, or ``None`` for an empty index."""
        return self._dimension

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[IndexedChunk]:
        return iter(self._chunks)

    def get(self, chunk_id: str) -> IndexedChunk | None:
        """Return the chunk with ``chunk_id`` or ``None``."""
        return self._by_id.get(chunk_id)

    def to_dict(self) -> dict[str, Any]:
        return {"model": self._model, "chunks": [c.to_record() for c in self._chunks]}

    @classmethod
    def from_dict(cls, data: Any) -> "IndexStore":
        """Build an index from its persisted mapping.

        Raises
        ------
        IndexFormatError
            If ``data`` does not have the persisted index shape.
        """
        if not isinstance(data, Mapping):
            raise IndexFormatError("Index file must contain a JSON object.")
        records = data.get("chunks")
        if not isinstance(records, list):
            raise IndexFormatError("Index 'chunks' must be a list.")
        chunks = [_chunk_from_record(record, i) for i, record in enumerate(records)]
        return cls(model=data.get("model"), chunks=chunks)

    @classmethod
    def load(cls, path: str | Path) -> "IndexStore":
        """Load and validate a persisted index file.

        Parameters
        ----------
        path : str or Path
            Path to the JSON index.

        Returns
        -------
        IndexStore
            Loaded index.

        Raises
        ------
        FileNotFoundError
            If ``path`` does not exist.
        IndexFormatError
            If the file is not valid JSON or has the wrong shape.
        """
        index_path = Path(path)
        try:
            data = json.loads(index_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise IndexFormatError(f"Index file {index_path} is not valid JSON: {e}") from e

        store = cls.from_dict(data)
        logger.info(
            "Loaded index %s: %d chunks, model=%s, dimension=%s",
            index_path, len(store), store.model, store.dimension,
        )
        return store

    def save(self, path: str | Path) -> Path:
        """Write the index to ``path``, replacing any previous file atomically.

        Parameters
        ----------
        path : str or Path
            Destination file. Parent directories are created as needed.

        Returns
        -------
        Path
            The written path.
        """
        out_path = Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{out_path.name}.", dir=out_path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, out_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Wrote index %s (%d chunks)", out_path, len(self))
        return out_path


__all__ = ["IndexStore"]
