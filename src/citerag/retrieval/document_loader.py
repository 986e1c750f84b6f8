"""citerag.retrieval.document_loader

Document loading utilities for Markdown sources.

Functions
---------
list_markdown_files
    Recursively discover ``.md`` files under a directory in a stable order.
source_id_for
    Build the POSIX-style source identifier of a file.
load_markdown_documents
    Read Markdown files and return them as :class:`~citerag.common.schemas.Document` objects.
"""
from __future__ import annotations

import logging
from pathlib import Path

from citerag.common import Document

DEFAULT_CHARSET = "utf-8"
MARKDOWN_SUFFIX = ".md"

logger = logging.getLogger(__name__)


def list_markdown_files(docs_dir: str | Path) -> list[Path]:
    """Recursively list Markdown files under ``docs_dir``.

    Parameters
    ----------
    docs_dir : str or Path
        Directory to scan.

    Returns
    -------
    list[Path]
        Sorted list of files whose suffix is ``.md`` (case-insensitive).

    Raises
    ------
    FileNotFoundError
        If ``docs_dir`` does not exist or is not a directory.
    """
    root = Path(docs_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Documents directory not found: {root}")

    files = [
        path for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() == MARKDOWN_SUFFIX
    ]
    return sorted(files, key=lambda p: p.as_posix())


def source_id_for(path: str | Path, base_dir: str | Path) -> str:
    """Return ``path`` relative to ``base_dir`` with forward slashes.

    Parameters
    ----------
    path : str or Path
        File path.
    base_dir : str or Path
        Directory the identifier is relative to.

    Returns
    -------
    str
        Source identifier such as ``"docs/api.md"``.
    """
    relative = Path(path).resolve().relative_to(Path(base_dir).resolve())
    return relative.as_posix()


def load_markdown_documents(
        docs_dir: str | Path,
        base_dir: str | Path | None = None,
    ) -> list[Document]:
    """Load every Markdown file under ``docs_dir``.

    Parameters
    ----------
    docs_dir : str or Path
        Directory containing Markdown files (searched recursively).
    base_dir : str or Path or None, optional
        Directory that source identifiers are made relative to. Defaults to
        the parent of ``docs_dir``, so ``docs/api.md`` keeps its ``docs/``
        prefix.

    Returns
    -------
    list[Document]
        One document per file, in sorted path order.

    Raises
    ------
    FileNotFoundError
        If ``docs_dir`` is missing or contains no Markdown files.
    """
    docs_path = Path(docs_dir)
    base = Path(base_dir) if base_dir is not None else docs_path.resolve().parent

    files = list_markdown_files(docs_path)
    if not files:
        raise FileNotFoundError(f"No Markdown files found under {docs_path}")

    documents = []
    for path in files:
        text = path.read_text(encoding=DEFAULT_CHARSET)
        source = source_id_for(path, base)
        documents.append(Document(text=text, source=source, metadata={"path": str(path)}))
        logger.debug("Loaded %s (%d chars)", source, len(text))

    logger.info("Loaded %d Markdown documents from %s", len(documents), docs_path)
    return documents


__all__ = [
    "list_markdown_files",
    "source_id_for",
    "load_markdown_documents",
]
