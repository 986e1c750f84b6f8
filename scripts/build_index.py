"""Index build entrypoint.

This script loads the Markdown documents under the configured docs directory,
chunks them by heading, embeds the chunks in batches, and writes the index
JSON file read by the retrieval service.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from citerag.app.container import build_container
from citerag.config import GlobalConfig
from citerag.retrieval.document_loader import load_markdown_documents


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the retrieval index from Markdown docs")

    parser.add_argument(
        "--config-file",
        "-c",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )

    parser.add_argument(
        "--docs-dir",
        "-d",
        required=False,
        type=str,
        default=None,
        help="Override indexing.docs_dir from config (optional).",
    )

    parser.add_argument(
        "--output",
        "-o",
        required=False,
        type=str,
        default=None,
        help="Override index.path from config (optional).",
    )

    parser.add_argument(
        "--batch-size",
        "-b",
        required=False,
        type=int,
        default=None,
        help="Chunks per embedding request (default: indexing.batch_size, 64).",
    )
    parser.add_argument(
        "--embedding-workers",
        required=False,
        type=int,
        default=None,
        help=(
            "Maximum embedding requests in flight. "
            "Values > 1 embed batches concurrently."
        ),
    )

    return parser.parse_args()


def main() -> None:
    args = parse_args()

    cfg = GlobalConfig.load(args.config_file)
    logging.basicConfig(level=cfg.log_level)

    indexing = cfg.raw.setdefault("indexing", {})
    if not isinstance(indexing, dict):
        raise TypeError("'indexing' config must be a mapping to apply overrides.")
    if args.batch_size is not None:
        indexing["batch_size"] = int(args.batch_size)
    if args.embedding_workers is not None:
        if args.embedding_workers < 1:
            raise ValueError("--embedding-workers must be >= 1 when provided.")
        indexing["max_concurrency"] = int(args.embedding_workers)

    container = build_container(cfg)

    if args.docs_dir:
        docs_dir = Path(args.docs_dir).resolve()
    else:
        docs_dir = cfg.indexing["docs_dir"] or (REPO_ROOT / "docs")
    out_path = Path(args.output).resolve() if args.output else cfg.index_path

    print(f"Loading Markdown documents from {docs_dir}")
    documents = load_markdown_documents(docs_dir)

    builder = container.index_builder
    mode = "async/concurrent" if builder.max_concurrency > 1 else "sync/sequential"
    print(
        f"Embedding {len(documents)} documents with {container.embedder.model_name} "
        f"(mode: {mode}, workers: {builder.max_concurrency}, batch size: {builder.batch_size})..."
    )
    index = builder.build(documents)

    print(f"Writing {len(index)} chunks to {out_path}")
    index.save(out_path)

    print("Index build complete!")


if __name__ == "__main__":
    main()
