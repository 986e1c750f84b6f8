"""Interactive search entrypoint.

Loads the configured index and ranks it for each query typed at the prompt,
printing weighted and raw scores with a short preview per hit. An empty line
quits.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from citerag.app.container import build_container
from citerag.common import CanonicalSearchCall, RetrievalError
from citerag.config import GlobalConfig

PREVIEW_CHARS = 220


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query the retrieval index interactively")

    parser.add_argument(
        "--config-file",
        "-c",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )

    parser.add_argument(
        "--top-k",
        "-k",
        required=False,
        type=int,
        default=5,
        help="Number of hits to print per query (default: 5).",
    )

    return parser.parse_args()


def _preview(text: str) -> str:
    collapsed = re.sub(r"\s+", " ", text)[:PREVIEW_CHARS]
    return collapsed + ("..." if len(text) > PREVIEW_CHARS else "")


def main() -> None:
    args = parse_args()

    cfg = GlobalConfig.load(args.config_file)
    logging.basicConfig(level=cfg.log_level)
    container = build_container(cfg)
    service = container.service

    print(f"loaded: {len(container.index)} chunks")
    print(f"embedding model: {container.index.model}")
    print("Enter empty line to quit.")

    while True:
        try:
            query = input("\nquery> ").strip()
        except EOFError:
            break
        if not query:
            break

        try:
            hits = service.rank(CanonicalSearchCall(query=query, top_k=args.top_k))
        except RetrievalError as e:
            print(f"error: {e}")
            continue

        for i, hit in enumerate(hits, start=1):
            chunk = hit.chunk
            print(
                f"\n[{i}] weighted={hit.weighted_score:.4f} score={hit.raw_score:.4f} "
                f"source={chunk.source} heading={chunk.heading} part={chunk.part_index}"
            )
            print(_preview(chunk.text))


if __name__ == "__main__":
    main()
